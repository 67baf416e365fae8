"""
Configuration management for the Credential Service
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Credential Service configuration loaded from environment variables"""

    # Token signing
    JWT_KEY: str = Field(..., min_length=1)
    JWT_ISSUER: str = Field(..., min_length=1)
    JWT_AUDIENCE: str = Field(..., min_length=1)
    JWT_ACCESS_TOKEN_MINUTES: int = Field(60, gt=0)

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./credentials.db"
    REQUEST_TIMEOUT_SECONDS: float = Field(10.0, gt=0)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    DEV_MODE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("JWT_KEY")
    @classmethod
    def validate_jwt_key(cls, v: str) -> str:
        """HS256 keys shorter than 256 bits are rejected"""
        if len(v.encode("utf-8")) < 32:
            raise ValueError("JWT_KEY must be at least 32 bytes long")
        return v

    @field_validator("JWT_ISSUER", "JWT_AUDIENCE")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. Raises ValidationError when invalid."""
    return Settings()
