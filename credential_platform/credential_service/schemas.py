from pydantic import BaseModel, Field

from .models import LOGIN_MAX_LENGTH


class RegisterRequest(BaseModel):
    login: str = Field(..., max_length=LOGIN_MAX_LENGTH)
    password: str


class LoginRequest(BaseModel):
    login: str = Field(..., max_length=LOGIN_MAX_LENGTH)
    password: str


class RegisterReply(BaseModel):
    success: bool
    message: str


class LoginReply(BaseModel):
    success: bool
    message: str
    access_token: str = ""
    token_type: str = ""
    expires_in_minutes: int = 0


class CurrentLogin(BaseModel):
    login: str
