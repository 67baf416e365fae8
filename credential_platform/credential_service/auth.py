import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "Bearer"
DEFAULT_ACCESS_TOKEN_MINUTES = 60


class PasswordHasher:
    """
    One-way password hashing.

    Hashes are stored in modular crypt format
    (``$pbkdf2-sha256$<rounds>$<salt>$<digest>``), so the algorithm and its
    parameters travel with every stored hash.
    """

    # Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
    def __init__(self, schemes=("pbkdf2_sha256",)):
        self._context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, stored_hash: str, password: str) -> bool:
        try:
            return self._context.verify(password, stored_hash)
        except ValueError:
            # Unknown or malformed hash format
            logger.warning("Stored password hash could not be identified")
            return False


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_at: datetime
    expires_in_minutes: int
    token_type: str = TOKEN_TYPE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mints HS256-signed JWT access tokens."""

    def __init__(
        self,
        key: str,
        issuer: str,
        audience: str,
        access_token_minutes: int = DEFAULT_ACCESS_TOKEN_MINUTES,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._key = key
        self.issuer = issuer
        self.audience = audience
        self.access_token_minutes = access_token_minutes
        self._clock = clock

    def issue(self, subject: str) -> IssuedToken:
        # JWT timestamps are whole seconds
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + timedelta(minutes=self.access_token_minutes)
        payload = {
            "sub": subject,
            "jti": str(uuid.uuid4()),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._key, algorithm=ALGORITHM)
        return IssuedToken(
            access_token=token,
            expires_at=expires_at,
            expires_in_minutes=self.access_token_minutes,
        )

    def verify(self, token: str) -> dict:
        """
        Decode and validate a token minted with the same key, issuer and audience.

        Raises:
            InvalidTokenError: bad signature, wrong issuer/audience, expired or missing claims
        """
        return jwt.decode(
            token,
            self._key,
            algorithms=[ALGORITHM],
            audience=self.audience,
            issuer=self.issuer,
            options={"require": ["sub", "jti", "iat", "exp", "iss", "aud"]},
        )
