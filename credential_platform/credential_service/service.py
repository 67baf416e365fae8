"""
Register and Login orchestration.

Composes the credential store, the password hasher and the token issuer.
The exists-then-create sequence in ``register`` is not atomic here; the
store's unique index settles races and surfaces them as AccountConflict.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .auth import PasswordHasher, TokenIssuer
from .models import LoginAttempt, REMOTE_IP_MAX_LENGTH, USER_AGENT_MAX_LENGTH, utcnow
from .store import AccountConflict, CredentialStore, Deadline, StoreUnavailable
from .utils.event_logger import log_login_attempt

logger = logging.getLogger(__name__)

MSG_REQUIRED = "login and password are required"
MSG_USER_EXISTS = "user already exists"
MSG_USER_CREATED = "user created"
MSG_INVALID_CREDENTIALS = "invalid credentials"
MSG_OK = "ok"


class ServiceUnavailable(Exception):
    """The request could not be completed because the store failed."""


@dataclass(frozen=True)
class RegisterResult:
    success: bool
    message: str


@dataclass(frozen=True)
class LoginResult:
    success: bool
    message: str
    access_token: str = ""
    token_type: str = ""
    expires_in_minutes: int = 0


def _upper_char(ch: str) -> str:
    upper = ch.upper()
    return upper if len(upper) == 1 else ch


def normalize_login(login: str) -> str:
    """
    Uppercase one code point at a time.

    Characters whose uppercase form is longer than one character (``ß``,
    ``ﬁ``) are kept as-is, so the normalized login never grows.
    """
    return "".join(_upper_char(ch) for ch in login)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _clip(value: Optional[str], max_length: int) -> Optional[str]:
    if not value:
        return None
    return value[:max_length]


class CredentialService:
    def __init__(self, store: CredentialStore, hasher: PasswordHasher, token_issuer: TokenIssuer):
        self._store = store
        self._hasher = hasher
        self._token_issuer = token_issuer

    def register(self, login: str, password: str, deadline: Optional[Deadline] = None) -> RegisterResult:
        if _is_blank(login) or _is_blank(password):
            return RegisterResult(success=False, message=MSG_REQUIRED)

        normalized = normalize_login(login)
        try:
            if self._store.account_exists(normalized, deadline=deadline):
                return RegisterResult(success=False, message=MSG_USER_EXISTS)

            password_hash = self._hasher.hash(password)
            account = self._store.create_account(login, normalized, password_hash, deadline=deadline)
        except AccountConflict:
            # Lost the race against a concurrent registration
            return RegisterResult(success=False, message=MSG_USER_EXISTS)
        except StoreUnavailable as e:
            raise ServiceUnavailable("registration could not be completed") from e

        logger.info("Account created: id=%s, login=%s", account.id, account.login)
        return RegisterResult(success=True, message=MSG_USER_CREATED)

    def login(
        self,
        login: str,
        password: str,
        remote_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> LoginResult:
        if _is_blank(login) or _is_blank(password):
            return LoginResult(success=False, message=MSG_REQUIRED)

        normalized = normalize_login(login)
        try:
            account = self._store.find_account_by_normalized_login(normalized, deadline=deadline)
        except StoreUnavailable as e:
            raise ServiceUnavailable("login could not be completed") from e

        success = account is not None and self._hasher.verify(account.password_hash, password)

        # Audited regardless of outcome, and regardless of the request deadline
        attempt = LoginAttempt(
            login=login,
            login_normalized=normalized,
            success=success,
            remote_ip=_clip(remote_ip, REMOTE_IP_MAX_LENGTH),
            user_agent=_clip(user_agent, USER_AGENT_MAX_LENGTH),
            occurred_at=utcnow(),
        )
        recorded = self._store.append_login_attempt(attempt)
        log_login_attempt(attempt, recorded)

        if not success:
            return LoginResult(success=False, message=MSG_INVALID_CREDENTIALS)

        token = self._token_issuer.issue(account.login)
        return LoginResult(
            success=True,
            message=MSG_OK,
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in_minutes=token.expires_in_minutes,
        )
