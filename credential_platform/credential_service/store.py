"""
Credential store: accounts and the login attempt audit log.

The unique index on ``accounts.login_normalized`` is the only thing that
guarantees one account per normalized login. Callers may pre-check with
``account_exists`` but must handle ``AccountConflict`` from
``create_account``.

Deadlines bound each call twice: they are checked before a call starts
and before commit, and their remaining time becomes the lock/statement
timeout of the session's connection.
"""
import logging
import time
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .models import Account, LoginAttempt

logger = logging.getLogger(__name__)

# sqlite3 driver default
DEFAULT_LOCK_TIMEOUT_MS = 5000


class StoreUnavailable(Exception):
    """The store could not complete an operation (connection, timeout, cancellation)."""


class OperationCancelled(StoreUnavailable):
    """The caller's deadline expired before the operation completed."""


class AccountConflict(Exception):
    """An account with the same normalized login already exists."""

    def __init__(self, login_normalized: str):
        super().__init__(f"account already exists: {login_normalized}")
        self.login_normalized = login_normalized


class Deadline:
    """Point on the monotonic clock after which store calls are abandoned."""

    def __init__(self, expires_at: float):
        self.expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self) -> None:
        if self.expired():
            raise OperationCancelled("deadline exceeded")


def _check(deadline: Optional[Deadline]) -> None:
    if deadline is not None:
        deadline.check()


def timeout_ms(deadline: Optional[Deadline]) -> int:
    if deadline is None:
        return DEFAULT_LOCK_TIMEOUT_MS
    return max(1, int(deadline.remaining() * 1000))


def bound_session(session: Session, deadline: Optional[Deadline]) -> None:
    """Cap how long statements issued through this session may wait or run."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        # Pooled connections keep the pragma, so it is set on every call
        session.execute(text(f"PRAGMA busy_timeout = {timeout_ms(deadline)}"))
    elif dialect == "postgresql" and deadline is not None:
        session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms(deadline)}"))


def _failure(message: str, deadline: Optional[Deadline]) -> StoreUnavailable:
    if deadline is not None and deadline.expired():
        return OperationCancelled("deadline exceeded")
    return StoreUnavailable(message)


class CredentialStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def find_account_by_normalized_login(
        self, login_normalized: str, deadline: Optional[Deadline] = None
    ) -> Optional[Account]:
        _check(deadline)
        try:
            with self._session_factory() as session:
                bound_session(session, deadline)
                return (
                    session.query(Account)
                    .filter(Account.login_normalized == login_normalized)
                    .first()
                )
        except SQLAlchemyError as e:
            logger.error("Account lookup failed: %s", e)
            raise _failure("account lookup failed", deadline) from e

    def account_exists(self, login_normalized: str, deadline: Optional[Deadline] = None) -> bool:
        _check(deadline)
        try:
            with self._session_factory() as session:
                bound_session(session, deadline)
                found = (
                    session.query(Account.id)
                    .filter(Account.login_normalized == login_normalized)
                    .first()
                )
                return found is not None
        except SQLAlchemyError as e:
            logger.error("Account existence check failed: %s", e)
            raise _failure("account existence check failed", deadline) from e

    def create_account(
        self,
        login: str,
        login_normalized: str,
        password_hash: str,
        deadline: Optional[Deadline] = None,
    ) -> Account:
        """
        Insert a new account.

        Raises:
            AccountConflict: the unique index rejected the normalized login
            OperationCancelled: the deadline expired; nothing was committed
            StoreUnavailable: any other storage failure
        """
        _check(deadline)
        account = Account(login=login, login_normalized=login_normalized, password_hash=password_hash)
        with self._session_factory() as session:
            try:
                bound_session(session, deadline)
                session.add(account)
                session.flush()
                _check(deadline)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise AccountConflict(login_normalized) from e
            except OperationCancelled:
                session.rollback()
                raise
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Account creation failed: %s", e)
                raise _failure("account creation failed", deadline) from e
        return account

    def append_login_attempt(self, attempt: LoginAttempt) -> bool:
        """
        Append a login attempt to the audit log.

        Never raises for storage failures: the write is rolled back and
        reported on the log channel.

        Returns:
            True if the record was committed, False otherwise
        """
        with self._session_factory() as session:
            try:
                bound_session(session, None)
                session.add(attempt)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.warning(
                    "Failed to record login attempt - login=%s, success=%s, error=%s",
                    attempt.login, attempt.success, e
                )
                return False
        return True

    def list_login_attempts(
        self,
        limit: int = 50,
        login_normalized: Optional[str] = None,
        success: Optional[bool] = None,
    ) -> List[LoginAttempt]:
        """Newest-first slice of the audit log."""
        try:
            with self._session_factory() as session:
                bound_session(session, None)
                query = session.query(LoginAttempt)
                if login_normalized is not None:
                    query = query.filter(LoginAttempt.login_normalized == login_normalized)
                if success is not None:
                    query = query.filter(LoginAttempt.success == success)
                return query.order_by(LoginAttempt.id.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error("Login attempt query failed: %s", e)
            raise StoreUnavailable("login attempt query failed") from e
