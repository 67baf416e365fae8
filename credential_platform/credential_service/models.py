from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, func

from .db import Base

LOGIN_MAX_LENGTH = 200
REMOTE_IP_MAX_LENGTH = 100
USER_AGENT_MAX_LENGTH = 512


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts"
    id = Column(Integer, primary_key=True)
    login = Column(String(LOGIN_MAX_LENGTH), nullable=False)
    login_normalized = Column(String(LOGIN_MAX_LENGTH), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, login={self.login})>"


class LoginAttempt(Base):
    """
    Append-only audit record of one login attempt.

    Deliberately carries no foreign key to accounts: attempts for logins
    that never resolved to an account are kept as well.
    """
    __tablename__ = "login_attempts"
    # SQLite only autoincrements INTEGER primary keys
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    login = Column(String(LOGIN_MAX_LENGTH), nullable=False)
    login_normalized = Column(String(LOGIN_MAX_LENGTH), index=True, nullable=False)
    success = Column(Boolean, nullable=False)
    remote_ip = Column(String(REMOTE_IP_MAX_LENGTH), nullable=True)
    user_agent = Column(String(USER_AGENT_MAX_LENGTH), nullable=True)
    occurred_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    def to_dict(self) -> dict:
        """
        Serialize LoginAttempt for the dev monitor.

        Returns:
            Dictionary with all attempt fields, datetimes in ISO 8601 format
        """
        return {
            "id": self.id,
            "login": self.login,
            "login_normalized": self.login_normalized,
            "success": self.success,
            "remote_ip": self.remote_ip,
            "user_agent": self.user_agent,
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
        }
