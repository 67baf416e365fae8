"""
Logging setup and request metadata helpers for login auditing.
"""
import logging
import os
import sys
from typing import Optional

from fastapi import Request

from ..models import LoginAttempt

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(message)s"


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure stdout logging, plus a login_attempts.log file when log_dir is set.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    # Try to add file handler, but continue without it if directory creation fails
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(log_dir, "login_attempts.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


def client_address(request: Request) -> Optional[str]:
    """Peer address of the request, falling back to the first X-Forwarded-For entry."""
    ip_address = None
    if request.client:
        ip_address = request.client.host

    # X-Forwarded-For can contain multiple IPs, take the first one
    forwarded_for = request.headers.get("x-forwarded-for")
    if not ip_address and forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip() or None

    return ip_address


def client_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent") or None


def log_login_attempt(attempt: LoginAttempt, recorded: bool) -> None:
    event_type = "login_success" if attempt.success else "login_failure"
    logger.info(
        "AUTH %s login=%s ip=%s recorded=%s timestamp=%s",
        event_type,
        attempt.login,
        attempt.remote_ip,
        recorded,
        attempt.occurred_at.isoformat() if attempt.occurred_at else None,
    )
