"""
Dev Monitor Router - Development-only endpoints for login attempt inspection.
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from ..service import normalize_login

router = APIRouter(prefix="/dev", tags=["dev-monitor"])
logger = logging.getLogger(__name__)

MAX_LIMIT = 1000


def is_dev_mode(request: Request) -> bool:
    """Check if DEV_MODE is enabled."""
    return request.app.state.settings.DEV_MODE


@router.get("/login-attempts")
def get_login_attempts(
    request: Request,
    limit: int = 50,
    login: Optional[str] = None,
    success: Optional[bool] = None,
):
    """
    Get recent login attempts (development only).

    Args:
        limit: Maximum number of attempts to return (default 50, max 1000)
        login: Filter by login, compared in normalized form (optional)
        success: Filter by outcome (optional)

    Raises:
        404: If DEV_MODE is not enabled
        400: If limit is not between 1 and 1000
    """
    client_host = request.client.host if request.client else "unknown"

    if not is_dev_mode(request):
        logger.warning(
            "Attempt to access /dev/login-attempts with DEV_MODE disabled from IP %s",
            client_host
        )
        raise HTTPException(status_code=404, detail="Not found")

    if limit < 1 or limit > MAX_LIMIT:
        raise HTTPException(
            status_code=400,
            detail=f"Limit must be between 1 and {MAX_LIMIT}"
        )

    store = request.app.state.store
    attempts = store.list_login_attempts(
        limit=limit,
        login_normalized=normalize_login(login) if login else None,
        success=success,
    )

    logger.info(
        "Dev login attempts accessed: limit=%s, login=%s, success=%s, results=%s, ip=%s",
        limit, login, success, len(attempts), client_host
    )

    return [attempt.to_dict() for attempt in attempts]
