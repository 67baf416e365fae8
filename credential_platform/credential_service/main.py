"""
Credential Service - account registration, login and bearer token issuance
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .auth import PasswordHasher, TokenIssuer
from .config import Settings, get_settings
from .db import build_engine, build_session_factory, init_db
from .routes import credentials, dev_monitor, health
from .service import CredentialService, ServiceUnavailable
from .store import CredentialStore, StoreUnavailable
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup"""
    init_db(app.state.engine)
    yield
    app.state.engine.dispose()


async def service_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    # Storage detail stays in the logs
    logger.error("Request to %s failed: %r", request.url.path, exc.__cause__ or exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "service unavailable"},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and wire its dependencies once.

    Raises:
        pydantic.ValidationError: configuration is missing or invalid
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    engine = build_engine(settings.DATABASE_URL)
    store = CredentialStore(build_session_factory(engine))
    token_issuer = TokenIssuer(
        key=settings.JWT_KEY,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        access_token_minutes=settings.JWT_ACCESS_TOKEN_MINUTES,
    )

    app = FastAPI(
        title="Credential Service",
        description="Account registration, login and bearer token issuance",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.store = store
    app.state.token_issuer = token_issuer
    app.state.service = CredentialService(store, PasswordHasher(), token_issuer)

    app.add_exception_handler(ServiceUnavailable, service_unavailable_handler)
    app.add_exception_handler(StoreUnavailable, service_unavailable_handler)

    app.include_router(credentials.router)
    app.include_router(health.router)
    app.include_router(dev_monitor.router)

    logger.info(
        "Credential Service configured: issuer=%s, audience=%s, access_token_minutes=%s",
        settings.JWT_ISSUER, settings.JWT_AUDIENCE, settings.JWT_ACCESS_TOKEN_MINUTES
    )
    return app


app = create_app()
