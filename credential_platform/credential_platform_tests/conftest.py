"""
Pytest configuration for Credential Service tests.

Signing configuration must be present before the application module is
imported, since the module-level app is built from the environment.
"""
import os
import sqlite3
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("JWT_KEY", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("JWT_ISSUER", "credential-service-tests")
os.environ.setdefault("JWT_AUDIENCE", "credential-service-clients")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from credential_platform.credential_service.auth import PasswordHasher, TokenIssuer  # noqa: E402
from credential_platform.credential_service.config import Settings  # noqa: E402
from credential_platform.credential_service.db import (  # noqa: E402
    build_engine,
    build_session_factory,
    init_db,
)
from credential_platform.credential_service.service import CredentialService  # noqa: E402
from credential_platform.credential_service.store import CredentialStore  # noqa: E402

TEST_KEY = "test-signing-key-0123456789abcdef0123456789"
TEST_ISSUER = "credential-service-tests"
TEST_AUDIENCE = "credential-service-clients"


@contextmanager
def exclusive_lock(engine):
    """Hold an exclusive lock on the test database from a second connection."""
    holder = sqlite3.connect(engine.url.database, isolation_level=None)
    try:
        holder.execute("BEGIN EXCLUSIVE")
        yield
        holder.execute("ROLLBACK")
    finally:
        holder.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        JWT_KEY=TEST_KEY,
        JWT_ISSUER=TEST_ISSUER,
        JWT_AUDIENCE=TEST_AUDIENCE,
        DATABASE_URL=f"sqlite:///{tmp_path / 'credentials.db'}",
        DEV_MODE=True,
        _env_file=None,
    )


@pytest.fixture
def engine(settings):
    test_engine = build_engine(settings.DATABASE_URL)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def store(engine):
    return CredentialStore(build_session_factory(engine))


@pytest.fixture
def hasher():
    return PasswordHasher()


@pytest.fixture
def token_issuer():
    return TokenIssuer(key=TEST_KEY, issuer=TEST_ISSUER, audience=TEST_AUDIENCE)


@pytest.fixture
def service(store, hasher, token_issuer):
    return CredentialService(store, hasher, token_issuer)


@pytest.fixture
def client(settings):
    from credential_platform.credential_service.main import create_app

    with TestClient(create_app(settings)) as c:
        yield c
