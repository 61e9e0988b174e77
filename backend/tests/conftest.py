"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read once at import time, so the test environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "account_api_tests.log"))
os.environ.setdefault("DB_INIT_MODE", "create_all")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from account_api.core.database import Base, SessionLocal, engine, get_db
from account_api.core.security import PasswordHasher, TokenService, get_password_hasher, get_token_service
from account_api.repositories.user_repository import UserRepository


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Fresh schema on the shared in-memory SQLite engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="hasher")
def hasher_fixture() -> PasswordHasher:
    return get_password_hasher()


@pytest.fixture(name="tokens")
def tokens_fixture() -> TokenService:
    return get_token_service()


@pytest.fixture(name="repo")
def repo_fixture(db_session: Session, hasher: PasswordHasher) -> UserRepository:
    return UserRepository(db_session, hasher)


@pytest.fixture(name="make_user")
def make_user_fixture(repo: UserRepository):
    """Factory creating users straight through the repository."""

    def _make(username="alice", email=None, password="longenough1", role=None, is_active=True):
        return repo.create(
            username=username,
            email=email or f"{username}@example.com",
            password=password,
            role=role,
            is_active=is_active,
        )

    return _make


@pytest.fixture(name="auth_header")
def auth_header_fixture(tokens: TokenService):
    """Build an Authorization header for a stored user."""

    def _header(user):
        return {"Authorization": f"Bearer {tokens.issue(user.id, user.role)}"}

    return _header


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Test client bound to the test session with rate limiting disabled."""
    from account_api.main import app
    from account_api.services.rate_limiter import rate_limiter

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    previously_enabled = rate_limiter.enabled
    rate_limiter.enabled = False
    rate_limiter.reset()
    yield TestClient(app)
    rate_limiter.enabled = previously_enabled
    rate_limiter.reset()
    app.dependency_overrides.clear()
