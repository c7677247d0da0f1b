"""Shared fixtures: settings, the in-memory database and API clients."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Environment must be in place before src.core.config is imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("FRONTEND_URL", "https://linket.test")
os.environ.setdefault("RESEND_API_KEY", "")

from tests.fakes import ACCOUNT_ID, FakeSupabase  # noqa: E402

# Services bind get_supabase_client at import time
SUPABASE_CLIENT_TARGETS = [
    "src.core.supabase.get_supabase_client",
    "src.services.account_service.get_supabase_client",
    "src.services.profile_service.get_supabase_client",
    "src.services.lead_form_service.get_supabase_client",
    "src.services.lead_service.get_supabase_client",
    "src.services.linket_service.get_supabase_client",
    "src.services.analytics_service.get_supabase_client",
    "src.services.vcard_service.get_supabase_client",
]


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Settings built from the test environment, cache cleared around the session."""
    from src.core.config import get_settings

    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def fake_db() -> Generator[FakeSupabase, None, None]:
    """Provide an in-memory Supabase stand-in wired into every service.

    Yields:
        FakeSupabase: The shared fake client.
    """
    db = FakeSupabase()
    patchers = [patch(target, return_value=db) for target in SUPABASE_CLIENT_TARGETS]
    for patcher in patchers:
        patcher.start()
    try:
        yield db
    finally:
        for patcher in reversed(patchers):
            patcher.stop()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> Generator[None, None, None]:
    """Give every test a fresh rate limiter."""
    import src.core.rate_limiter as rate_limiter

    rate_limiter._rate_limiter = None
    yield
    rate_limiter._rate_limiter = None


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client for the health checks.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()
    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_context() -> Any:
    """The signed-in account used by route tests."""
    from src.schemas.auth import UserContext

    return UserContext(user_id=ACCOUNT_ID, email="owner@example.com")


@pytest.fixture
def authed_client(fake_db: FakeSupabase, user_context: Any) -> Generator[TestClient, None, None]:
    """Test client backed by the fake database with authentication bypassed.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api.deps import get_current_user
    from src.main import app

    app.dependency_overrides[get_current_user] = lambda: user_context
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def public_client(fake_db: FakeSupabase) -> Generator[TestClient, None, None]:
    """Test client backed by the fake database without authentication.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
