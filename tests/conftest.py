"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import copy
import time

import pytest

from tracker.core.config import get_settings
from tracker.schemas import AuthSession, AuthUser
from tracker.services import SessionCipher


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture()
def app_settings():
    """A private copy of the settings that a test may mutate."""
    return copy.deepcopy(get_settings())


@pytest.fixture()
def make_session():
    def _make(
        *,
        access_token: str = "access-1",
        refresh_token: str = "refresh-1",
        expires_in: int = 3600,
        user_id: str = "user-1",
    ) -> AuthSession:
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            expires_at=int(time.time()) + expires_in,
            user=AuthUser(id=user_id, email=f"{user_id}@example.com"),
        )

    return _make


@pytest.fixture()
def session_cookie():
    """Build a ``Cookie`` header carrying a sealed session."""
    settings = get_settings().session
    cipher = SessionCipher(
        secret=settings.secret, max_age_seconds=settings.max_age_seconds
    )

    def _header(session: AuthSession) -> dict[str, str]:
        sealed = cipher.seal(session.model_dump(mode="json"))
        return {"cookie": f"{settings.cookie_name}={sealed}"}

    return _header
