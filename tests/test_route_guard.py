import pytest

from tracker.core.config import RouteSettings
from tracker.services import RouteGuard


@pytest.fixture()
def guard() -> RouteGuard:
    return RouteGuard(RouteSettings())


@pytest.mark.parametrize(
    "path",
    ["/dashboard", "/inbox", "/issues/12", "/projects/new", "/team/join", "/settings"],
)
def test_protected_pages(guard: RouteGuard, path: str) -> None:
    assert guard.is_protected(path)
    assert guard.redirect_for(path, authenticated=False) == "/"
    assert guard.redirect_for(path, authenticated=True) is None


@pytest.mark.parametrize("path", ["/", "/auth/callback", "/test/storage", "/teams-overview"])
def test_public_and_unlisted_pages(guard: RouteGuard, path: str) -> None:
    assert not guard.is_protected(path)
    assert guard.redirect_for(path, authenticated=False) is None


def test_public_prefix_wins_over_protected_prefix() -> None:
    guard = RouteGuard(
        RouteSettings(PROTECTED_ROUTES="/dashboard,/test", PUBLIC_ROUTES="/test")
    )

    assert not guard.is_protected("/test/crud")
    assert guard.is_protected("/dashboard")


def test_prefixes_parse_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROTECTED_ROUTES", "/board, /trash ,")
    monkeypatch.setenv("UNAUTHENTICATED_REDIRECT_PATH", "/login")

    settings = RouteSettings()

    assert settings.protected_prefixes == ("/board", "/trash")
    assert RouteGuard(settings).redirect_for("/trash", authenticated=False) == "/login"
