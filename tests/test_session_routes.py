try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi import HTTPException

from tracker import dependencies
from tracker.clients import AuthApiError
from tracker.core.config import get_settings
from tracker.main import app
from tracker.schemas import AuthSession, AuthUser
from tracker.services import SessionCipher
from tracker.utils.pkce import code_challenge

pytestmark = pytest.mark.anyio("asyncio")


class FakeAuthClient:
    def __init__(self) -> None:
        self.valid_tokens: dict[str, AuthUser] = {}
        self.refresh_results: dict[str, AuthSession] = {}
        self.refresh_calls: list[str] = []
        self.signed_out: list[str] = []
        self.fail_sign_out = False
        self.get_user_error: Exception | None = None
        self.refresh_error: Exception | None = None

    async def get_user(self, access_token: str) -> AuthUser:
        if self.get_user_error is not None:
            raise self.get_user_error
        if access_token not in self.valid_tokens:
            raise AuthApiError("invalid JWT", status_code=401)
        return self.valid_tokens[access_token]

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        if refresh_token not in self.refresh_results:
            raise AuthApiError("Invalid Refresh Token", status_code=400)
        return self.refresh_results[refresh_token]

    async def sign_out(self, access_token: str) -> None:
        if self.fail_sign_out:
            raise httpx.ConnectError("unreachable")
        self.signed_out.append(access_token)


@pytest.fixture()
def fake_auth():
    fake = FakeAuthClient()
    app.dependency_overrides[dependencies.get_supabase_auth_client] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture()
async def client():
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="https://app.example.com",
    ) as test_client:
        yield test_client


def _set_cookies(response: httpx.Response) -> dict[str, str]:
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        cookies[name] = rest.split(";", 1)[0].strip('"')
    return cookies


async def test_login_redirects_to_provider_with_pkce_challenge(client):
    settings = get_settings()

    response = await client.get("/auth/login")

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == settings.supabase.base_url
    assert location.path == "/auth/v1/authorize"
    query = parse_qs(location.query)
    assert query["provider"] == ["google"]
    assert query["redirect_to"] == ["https://app.example.com/auth/callback"]
    assert query["code_challenge_method"] == ["s256"]

    verifier = _set_cookies(response)[settings.session.verifier_cookie_name]
    assert 43 <= len(verifier) <= 128
    assert query["code_challenge"] == [code_challenge(verifier)]


async def test_login_accepts_provider_override(client):
    response = await client.get("/auth/login", params={"provider": "github"})

    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query["provider"] == ["github"]


async def test_current_user_requires_session(fake_auth, client):
    response = await client.get("/auth/user")

    assert response.status_code == 401


async def test_current_user_returns_user_for_valid_session(
    fake_auth, client, make_session, session_cookie
):
    session = make_session(access_token="good-token")
    fake_auth.valid_tokens["good-token"] = AuthUser(id="user-1", email="a@example.com")

    response = await client.get("/auth/user", headers=session_cookie(session))

    assert response.status_code == 200
    assert response.json()["id"] == "user-1"
    assert response.json()["email"] == "a@example.com"
    assert fake_auth.refresh_calls == []


async def test_current_user_refreshes_expiring_session(
    fake_auth, client, make_session, session_cookie
):
    settings = get_settings()
    stale = make_session(access_token="old", refresh_token="r-1", expires_in=5)
    fresh = make_session(access_token="new", refresh_token="r-2")
    fake_auth.refresh_results["r-1"] = fresh
    fake_auth.valid_tokens["new"] = AuthUser(id="user-1")

    response = await client.get("/auth/user", headers=session_cookie(stale))

    assert response.status_code == 200
    assert fake_auth.refresh_calls == ["r-1"]
    sealed = _set_cookies(response)[settings.session.cookie_name]
    cipher = SessionCipher(secret=settings.session.secret)
    assert cipher.unseal(sealed)["access_token"] == "new"


async def test_current_user_rejects_failed_refresh(
    fake_auth, client, make_session, session_cookie
):
    stale = make_session(refresh_token="revoked", expires_in=5)

    response = await client.get("/auth/user", headers=session_cookie(stale))

    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated."}
    assert fake_auth.refresh_calls == ["revoked"]
    assert _set_cookies(response)[get_settings().session.cookie_name] == ""


async def test_current_user_clears_refreshed_session_when_token_rejected(
    fake_auth, client, make_session, session_cookie
):
    settings = get_settings()
    stale = make_session(access_token="old", refresh_token="r-1", expires_in=5)
    fake_auth.refresh_results["r-1"] = make_session(access_token="unknown")

    response = await client.get("/auth/user", headers=session_cookie(stale))

    assert response.status_code == 401
    assert _set_cookies(response)[settings.session.cookie_name] == ""


async def test_current_user_refreshed_then_backend_down_keeps_new_cookie(
    fake_auth, client, make_session, session_cookie
):
    settings = get_settings()
    stale = make_session(access_token="old", refresh_token="r-1", expires_in=5)
    fake_auth.refresh_results["r-1"] = make_session(access_token="new")
    fake_auth.get_user_error = httpx.ConnectError("auth down")

    response = await client.get("/auth/user", headers=session_cookie(stale))

    assert response.status_code == 401
    sealed = _set_cookies(response)[settings.session.cookie_name]
    cipher = SessionCipher(secret=settings.session.secret)
    assert cipher.unseal(sealed)["access_token"] == "new"


async def test_guard_treats_auth_outage_as_anonymous_without_clearing(
    fake_auth, client, make_session, session_cookie
):
    fake_auth.get_user_error = httpx.ConnectError("auth down")

    response = await client.get(
        "/auth/guard",
        params={"path": "/dashboard"},
        headers=session_cookie(make_session(access_token="good-token")),
    )

    assert response.status_code == 200
    assert response.json()["allowed"] is False
    assert response.headers.get_list("set-cookie") == []


async def test_refresh_outage_leaves_cookie_untouched(
    fake_auth, client, make_session, session_cookie
):
    fake_auth.refresh_error = httpx.ReadTimeout("slow")
    stale = make_session(refresh_token="r-1", expires_in=5)

    response = await client.get("/auth/user", headers=session_cookie(stale))

    assert response.status_code == 401
    assert fake_auth.refresh_calls == ["r-1"]
    assert response.headers.get_list("set-cookie") == []



async def test_current_user_rejects_tampered_cookie(fake_auth, client):
    cookie_name = get_settings().session.cookie_name

    response = await client.get(
        "/auth/user", headers={"cookie": f"{cookie_name}=not-a-sealed-value"}
    )

    assert response.status_code == 401


@pytest.mark.parametrize(
    "path, allowed",
    [
        ("/dashboard", False),
        ("/projects/42", False),
        ("/team/manage", False),
        ("/auth/callback", True),
        ("/test/auth", True),
        ("/", True),
    ],
)
async def test_guard_for_anonymous_visitor(fake_auth, client, path, allowed):
    response = await client.get("/auth/guard", params={"path": path})

    assert response.status_code == 200
    body = response.json()
    assert body["allowed"] is allowed
    assert body["redirect_to"] == (None if allowed else "/")


async def test_guard_allows_signed_in_user(fake_auth, client, make_session, session_cookie):
    fake_auth.valid_tokens["good-token"] = AuthUser(id="user-1")
    session = make_session(access_token="good-token")

    response = await client.get(
        "/auth/guard", params={"path": "/dashboard"}, headers=session_cookie(session)
    )

    assert response.json() == {"path": "/dashboard", "allowed": True, "redirect_to": None}


async def test_sign_out_revokes_and_clears_cookie(
    fake_auth, client, make_session, session_cookie
):
    session = make_session(access_token="to-revoke")

    response = await client.post("/auth/signout", headers=session_cookie(session))

    assert response.status_code == 200
    assert response.json() == {"status": "signed_out"}
    assert fake_auth.signed_out == ["to-revoke"]
    assert _set_cookies(response)[get_settings().session.cookie_name] == ""


async def test_sign_out_clears_cookie_when_backend_unreachable(
    fake_auth, client, make_session, session_cookie
):
    fake_auth.fail_sign_out = True

    response = await client.post(
        "/auth/signout", headers=session_cookie(make_session())
    )

    assert response.status_code == 200
    assert _set_cookies(response)[get_settings().session.cookie_name] == ""


async def test_sign_out_without_session_is_noop_upstream(fake_auth, client):
    response = await client.post("/auth/signout")

    assert response.status_code == 200
    assert fake_auth.signed_out == []


async def test_current_user_dependency_requires_a_user():
    user = AuthUser(id="user-1")

    assert await dependencies.get_current_user(user) is user
    with pytest.raises(HTTPException) as excinfo:
        await dependencies.get_current_user(None)
    assert excinfo.value.status_code == 401
