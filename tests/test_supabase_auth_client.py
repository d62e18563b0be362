from __future__ import annotations

import json

import httpx
import pytest

from tracker.clients import AuthApiError, SessionExchangeError, SupabaseAuthClient
from tracker.core.config import SupabaseSettings

SETTINGS = SupabaseSettings(
    SUPABASE_URL="https://project-ref.supabase.co",
    SUPABASE_ANON_KEY="anon-key",
)


def _client(handler) -> SupabaseAuthClient:
    return SupabaseAuthClient(SETTINGS, transport=httpx.MockTransport(handler))


def test_build_authorize_url_includes_pkce_parameters() -> None:
    url = _client(lambda request: httpx.Response(200)).build_authorize_url(
        provider="google",
        redirect_to="https://app.example.com/auth/callback",
        code_challenge="challenge",
    )

    parsed = httpx.URL(url)
    assert f"{parsed.scheme}://{parsed.host}{parsed.path}" == (
        "https://project-ref.supabase.co/auth/v1/authorize"
    )
    assert parsed.params["provider"] == "google"
    assert parsed.params["redirect_to"] == "https://app.example.com/auth/callback"
    assert parsed.params["code_challenge"] == "challenge"
    assert parsed.params["code_challenge_method"] == "s256"


@pytest.mark.anyio
async def test_exchange_code_posts_pkce_grant() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "at",
                "refresh_token": "rt",
                "expires_in": 3600,
                "expires_at": 1_900_000_000,
                "user": {"id": "u-1", "email": "dev@example.com", "aud": "authenticated"},
            },
        )

    session = await _client(handler).exchange_code_for_session("code-1", code_verifier="v-1")

    assert session.access_token == "at"
    assert session.expires_at == 1_900_000_000
    assert session.user is not None and session.user.id == "u-1"

    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "pkce"
    assert json.loads(request.content) == {"auth_code": "code-1", "code_verifier": "v-1"}
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


@pytest.mark.anyio
async def test_exchange_code_raises_with_backend_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Code already used"},
        )

    with pytest.raises(SessionExchangeError) as excinfo:
        await _client(handler).exchange_code_for_session("code-1", code_verifier="v")

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Code already used"


@pytest.mark.anyio
async def test_exchange_code_rejects_incomplete_session() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"access_token": "only-access"})

    with pytest.raises(SessionExchangeError):
        await _client(handler).exchange_code_for_session("code-1", code_verifier="v")


@pytest.mark.anyio
async def test_exchange_code_is_not_retried() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(503, text="unavailable")

    with pytest.raises(SessionExchangeError):
        await _client(handler).exchange_code_for_session("code-1", code_verifier="v")

    assert len(attempts) == 1


@pytest.mark.anyio
async def test_refresh_session_uses_refresh_grant() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["grant_type"] == "refresh_token"
        assert json.loads(request.content) == {"refresh_token": "rt-old"}
        return httpx.Response(
            200, json={"access_token": "at-new", "refresh_token": "rt-new", "expires_in": 60}
        )

    session = await _client(handler).refresh_session("rt-old")

    assert session.refresh_token == "rt-new"
    assert session.expires_within(60)


@pytest.mark.anyio
async def test_get_user_sends_bearer_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer user-token"
        return httpx.Response(200, json={"id": "u-7", "email": "u7@example.com"})

    user = await _client(handler).get_user("user-token")

    assert user.id == "u-7"


@pytest.mark.anyio
async def test_get_user_raises_for_rejected_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"msg": "invalid JWT"})

    with pytest.raises(AuthApiError) as excinfo:
        await _client(handler).get_user("expired")

    assert excinfo.value.status_code == 401
    assert not isinstance(excinfo.value, SessionExchangeError)


@pytest.mark.anyio
@pytest.mark.parametrize("status_code", [204, 401])
async def test_sign_out_tolerates_missing_session(status_code: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/auth/v1/logout"
        return httpx.Response(status_code)

    await _client(handler).sign_out("token")


@pytest.mark.anyio
async def test_sign_out_raises_on_server_error() -> None:
    with pytest.raises(AuthApiError):
        await _client(lambda request: httpx.Response(500)).sign_out("token")
