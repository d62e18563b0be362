"""
Factory functions providing clients and services as FastAPI dependencies.

Only the session cipher and the Gemini client are shared across requests.
Backend clients, cookie jars and exchangers are built per request and carry
no state between them.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from tracker.clients import GeminiClient, SupabaseAuthClient, SupabaseRestClient
from tracker.core.config import AppSettings, GeminiSettings
from tracker.dependencies.config import get_app_settings
from tracker.services import (
    AIResultCache,
    AIUsageLimiter,
    InvitationService,
    IssueAssistant,
    RouteGuard,
    SessionCipher,
    SessionCookieJar,
    SessionExchanger,
    SupabaseSessionExchanger,
)


@lru_cache()
def _cipher_for(secret: str, max_age_seconds: int) -> SessionCipher:
    return SessionCipher(secret=secret, max_age_seconds=max_age_seconds)


def get_session_cipher(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> SessionCipher:
    """Provide the cipher sealing session cookies."""
    return _cipher_for(settings.session.secret, settings.session.max_age_seconds)


def get_session_cookie_jar(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    cipher: Annotated[SessionCipher, Depends(get_session_cipher)],
) -> SessionCookieJar:
    """Wrap the inbound request's cookies; FastAPI reuses it within one request."""
    return SessionCookieJar(request.cookies, cipher=cipher, settings=settings.session)


def get_supabase_auth_client(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> SupabaseAuthClient:
    return SupabaseAuthClient(settings.supabase)


def get_session_exchanger(
    auth_client: Annotated[SupabaseAuthClient, Depends(get_supabase_auth_client)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
) -> SessionExchanger:
    """Build the request-scoped code exchanger."""
    return SupabaseSessionExchanger(auth_client, cookies)


def get_supabase_rest_client(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
) -> SupabaseRestClient:
    """Table client acting as the signed-in user when a session cookie exists."""
    session = cookies.get_session()
    return SupabaseRestClient(
        settings.supabase, access_token=session.access_token if session else None
    )


def get_invitation_service(
    rest_client: Annotated[SupabaseRestClient, Depends(get_supabase_rest_client)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> InvitationService:
    return InvitationService(rest_client, settings.invites)


@lru_cache()
def _gemini_for(api_key: str, model_name: str) -> GeminiClient:
    return GeminiClient(GeminiSettings(api_key=api_key, model_name=model_name))


def get_gemini_client(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> GeminiClient:
    return _gemini_for(settings.gemini.api_key, settings.gemini.model_name)


def get_issue_assistant(
    gemini: Annotated[GeminiClient, Depends(get_gemini_client)],
    rest_client: Annotated[SupabaseRestClient, Depends(get_supabase_rest_client)],
) -> IssueAssistant:
    """Assistant whose usage and cache tables are read as the signed-in user."""
    return IssueAssistant(
        gemini, AIUsageLimiter(rest_client), AIResultCache(rest_client)
    )


def get_route_guard(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> RouteGuard:
    return RouteGuard(settings.routes)


__all__ = [
    "get_gemini_client",
    "get_invitation_service",
    "get_issue_assistant",
    "get_route_guard",
    "get_session_cipher",
    "get_session_cookie_jar",
    "get_session_exchanger",
    "get_supabase_auth_client",
    "get_supabase_rest_client",
]
