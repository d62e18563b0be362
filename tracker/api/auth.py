"""
Browser-facing auth routes: sign-in start, OAuth callback, session and sign-out.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from tracker.clients import AuthApiError, SupabaseAuthClient
from tracker.core.config import AppSettings
from tracker.dependencies import (
    get_app_settings,
    get_optional_user,
    get_route_guard,
    get_session_cookie_jar,
    get_session_exchanger,
    get_supabase_auth_client,
)
from tracker.schemas import AuthUser, CurrentUserResponse, RouteGuardResult
from tracker.services import RouteGuard, SessionCookieJar, SessionExchanger
from tracker.utils.pkce import code_challenge, generate_code_verifier

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def request_origin(request: Request) -> str:
    """Scheme and authority of the inbound request, e.g. ``https://app.example.com``."""
    return f"{request.url.scheme}://{request.url.netloc}"


@router.get("/login", status_code=HTTPStatus.FOUND)
async def start_sign_in(
    request: Request,
    auth_client: Annotated[SupabaseAuthClient, Depends(get_supabase_auth_client)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    provider: Optional[str] = Query(
        default=None, description="Identity provider; defaults to the configured one."
    ),
) -> RedirectResponse:
    """Start a PKCE sign-in and send the browser to the provider consent screen."""
    verifier = generate_code_verifier()
    cookies.set_code_verifier(verifier)
    authorize_url = auth_client.build_authorize_url(
        provider=provider or settings.supabase.oauth_provider,
        redirect_to=f"{request_origin(request)}/auth/callback",
        code_challenge=code_challenge(verifier),
    )
    return cookies.write_to(
        RedirectResponse(url=authorize_url, status_code=HTTPStatus.FOUND)
    )


@router.get("/callback", status_code=HTTPStatus.FOUND)
async def handle_auth_callback(
    request: Request,
    exchanger: Annotated[SessionExchanger, Depends(get_session_exchanger)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    code: Optional[str] = Query(
        default=None, description="Authorization code issued by the identity provider."
    ),
) -> RedirectResponse:
    """
    Exchange the authorization code for a session, then go to the dashboard.

    The redirect is issued whether or not a code was supplied. Exchange
    failures are not converted into a response; they propagate to the
    server's error handling and no redirect is sent.
    """
    if code:
        try:
            await exchanger.exchange_code_for_session(code)
        except (AuthApiError, httpx.HTTPError) as exc:
            logger.warning("Authorization code exchange failed: %s", exc)
            raise
    else:
        logger.info("Auth callback reached without an authorization code.")

    target = f"{request_origin(request)}{settings.routes.post_login_path}"
    return cookies.write_to(RedirectResponse(url=target, status_code=HTTPStatus.FOUND))


@router.get("/user", response_model=CurrentUserResponse)
async def read_current_user(
    response: Response,
    user: Annotated[Optional[AuthUser], Depends(get_optional_user)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
):
    """Return the signed-in user, refreshing the session cookie when needed."""
    if user is None:
        # The 401 still has to carry a cleared or rotated session cookie.
        return cookies.write_to(
            JSONResponse(
                status_code=HTTPStatus.UNAUTHORIZED,
                content={"detail": "Not authenticated."},
            )
        )
    cookies.write_to(response)
    return CurrentUserResponse(
        id=user.id, email=user.email, user_metadata=user.user_metadata
    )



@router.get("/guard", response_model=RouteGuardResult)
async def check_page_access(
    response: Response,
    guard: Annotated[RouteGuard, Depends(get_route_guard)],
    user: Annotated[Optional[AuthUser], Depends(get_optional_user)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
    path: str = Query(..., description="Front-end path about to be rendered."),
) -> RouteGuardResult:
    """Tell the front-end whether ``path`` may render for the current visitor."""
    redirect_to = guard.redirect_for(path, authenticated=user is not None)
    if redirect_to:
        logger.info("Redirecting unauthenticated visitor from %s to %s", path, redirect_to)
    cookies.write_to(response)
    return RouteGuardResult(path=path, allowed=redirect_to is None, redirect_to=redirect_to)


@router.post("/signout", status_code=HTTPStatus.OK)
async def sign_out(
    auth_client: Annotated[SupabaseAuthClient, Depends(get_supabase_auth_client)],
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
) -> JSONResponse:
    """Revoke the session upstream when possible and always clear it locally."""
    session = cookies.get_session()
    if session is not None:
        try:
            await auth_client.sign_out(session.access_token)
        except (AuthApiError, httpx.HTTPError) as exc:
            logger.warning("Supabase sign-out failed; clearing local session: %s", exc)
    cookies.clear_session()
    return cookies.write_to(JSONResponse(content={"status": "signed_out"}))


__all__ = ["request_origin", "router"]
