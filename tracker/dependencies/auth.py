"""
Authentication dependencies resolving the signed-in user from the session cookie.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

import httpx
from fastapi import Depends, HTTPException

from tracker.clients import AuthApiError, SupabaseAuthClient
from tracker.core.config import AppSettings
from tracker.dependencies.clients import get_session_cookie_jar, get_supabase_auth_client
from tracker.dependencies.config import get_app_settings
from tracker.schemas import AuthUser
from tracker.services import SessionCookieJar

logger = logging.getLogger(__name__)


async def get_optional_user(
    cookies: Annotated[SessionCookieJar, Depends(get_session_cookie_jar)],
    auth_client: Annotated[SupabaseAuthClient, Depends(get_supabase_auth_client)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Optional[AuthUser]:
    """
    Return the signed-in user or None.

    Access tokens close to expiry are refreshed first and the new session is
    written back through the cookie jar. A session the backend no longer
    accepts is cleared. When the backend cannot be reached the visitor is
    treated as anonymous for this request and the cookie is left alone.
    """
    session = cookies.get_session()
    if session is None:
        return None

    if session.expires_within(settings.session.refresh_margin_seconds):
        try:
            session = await auth_client.refresh_session(session.refresh_token)
        except AuthApiError as exc:
            logger.info("Session refresh rejected: %s", exc.message)
            cookies.clear_session()
            return None
        except httpx.HTTPError as exc:
            logger.warning("Session refresh unavailable: %s", exc)
            return None
        cookies.set_session(session)

    try:
        return await auth_client.get_user(session.access_token)
    except AuthApiError as exc:
        logger.info("Access token rejected: %s", exc.message)
        cookies.clear_session()
        return None
    except httpx.HTTPError as exc:
        logger.warning("User lookup unavailable: %s", exc)
        return None


async def get_current_user(
    user: Annotated[Optional[AuthUser], Depends(get_optional_user)],
) -> AuthUser:
    """FastAPI dependency requiring a signed-in user."""
    if user is None:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Not authenticated.",
        )
    return user


__all__ = ["get_current_user", "get_optional_user"]
