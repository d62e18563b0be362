"""Turn an OAuth authorization code into a stored session."""

from __future__ import annotations

import logging
from typing import Protocol

from tracker.clients.supabase_auth import SessionExchangeError, SupabaseAuthClient
from tracker.services.session_cookies import SessionCookieJar

logger = logging.getLogger(__name__)


class SessionExchanger(Protocol):
    """Anything able to exchange an authorization code for a session."""

    async def exchange_code_for_session(self, code: str) -> None: ...


class SupabaseSessionExchanger:
    """
    Exchange codes through Supabase Auth and keep the result in cookies.

    One instance serves one request; it holds no state beyond the request's
    cookie jar.
    """

    def __init__(self, auth_client: SupabaseAuthClient, cookies: SessionCookieJar) -> None:
        self._auth = auth_client
        self._cookies = cookies

    async def exchange_code_for_session(self, code: str) -> None:
        verifier = self._cookies.code_verifier
        if not verifier:
            raise SessionExchangeError(
                "PKCE code verifier not found in cookies; restart the sign-in flow."
            )

        session = await self._auth.exchange_code_for_session(code, code_verifier=verifier)
        self._cookies.set_session(session)
        self._cookies.clear_code_verifier()
        logger.info(
            "Session established for user %s", session.user.id if session.user else "unknown"
        )


__all__ = ["SessionExchanger", "SupabaseSessionExchanger"]
