"""
Request-scoped cookie storage for the Supabase session and PKCE verifier.

A jar is built from the inbound request, collects every cookie change made
while the request is handled, and copies those changes onto whichever
response is finally returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from fastapi import Response
from pydantic import ValidationError

from tracker.core.config import SessionSettings
from tracker.schemas.auth import AuthSession
from tracker.services.session_cipher import SessionCipher

logger = logging.getLogger(__name__)

# Verifiers only need to survive the round trip to the identity provider.
VERIFIER_MAX_AGE_SECONDS = 600


@dataclass
class _PendingCookie:
    name: str
    value: Optional[str]
    max_age: Optional[int] = None


class SessionCookieJar:
    def __init__(
        self,
        cookies: Mapping[str, str],
        *,
        cipher: SessionCipher,
        settings: SessionSettings,
    ) -> None:
        self._cookies = dict(cookies)
        self._cipher = cipher
        self._settings = settings
        self._pending: Dict[str, _PendingCookie] = {}

    @property
    def pending_names(self) -> List[str]:
        return list(self._pending)

    def _current(self, name: str) -> Optional[str]:
        if name in self._pending:
            return self._pending[name].value
        return self._cookies.get(name)

    def get_session(self) -> Optional[AuthSession]:
        """Return the stored session, or None when absent or unreadable."""
        raw = self._current(self._settings.cookie_name)
        if not raw:
            return None
        try:
            return AuthSession.model_validate(self._cipher.unseal(raw))
        except (ValueError, ValidationError):
            logger.info("Discarding unreadable session cookie.")
            self.clear_session()
            return None

    def set_session(self, session: AuthSession) -> None:
        self._pending[self._settings.cookie_name] = _PendingCookie(
            name=self._settings.cookie_name,
            value=self._cipher.seal(session.model_dump(mode="json")),
            max_age=self._settings.max_age_seconds,
        )

    def clear_session(self) -> None:
        self._pending[self._settings.cookie_name] = _PendingCookie(
            name=self._settings.cookie_name, value=None
        )

    @property
    def code_verifier(self) -> Optional[str]:
        return self._current(self._settings.verifier_cookie_name) or None

    def set_code_verifier(self, verifier: str) -> None:
        name = self._settings.verifier_cookie_name
        self._pending[name] = _PendingCookie(
            name=name, value=verifier, max_age=VERIFIER_MAX_AGE_SECONDS
        )

    def clear_code_verifier(self) -> None:
        name = self._settings.verifier_cookie_name
        self._pending[name] = _PendingCookie(name=name, value=None)

    def write_to(self, response: Response) -> Response:
        """Apply pending cookie changes to ``response`` and return it."""
        for cookie in self._pending.values():
            if cookie.value is None:
                response.delete_cookie(
                    cookie.name,
                    path="/",
                    secure=self._settings.cookie_secure,
                    httponly=True,
                    samesite="lax",
                )
                continue
            response.set_cookie(
                cookie.name,
                cookie.value,
                max_age=cookie.max_age,
                path="/",
                secure=self._settings.cookie_secure,
                httponly=True,
                samesite="lax",
            )
        return response


__all__ = ["SessionCookieJar", "VERIFIER_MAX_AGE_SECONDS"]
