"""
Supabase Auth (GoTrue) client.

Wraps the handful of hosted auth endpoints the tracker needs. Code validation,
replay protection and token issuance all happen on the Supabase side; this
module only moves requests and responses.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from tracker.core.config import SupabaseSettings
from tracker.schemas.auth import AuthSession, AuthUser
from tracker.utils.pkce import CHALLENGE_METHOD

logger = logging.getLogger(__name__)


class AuthApiError(Exception):
    """Raised when the Supabase Auth API rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExchangeError(AuthApiError):
    """Raised when an authorization code cannot be turned into a session."""


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.text


class SupabaseAuthClient:
    """Call Supabase Auth endpoints with the project's anon key."""

    def __init__(
        self,
        settings: SupabaseSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def auth_url(self) -> str:
        return f"{self._settings.base_url}/auth/v1"

    def _headers(self, access_token: str | None = None) -> Dict[str, str]:
        return {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {access_token or self._settings.anon_key}",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout, transport=self._transport
        ) as client:
            return await client.request(method, f"{self.auth_url}{path}", **kwargs)

    def build_authorize_url(
        self, *, provider: str, redirect_to: str, code_challenge: str
    ) -> str:
        """Construct the provider sign-in URL for a PKCE flow."""
        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": CHALLENGE_METHOD,
        }
        return f"{self.auth_url}/authorize?{urlencode(params)}"

    async def exchange_code_for_session(
        self, code: str, *, code_verifier: str
    ) -> AuthSession:
        """Exchange an authorization code and PKCE verifier for a session."""
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
            headers=self._headers(),
        )
        if response.status_code != httpx.codes.OK:
            logger.info("Code exchange rejected with HTTP %s", response.status_code)
            raise SessionExchangeError(
                _error_message(response), status_code=response.status_code
            )
        return self._parse_session(response, SessionExchangeError)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            headers=self._headers(),
        )
        if response.status_code != httpx.codes.OK:
            raise AuthApiError(_error_message(response), status_code=response.status_code)
        return self._parse_session(response, AuthApiError)

    async def get_user(self, access_token: str) -> AuthUser:
        """Validate an access token and return the user it belongs to."""
        response = await self._request("GET", "/user", headers=self._headers(access_token))
        if response.status_code != httpx.codes.OK:
            raise AuthApiError(_error_message(response), status_code=response.status_code)
        try:
            return AuthUser.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthApiError("Malformed user payload returned from Supabase.") from exc

    async def sign_out(self, access_token: str) -> None:
        response = await self._request(
            "POST", "/logout", headers=self._headers(access_token)
        )
        # 401/404 mean the session is already gone on the server.
        if response.status_code not in (
            httpx.codes.NO_CONTENT,
            httpx.codes.OK,
            httpx.codes.UNAUTHORIZED,
            httpx.codes.NOT_FOUND,
        ):
            raise AuthApiError(_error_message(response), status_code=response.status_code)

    @staticmethod
    def _parse_session(
        response: httpx.Response, error_cls: type[AuthApiError]
    ) -> AuthSession:
        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls("Token endpoint returned a non-JSON body.") from exc
        if not isinstance(payload, dict) or not (
            payload.get("access_token") and payload.get("refresh_token")
        ):
            raise error_cls("Incomplete session payload returned from Supabase.")
        try:
            return AuthSession.model_validate(payload)
        except ValidationError as exc:
            raise error_cls("Malformed session payload returned from Supabase.") from exc


__all__ = ["AuthApiError", "SessionExchangeError", "SupabaseAuthClient"]
