"""Schemas for Supabase Auth sessions and users."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Subset of the Supabase user object the tracker relies on."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    app_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Session returned by the token endpoint after a code exchange or refresh."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    expires_at: Optional[int] = Field(
        None, description="Unix timestamp when the access token expires."
    )
    user: Optional[AuthUser] = None

    def model_post_init(self, __context: Any) -> None:
        if self.expires_at is None:
            self.expires_at = int(time.time()) + self.expires_in

    def expires_within(self, seconds: int, *, now: float | None = None) -> bool:
        """Return True when the access token expires in ``seconds`` or less."""
        current = time.time() if now is None else now
        return (self.expires_at or 0) <= current + seconds


class CurrentUserResponse(BaseModel):
    """Body returned by the current-user endpoint."""

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class RouteGuardResult(BaseModel):
    """Whether a front-end page may render for the current visitor."""

    path: str
    allowed: bool
    redirect_to: Optional[str] = None


__all__ = ["AuthSession", "AuthUser", "CurrentUserResponse", "RouteGuardResult"]
