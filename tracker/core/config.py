"""
Application configuration models and helpers.

Centralizes settings for the hosted Supabase backend, the session cookie,
route protection, team invitations and the Gemini issue assistant.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

import os

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, (tuple, list)):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SupabaseSettings(BaseSettings):
    """Connection details for the hosted Supabase project."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    url: AnyHttpUrl = Field(
        ...,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    anon_key: str = Field(
        ...,
        validation_alias=AliasChoices(
            "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
    )
    oauth_provider: str = Field("google", validation_alias="SUPABASE_OAUTH_PROVIDER")
    request_timeout: float = Field(10.0, validation_alias="SUPABASE_TIMEOUT")

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/")


class SessionSettings(BaseSettings):
    """Session cookie configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    secret: str = Field(
        ...,
        validation_alias="SESSION_SECRET",
        description="Secret used to derive the key sealing the session cookie.",
    )
    cookie_name: str = Field("sb-auth-token", validation_alias="SESSION_COOKIE_NAME")
    cookie_secure: bool = Field(True, validation_alias="SESSION_COOKIE_SECURE")
    max_age_seconds: int = Field(
        60 * 60 * 24 * 7, validation_alias="SESSION_MAX_AGE_SECONDS"
    )
    refresh_margin_seconds: int = Field(
        60,
        validation_alias="SESSION_REFRESH_MARGIN_SECONDS",
        description="Refresh access tokens this many seconds before they expire.",
    )

    @property
    def verifier_cookie_name(self) -> str:
        return f"{self.cookie_name}-code-verifier"


class RouteSettings(BaseSettings):
    """Post-login destination and page protection rules."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    post_login_path: str = Field("/dashboard", validation_alias="POST_LOGIN_PATH")
    unauthenticated_redirect_path: str = Field(
        "/", validation_alias="UNAUTHENTICATED_REDIRECT_PATH"
    )
    protected_prefixes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "/dashboard",
            "/inbox",
            "/issues",
            "/projects",
            "/reviews",
            "/settings",
            "/insights",
            "/views",
            "/team",
        ),
        validation_alias="PROTECTED_ROUTES",
    )
    public_prefixes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("/test", "/auth"), validation_alias="PUBLIC_ROUTES"
    )

    @field_validator("protected_prefixes", "public_prefixes", mode="before")
    @classmethod
    def _split_prefixes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing prefixes as a comma-separated string."""
        return _split_csv(value)


class InviteSettings(BaseSettings):
    """Team invitation link configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    base_url: AnyHttpUrl = Field(
        "http://localhost:3000",
        validation_alias=AliasChoices("APP_BASE_URL", "NEXT_PUBLIC_BASE_URL"),
    )
    ttl_days: int = Field(7, validation_alias="INVITE_TTL_DAYS")

    @property
    def link_base(self) -> str:
        return str(self.base_url).rstrip("/")


class GeminiSettings(BaseSettings):
    """Configuration for Gemini model access used by the issue assistant."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field("", validation_alias="GEMINI_API_KEY")
    model_name: str = Field("gemini-2.0-flash", validation_alias="GEMINI_MODEL_NAME")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    routes: RouteSettings = Field(default_factory=RouteSettings)
    invites: InviteSettings = Field(default_factory=InviteSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GeminiSettings",
    "InviteSettings",
    "RouteSettings",
    "SessionSettings",
    "SupabaseSettings",
    "get_settings",
]
