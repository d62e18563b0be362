"""Expose dependency helpers for FastAPI routers."""

from .auth import get_current_user, get_optional_user
from .clients import (
    get_gemini_client,
    get_invitation_service,
    get_issue_assistant,
    get_route_guard,
    get_session_cipher,
    get_session_cookie_jar,
    get_session_exchanger,
    get_supabase_auth_client,
    get_supabase_rest_client,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_current_user",
    "get_gemini_client",
    "get_invitation_service",
    "get_issue_assistant",
    "get_optional_user",
    "get_route_guard",
    "get_session_cipher",
    "get_session_cookie_jar",
    "get_session_exchanger",
    "get_supabase_auth_client",
    "get_supabase_rest_client",
]
