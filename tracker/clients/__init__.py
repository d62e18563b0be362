"""Expose constructed client wrappers."""

from .gemini import GeminiClient, GeminiModelError
from .supabase_auth import AuthApiError, SessionExchangeError, SupabaseAuthClient
from .supabase_rest import SupabaseRestClient, SupabaseRestError

__all__ = [
    "AuthApiError",
    "GeminiClient",
    "GeminiModelError",
    "SessionExchangeError",
    "SupabaseAuthClient",
    "SupabaseRestClient",
    "SupabaseRestError",
]
