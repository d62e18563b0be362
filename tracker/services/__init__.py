"""Service layer exports."""

from .ai_assistant import IssueAssistant
from .ai_usage import AIResultCache, AIUsageLimiter
from .invitations import InvitationService
from .route_guard import RouteGuard
from .session_cipher import SessionCipher
from .session_cookies import SessionCookieJar
from .session_exchange import SessionExchanger, SupabaseSessionExchanger

__all__ = [
    "AIResultCache",
    "AIUsageLimiter",
    "InvitationService",
    "IssueAssistant",
    "RouteGuard",
    "SessionCipher",
    "SessionCookieJar",
    "SessionExchanger",
    "SupabaseSessionExchanger",
]
