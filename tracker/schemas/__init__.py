"""Public schema exports."""

from .ai import (
    AIResponse,
    CacheInvalidationRequest,
    CommentAuthor,
    CommentSummaryRequest,
    DuplicateDetectionRequest,
    FeatureType,
    IssueComment,
    IssueQuestionRequest,
    IssueReference,
    IssueSummaryRequest,
    LabelOption,
    LabelSuggestionRequest,
    SolutionRequest,
)
from .auth import AuthSession, AuthUser, CurrentUserResponse, RouteGuardResult
from .team import (
    InvitationStatus,
    InviteLinkRequest,
    InviteLinkResponse,
    TeamInvitation,
    TeamRole,
)

__all__ = [
    "AIResponse",
    "AuthSession",
    "AuthUser",
    "CacheInvalidationRequest",
    "CommentAuthor",
    "CommentSummaryRequest",
    "CurrentUserResponse",
    "DuplicateDetectionRequest",
    "FeatureType",
    "InvitationStatus",
    "InviteLinkRequest",
    "InviteLinkResponse",
    "IssueComment",
    "IssueQuestionRequest",
    "IssueReference",
    "IssueSummaryRequest",
    "LabelOption",
    "LabelSuggestionRequest",
    "RouteGuardResult",
    "SolutionRequest",
    "TeamInvitation",
    "TeamRole",
]
