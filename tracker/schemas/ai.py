"""Schemas for the AI issue assistant endpoints."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FeatureType(str, Enum):
    """Assistant feature, used to bucket rate limits and cached results."""

    SUMMARY = "AI_SUMMARY"
    SUGGESTION = "AI_SUGGESTION"
    AUTO_LABEL = "AI_AUTO_LABEL"
    DUPLICATE = "AI_DUPLICATE"
    COMMENT_SUMMARY = "AI_COMMENT_SUMMARY"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IssueSummaryRequest(_CamelModel):
    issue_id: str = Field(..., alias="issueId")
    description: Optional[str] = None


class SolutionRequest(_CamelModel):
    issue_id: str = Field(..., alias="issueId")
    title: str = ""
    description: Optional[str] = None


class LabelOption(BaseModel):
    name: str
    color: Optional[str] = None


class LabelSuggestionRequest(_CamelModel):
    issue_id: str = Field(..., alias="issueId")
    title: str = ""
    description: Optional[str] = None
    existing_labels: List[LabelOption] = Field(
        default_factory=list, alias="existingLabels"
    )


class IssueReference(BaseModel):
    id: str
    title: str
    description: Optional[str] = None


class DuplicateDetectionRequest(_CamelModel):
    project_id: str = Field(..., alias="projectId")
    title: str = ""
    description: Optional[str] = None
    existing_issues: List[IssueReference] = Field(
        default_factory=list, alias="existingIssues"
    )


class CommentAuthor(BaseModel):
    name: Optional[str] = None


class IssueComment(BaseModel):
    user: Optional[CommentAuthor] = None
    content: str


class CommentSummaryRequest(_CamelModel):
    issue_id: str = Field(..., alias="issueId")
    comments: List[IssueComment] = Field(default_factory=list)


class IssueQuestionRequest(_CamelModel):
    message: str
    issue_context: Optional[str] = Field(None, alias="issueContext")


class CacheInvalidationRequest(_CamelModel):
    issue_id: str = Field(..., alias="issueId")
    feature_types: Optional[List[FeatureType]] = Field(None, alias="featureTypes")


class AIResponse(_CamelModel):
    """Outcome of an assistant call."""

    success: bool
    message: Optional[str] = None
    data: Optional[List[str]] = None
    from_cache: Optional[bool] = Field(None, alias="fromCache")


__all__ = [
    "AIResponse",
    "CacheInvalidationRequest",
    "CommentAuthor",
    "CommentSummaryRequest",
    "DuplicateDetectionRequest",
    "FeatureType",
    "IssueComment",
    "IssueQuestionRequest",
    "IssueReference",
    "IssueSummaryRequest",
    "LabelOption",
    "LabelSuggestionRequest",
    "SolutionRequest",
]
