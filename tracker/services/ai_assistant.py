"""
AI issue assistant: summaries, solution ideas, labels, duplicates and Q&A.

Every call is rate limited per user and feature. Deterministic features are
cached by a hash of their input so repeated requests skip the model.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Protocol

from tracker.clients.gemini import GeminiModelError
from tracker.schemas.ai import (
    CacheInvalidationRequest,
    CommentSummaryRequest,
    DuplicateDetectionRequest,
    FeatureType,
    IssueQuestionRequest,
    IssueSummaryRequest,
    LabelSuggestionRequest,
    SolutionRequest,
)
from tracker.services.ai_usage import AIResultCache, AIUsageLimiter, input_hash

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 10
MIN_COMMENTS_FOR_SUMMARY = 5
MAX_SUGGESTED_LABELS = 3
MAX_DUPLICATES = 3
MAX_ISSUES_IN_PROMPT = 20

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


class TextGenerator(Protocol):
    async def generate_text(self, prompt: str) -> str:
        ...


class AssistantError(Exception):
    """Base class for assistant failures."""

    status_code = 500


class InvalidAssistantRequest(AssistantError):
    status_code = 400


class RateLimitExceeded(AssistantError):
    status_code = 429


class AssistantProviderError(AssistantError):
    status_code = 502


@dataclass
class AssistantResult:
    message: Optional[str] = None
    data: Optional[List[str]] = None
    from_cache: bool = False


def _provider_error(detail: str) -> AssistantProviderError:
    if "API_KEY" in detail or "API key not valid" in detail:
        return AssistantProviderError(
            "The Gemini API key is not valid. Create a key at "
            "https://aistudio.google.com/apikey and set GEMINI_API_KEY."
        )
    if "404" in detail:
        return AssistantProviderError(
            "The Gemini model could not be found. Check GEMINI_MODEL_NAME and the API key."
        )
    return AssistantProviderError("The Gemini API call failed. Check the server logs.")


def _require_description(description: Optional[str]) -> str:
    if not description or len(description) < MIN_DESCRIPTION_LENGTH:
        raise InvalidAssistantRequest(
            "The description is too short. "
            f"At least {MIN_DESCRIPTION_LENGTH} characters are required."
        )
    return description


def _parse_string_array(text: str) -> List[str]:
    match = _JSON_ARRAY.search(text)
    if not match:
        return []
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AssistantProviderError("Could not parse the AI response.") from exc
    if not isinstance(parsed, list):
        raise AssistantProviderError("Could not parse the AI response.")
    return [item for item in parsed if isinstance(item, str)]


class IssueAssistant:
    def __init__(
        self,
        gemini: TextGenerator,
        limiter: AIUsageLimiter,
        cache: AIResultCache,
    ) -> None:
        self._gemini = gemini
        self._limiter = limiter
        self._cache = cache

    async def _enforce_limit(self, user_id: str, feature: FeatureType) -> None:
        rejection = await self._limiter.check(user_id, feature)
        if rejection:
            logger.info("Assistant rate limit hit for user %s (%s)", user_id, feature.value)
            raise RateLimitExceeded(rejection)

    async def _generate(self, prompt: str) -> str:
        try:
            return await self._gemini.generate_text(prompt)
        except GeminiModelError as exc:
            logger.error("Gemini call failed: %s", exc)
            raise _provider_error(str(exc)) from exc

    async def _run_cached(
        self,
        user_id: str,
        feature: FeatureType,
        *,
        cache_key: str,
        result_key: str,
        input_data: Mapping[str, Any],
        prompt: str,
        parse: Callable[[str], Any] = lambda text: text,
    ) -> tuple[Any, bool]:
        await self._enforce_limit(user_id, feature)

        digest = input_hash(cache_key)
        cached = await self._cache.get(feature, digest)
        if cached is not None and result_key in cached:
            return cached[result_key], True

        value = parse(await self._generate(prompt))
        await self._cache.save(feature, digest, input_data, {result_key: value})
        await self._limiter.record(user_id, feature)
        return value, False

    async def summarize_issue(
        self, user_id: str, request: IssueSummaryRequest
    ) -> AssistantResult:
        description = _require_description(request.description)
        prompt = (
            "Summarize the following issue description in 2-4 sentences:\n\n"
            f"{description}\n\nSummary:"
        )
        summary, from_cache = await self._run_cached(
            user_id,
            FeatureType.SUMMARY,
            cache_key=description,
            result_key="summary",
            input_data={"issueId": request.issue_id, "description": description},
            prompt=prompt,
        )
        return AssistantResult(message=summary, from_cache=from_cache)

    async def suggest_solution(
        self, user_id: str, request: SolutionRequest
    ) -> AssistantResult:
        description = _require_description(request.description)
        prompt = (
            "Suggest a strategy for resolving the following issue.\n\n"
            f"Title: {request.title}\nDescription: {description}\n\n"
            "Propose 3-5 concrete, actionable steps."
        )
        suggestion, from_cache = await self._run_cached(
            user_id,
            FeatureType.SUGGESTION,
            cache_key=request.title + description,
            result_key="suggestion",
            input_data={
                "issueId": request.issue_id,
                "title": request.title,
                "description": description,
            },
            prompt=prompt,
        )
        return AssistantResult(message=suggestion, from_cache=from_cache)

    async def suggest_labels(
        self, user_id: str, request: LabelSuggestionRequest
    ) -> AssistantResult:
        """Pick up to three of the project's existing labels for an issue."""
        description = _require_description(request.description)
        if not request.existing_labels:
            raise InvalidAssistantRequest(
                "The project has no labels yet. Create labels first."
            )

        labels = [label.model_dump() for label in request.existing_labels]
        known = {label.name for label in request.existing_labels}
        prompt = (
            f"Recommend up to {MAX_SUGGESTED_LABELS} labels for the following issue, "
            "chosen only from the project's existing labels.\n\n"
            f"Issue title: {request.title}\nIssue description: {description}\n\n"
            f"Available labels: {', '.join(label['name'] for label in labels)}\n\n"
            "Return the label names as a JSON array, for example "
            '["label1", "label2", "label3"].'
        )

        def _valid_labels(text: str) -> List[str]:
            names = [name for name in _parse_string_array(text) if name in known]
            return names[:MAX_SUGGESTED_LABELS]

        chosen, from_cache = await self._run_cached(
            user_id,
            FeatureType.AUTO_LABEL,
            cache_key=request.title + description + json.dumps(labels),
            result_key="labels",
            input_data={
                "issueId": request.issue_id,
                "title": request.title,
                "description": description,
                "existingLabels": labels,
            },
            prompt=prompt,
            parse=_valid_labels,
        )
        return AssistantResult(data=list(chosen), from_cache=from_cache)

    async def detect_duplicates(
        self, user_id: str, request: DuplicateDetectionRequest
    ) -> AssistantResult:
        """Return the IDs of up to three existing issues similar to the new one."""
        description = _require_description(request.description)
        if not request.existing_issues:
            return AssistantResult(
                data=[], message="There are no existing issues to compare."
            )

        known = {issue.id for issue in request.existing_issues}
        listing = "\n\n".join(
            f"{index}. [ID: {issue.id}] {issue.title}\n"
            f"   {issue.description or 'No description'}"
            for index, issue in enumerate(
                request.existing_issues[:MAX_ISSUES_IN_PROMPT], start=1
            )
        )
        prompt = (
            "Find existing issues that are similar to this new issue.\n\n"
            f"[New issue]\nTitle: {request.title}\nDescription: {description}\n\n"
            f"[Existing issues]\n{listing}\n\n"
            f"Return the IDs of similar issues as a JSON array (at most {MAX_DUPLICATES}, "
            "most similar first). Return an empty array when none are similar.\n"
            'Example: ["issue-id-1", "issue-id-2"]'
        )

        def _valid_ids(text: str) -> List[str]:
            ids = [issue_id for issue_id in _parse_string_array(text) if issue_id in known]
            return ids[:MAX_DUPLICATES]

        duplicates, from_cache = await self._run_cached(
            user_id,
            FeatureType.DUPLICATE,
            cache_key=request.title
            + description
            + json.dumps([issue.id for issue in request.existing_issues]),
            result_key="duplicates",
            input_data={
                "projectId": request.project_id,
                "title": request.title,
                "description": description,
            },
            prompt=prompt,
            parse=_valid_ids,
        )
        return AssistantResult(data=list(duplicates), from_cache=from_cache)

    async def summarize_comments(
        self, user_id: str, request: CommentSummaryRequest
    ) -> AssistantResult:
        if len(request.comments) < MIN_COMMENTS_FOR_SUMMARY:
            raise InvalidAssistantRequest(
                "A discussion summary needs at least "
                f"{MIN_COMMENTS_FOR_SUMMARY} comments."
            )

        formatted = "\n".join(
            f"{index}. {(comment.user and comment.user.name) or 'Unknown'}: {comment.content}"
            for index, comment in enumerate(request.comments, start=1)
        )
        prompt = (
            "Summarize the discussion in the following issue comments:\n\n"
            f"{formatted}\n\n"
            "Use 3-5 sentences and include any key decisions."
        )
        summary, from_cache = await self._run_cached(
            user_id,
            FeatureType.COMMENT_SUMMARY,
            cache_key="\n".join(comment.content for comment in request.comments),
            result_key="summary",
            input_data={
                "issueId": request.issue_id,
                "comments": [comment.model_dump() for comment in request.comments],
            },
            prompt=prompt,
        )
        return AssistantResult(message=summary, from_cache=from_cache)

    async def ask_about_issue(
        self, user_id: str, request: IssueQuestionRequest
    ) -> AssistantResult:
        """Answer a free-form question; answers are never cached."""
        if not request.message.strip():
            raise InvalidAssistantRequest("A question is required.")
        await self._enforce_limit(user_id, FeatureType.SUGGESTION)

        prompt = request.message
        if request.issue_context:
            prompt = (
                "This question is about the following issue.\n\n"
                f"Issue context:\n{request.issue_context}\n\n"
                f"Question: {request.message}"
            )
        answer = await self._generate(prompt)
        await self._limiter.record(user_id, FeatureType.SUGGESTION)
        return AssistantResult(message=answer)

    async def invalidate_issue_cache(self, request: CacheInvalidationRequest) -> None:
        await self._cache.invalidate(request.issue_id, request.feature_types)


__all__ = [
    "AssistantError",
    "AssistantProviderError",
    "AssistantResult",
    "InvalidAssistantRequest",
    "IssueAssistant",
    "RateLimitExceeded",
    "TextGenerator",
]
