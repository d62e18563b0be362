"""
AI issue assistant routes, mounted under ``/api/ai``.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tracker.dependencies import (
    get_issue_assistant,
    get_optional_user,
    get_session_cookie_jar,
)
from tracker.schemas import (
    AIResponse,
    AuthUser,
    CacheInvalidationRequest,
    CommentSummaryRequest,
    DuplicateDetectionRequest,
    IssueQuestionRequest,
    IssueSummaryRequest,
    LabelSuggestionRequest,
    SolutionRequest,
)
from tracker.services import IssueAssistant, SessionCookieJar
from tracker.services.ai_assistant import AssistantError, AssistantResult

router = APIRouter(prefix="/ai", tags=["ai"])
logger = logging.getLogger(__name__)

UserDependency = Annotated[Optional[AuthUser], Depends(get_optional_user)]
CookieDependency = Annotated[SessionCookieJar, Depends(get_session_cookie_jar)]
AssistantDependency = Annotated[IssueAssistant, Depends(get_issue_assistant)]


def _json(status_code: int, body: AIResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def _respond(
    cookies: SessionCookieJar,
    user: Optional[AuthUser],
    call: Callable[[str], Awaitable[AssistantResult]],
) -> JSONResponse:
    """Run ``call`` for the signed-in user and shape the outcome as ``AIResponse``."""
    if user is None:
        body = AIResponse(success=False, message="Sign in to use the AI assistant.")
        return cookies.write_to(_json(HTTPStatus.UNAUTHORIZED, body))
    try:
        result = await call(user.id)
    except AssistantError as exc:
        body = AIResponse(success=False, message=str(exc))
        return cookies.write_to(_json(exc.status_code, body))

    body = AIResponse(
        success=True,
        message=result.message,
        data=result.data,
        from_cache=result.from_cache or None,
    )
    return cookies.write_to(_json(HTTPStatus.OK, body))


@router.post("/summarize-issue", response_model=AIResponse)
async def summarize_issue(
    payload: IssueSummaryRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    return await _respond(
        cookies, user, lambda user_id: assistant.summarize_issue(user_id, payload)
    )


@router.post("/suggest-solution", response_model=AIResponse)
async def suggest_solution(
    payload: SolutionRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    return await _respond(
        cookies, user, lambda user_id: assistant.suggest_solution(user_id, payload)
    )


@router.post("/suggest-labels", response_model=AIResponse)
async def suggest_labels(
    payload: LabelSuggestionRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    return await _respond(
        cookies, user, lambda user_id: assistant.suggest_labels(user_id, payload)
    )


@router.post("/detect-duplicates", response_model=AIResponse)
async def detect_duplicates(
    payload: DuplicateDetectionRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    return await _respond(
        cookies, user, lambda user_id: assistant.detect_duplicates(user_id, payload)
    )


@router.post("/summarize-comments", response_model=AIResponse)
async def summarize_comments(
    payload: CommentSummaryRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    return await _respond(
        cookies, user, lambda user_id: assistant.summarize_comments(user_id, payload)
    )


@router.post("/ask", response_model=AIResponse)
async def ask_about_issue(
    payload: IssueQuestionRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    """Free-form question, optionally grounded in an issue's context."""
    return await _respond(
        cookies, user, lambda user_id: assistant.ask_about_issue(user_id, payload)
    )


@router.post("/invalidate-cache", response_model=AIResponse)
async def invalidate_issue_cache(
    payload: CacheInvalidationRequest,
    user: UserDependency,
    cookies: CookieDependency,
    assistant: AssistantDependency,
):
    """Forget cached results for an issue after it was edited."""

    async def _invalidate(user_id: str) -> AssistantResult:
        logger.info("User %s invalidated cached results for issue %s", user_id, payload.issue_id)
        await assistant.invalidate_issue_cache(payload)
        return AssistantResult()

    return await _respond(cookies, user, _invalidate)


__all__ = ["router"]
