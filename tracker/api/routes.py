"""
JSON API routes for the project tracker.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tracker.clients import SupabaseRestError
from tracker.dependencies import get_invitation_service
from tracker.schemas import InviteLinkRequest, InviteLinkResponse
from tracker.services import InvitationService
from tracker.services.invitations import InvitationError

router = APIRouter()
logger = logging.getLogger(__name__)

INVITE_LINK_PATH = "/api/generate-invite-link"


def _failure(status_code: int, message: str) -> JSONResponse:
    body = InviteLinkResponse(success=False, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def invite_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Report malformed invite requests in the endpoint's own response shape.

    An unparsable JSON body is treated as a server error; any other invalid
    field is a 400. Other routes keep FastAPI's default 422 response.
    """
    if request.url.path != INVITE_LINK_PATH:
        return await request_validation_exception_handler(request, exc)
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        logger.warning("Invite request body is not valid JSON.")
        return _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "A server error occurred.")
    field = next(
        (str(error["loc"][-1]) for error in errors if error.get("loc")), "body"
    )
    return _failure(HTTPStatus.BAD_REQUEST, f"Invalid value for '{field}'.")


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/generate-invite-link", response_model=InviteLinkResponse)
async def generate_invite_link(
    payload: InviteLinkRequest,
    service: Annotated[InvitationService, Depends(get_invitation_service)],
):
    """Create (or reuse) a pending invitation and return its join link."""
    try:
        invite = await service.generate_invite_link(payload)
    except InvitationError as exc:
        return _failure(exc.status_code, str(exc))
    except (SupabaseRestError, httpx.HTTPError) as exc:
        logger.exception("Invite link generation failed: %s", exc)
        return _failure(HTTPStatus.INTERNAL_SERVER_ERROR, "A server error occurred.")

    return InviteLinkResponse(
        success=True,
        message="Invite link created.",
        token=invite.token,
        invite_link=invite.link,
    )


__all__ = ["INVITE_LINK_PATH", "invite_validation_exception_handler", "router"]
