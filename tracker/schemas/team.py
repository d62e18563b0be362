"""Schemas for team invitations."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class TeamRole(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class TeamInvitation(BaseModel):
    """Row of the ``team_invitations`` table."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    email: str
    token: str
    status: InvitationStatus = InvitationStatus.PENDING
    expires_at: datetime
    created_at: Optional[datetime] = None
    invited_by: Optional[str] = None
    team_id: Optional[str] = None
    role: Optional[TeamRole] = None


class InviteLinkRequest(BaseModel):
    """Body accepted by the invite link endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(None, description="Address of the person being invited.")
    invited_by: str = Field("admin", alias="invitedBy")
    team_id: Optional[str] = Field(None, alias="teamId")
    role: TeamRole = TeamRole.MEMBER


class InviteLinkResponse(BaseModel):
    """Outcome of an invite link request."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    token: Optional[str] = None
    invite_link: Optional[str] = Field(None, alias="inviteLink")


__all__ = [
    "InvitationStatus",
    "InviteLinkRequest",
    "InviteLinkResponse",
    "TeamInvitation",
    "TeamRole",
]
