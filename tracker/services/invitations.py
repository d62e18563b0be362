"""
Team invitation link generation.

Invitations live in the ``team_invitations`` table of the hosted database.
A pending invitation for the same address and team is reused so repeated
requests hand out the same link.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from tracker.clients.supabase_rest import SupabaseRestClient, SupabaseRestError
from tracker.core.config import InviteSettings
from tracker.schemas.team import InvitationStatus, InviteLinkRequest, TeamRole

logger = logging.getLogger(__name__)

INVITATIONS_TABLE = "team_invitations"
USERS_TABLE = "users"
MEMBERS_TABLE = "team_members"


class InvitationError(Exception):
    """Base class for invitation failures."""

    status_code = 500


class InvalidInvitationRequest(InvitationError):
    status_code = 400


class AlreadyTeamMember(InvitationError):
    status_code = 400


class InvitationStorageError(InvitationError):
    status_code = 500


@dataclass
class InviteLink:
    token: str
    link: str
    reused: bool = False


class InvitationService:
    def __init__(
        self,
        rest_client: SupabaseRestClient,
        settings: InviteSettings,
        *,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._rest = rest_client
        self._settings = settings
        self._token_factory = token_factory
        self._clock = clock

    def build_link(self, token: str) -> str:
        return f"{self._settings.link_base}/team/join?token={token}"

    async def _lookup(
        self, table: str, *, filters: dict, columns: str
    ) -> Optional[dict]:
        """Read a row, treating an unreadable table as having no match."""
        try:
            return await self._rest.select_one(table, filters=filters, columns=columns)
        except SupabaseRestError as exc:
            logger.warning("Lookup on %s failed; treating as absent: %s", table, exc)
            return None

    async def generate_invite_link(self, request: InviteLinkRequest) -> InviteLink:
        email = (request.email or "").strip()
        if not email or "@" not in email:
            raise InvalidInvitationRequest("A valid email address is required.")
        if not request.team_id:
            raise InvalidInvitationRequest("A team ID is required.")

        # Invitees may not have signed up yet, so a missing user is fine.
        existing_user = await self._lookup(
            USERS_TABLE, filters={"email": email}, columns="id"
        )
        if existing_user:
            membership = await self._lookup(
                MEMBERS_TABLE,
                filters={"team_id": request.team_id, "user_id": existing_user["id"]},
                columns="id",
            )
            if membership:
                raise AlreadyTeamMember("This user is already a member of the team.")

        pending = await self._rest.select_one(
            INVITATIONS_TABLE,
            filters={
                "email": email,
                "team_id": request.team_id,
                "status": InvitationStatus.PENDING.value,
            },
        )
        if pending:
            logger.info("Reusing pending invitation for team %s", request.team_id)
            token = pending["token"]
            return InviteLink(token=token, link=self.build_link(token), reused=True)

        token = self._token_factory()
        expires_at = self._clock() + timedelta(days=self._settings.ttl_days)
        row = {
            "email": email,
            "token": token,
            "status": InvitationStatus.PENDING.value,
            "expires_at": expires_at.isoformat(),
            "invited_by": request.invited_by,
            "team_id": request.team_id,
            "role": TeamRole(request.role).value,
        }
        try:
            await self._rest.insert(INVITATIONS_TABLE, row)
        except SupabaseRestError as exc:
            logger.error("Failed to store invitation: %s", exc)
            raise InvitationStorageError("Failed to store the invitation.") from exc

        return InviteLink(token=token, link=self.build_link(token))


__all__ = [
    "AlreadyTeamMember",
    "InvalidInvitationRequest",
    "InvitationError",
    "InvitationService",
    "InvitationStorageError",
    "InviteLink",
]
