"""Application invite operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fleet_models.models.membership import GetApplication, get_role_id
from fleet_models.transport.odata import merge_options
from fleet_models.transport.pine import PineClient
from fleet_models.transport.request import RequestSender
from fleet_models.types import ApplicationRef, Record

logger = logging.getLogger(__name__)

RESOURCE = "invitee__is_invited_to__application"


class ApplicationInviteModel:
    """Operations on pending invitations to an application."""

    def __init__(
        self,
        pine: PineClient,
        request: RequestSender,
        get_application: GetApplication,
    ) -> None:
        self._pine = pine
        self._request = request
        self._get_application = get_application

    async def get_all(self, options: dict[str, Any] | None = None) -> list[Record]:
        """Get all invites visible to the caller."""
        return await self._pine.get(  # type: ignore[return-value]
            RESOURCE, options=options
        )

    async def get_all_by_application(
        self,
        application: ApplicationRef,
        options: dict[str, Any] | None = None,
    ) -> list[Record]:
        """Get all invites of an application."""
        app = await self._get_application(application, {"$select": "id"})
        return await self.get_all(
            merge_options(
                {"$filter": {"is_invited_to__application": app["id"]}},
                options,
            )
        )

    async def create(
        self,
        application: ApplicationRef,
        invitee: str,
        role_name: str | None = None,
        message: str | None = None,
    ) -> Record:
        """Invite a user (by email) to an application.

        Args:
            application: Application name, slug or id.
            invitee: Email address of the invitee.
            role_name: Membership role granted on acceptance (server default if None).
            message: Optional message sent with the invite.

        Returns:
            The created invite.
        """
        if role_name is None:
            app = await self._get_application(application, {"$select": "id"})
            role_id = None
        else:
            app, role_id = await asyncio.gather(
                self._get_application(application, {"$select": "id"}),
                get_role_id(self._pine, role_name),
            )

        body: Record = {
            "invitee": invitee,
            "is_invited_to__application": app["id"],
            "message": message,
        }
        if role_id is not None:
            body["application_membership_role"] = role_id

        logger.info("Inviting %s to application %s", invitee, app["id"])
        return await self._pine.post(RESOURCE, body)

    async def revoke(self, invite_id: int) -> None:
        """Revoke a pending invite."""
        await self._pine.delete(RESOURCE, id=invite_id)

    async def accept(self, invitation_token: str) -> None:
        """Accept an invite on behalf of the authenticated user."""
        await self._request.send("POST", f"/user/v1/invitation/{invitation_token}")


__all__ = ["ApplicationInviteModel"]
