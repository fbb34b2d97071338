"""Application membership operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fleet_models.errors import (
    InvalidParameterError,
    MembershipNotFoundError,
    MembershipRoleNotFoundError,
)
from fleet_models.transport.odata import merge_options
from fleet_models.transport.pine import PineClient
from fleet_models.types import ApplicationRef, Record
from fleet_models.utils import is_id

logger = logging.getLogger(__name__)

RESOURCE = "application_membership"
DEFAULT_ROLE_NAME = "developer"

GetApplication = Callable[..., Awaitable[Record]]


async def get_role_id(pine: PineClient, role_name: str) -> int:
    """Resolve an application membership role name to its id.

    Raises:
        MembershipRoleNotFoundError: If no role has that name.
    """
    roles = await pine.get(
        "application_membership_role",
        options={
            "$top": 1,
            "$select": ["id"],
            "$filter": {"name": role_name},
        },
    )
    if not roles:
        raise MembershipRoleNotFoundError(role_name)
    return roles[0]["id"]  # type: ignore[index]


def _validate_membership_key(id_or_unique_key: Any) -> None:
    if is_id(id_or_unique_key):
        return
    if (
        isinstance(id_or_unique_key, dict)
        and "user" in id_or_unique_key
        and "is_member_of__application" in id_or_unique_key
    ):
        return
    raise InvalidParameterError(
        "id_or_unique_key",
        id_or_unique_key,
        "expected an id or {'user', 'is_member_of__application'}",
    )


class ApplicationMembershipModel:
    """Operations on the members of an application."""

    def __init__(self, pine: PineClient, get_application: GetApplication) -> None:
        self._pine = pine
        self._get_application = get_application

    async def get(
        self,
        id_or_unique_key: int | dict[str, int],
        options: dict[str, Any] | None = None,
    ) -> Record:
        """Get a single membership by id or by (user, application) key."""
        _validate_membership_key(id_or_unique_key)
        membership = await self._pine.get(
            RESOURCE, id=id_or_unique_key, options=options
        )
        if membership is None:
            raise MembershipNotFoundError(id_or_unique_key)
        return membership  # type: ignore[return-value]

    async def get_all(self, options: dict[str, Any] | None = None) -> list[Record]:
        """Get all memberships visible to the caller."""
        return await self._pine.get(  # type: ignore[return-value]
            RESOURCE, options=options
        )

    async def get_all_by_application(
        self,
        application: ApplicationRef,
        options: dict[str, Any] | None = None,
    ) -> list[Record]:
        """Get all memberships of an application."""
        app = await self._get_application(application, {"$select": "id"})
        return await self.get_all(
            merge_options(
                {"$filter": {"is_member_of__application": app["id"]}},
                options,
            )
        )

    async def create(
        self,
        application: ApplicationRef,
        username: str,
        role_name: str = DEFAULT_ROLE_NAME,
    ) -> Record:
        """Add a user to an application with the given role."""
        app, role_id = await asyncio.gather(
            self._get_application(application, {"$select": "id"}),
            get_role_id(self._pine, role_name),
        )
        logger.info("Adding %s to application %s as %s", username, app["id"], role_name)
        return await self._pine.post(
            RESOURCE,
            {
                "username": username,
                "is_member_of__application": app["id"],
                "application_membership_role": role_id,
            },
        )

    async def change_role(
        self,
        id_or_unique_key: int | dict[str, int],
        role_name: str,
    ) -> None:
        """Change the role of an existing membership."""
        _validate_membership_key(id_or_unique_key)
        role_id = await get_role_id(self._pine, role_name)
        await self._pine.patch(
            RESOURCE,
            {"application_membership_role": role_id},
            id=id_or_unique_key,
        )

    async def remove(self, id_or_unique_key: int | dict[str, int]) -> None:
        """Remove a membership."""
        _validate_membership_key(id_or_unique_key)
        await self._pine.delete(RESOURCE, id=id_or_unique_key)


__all__ = ["ApplicationMembershipModel", "DEFAULT_ROLE_NAME", "get_role_id"]
