"""Key-value resources owned by a parent resource.

Tags and configuration/environment/build variables share one shape:
``(parent id, key) -> value``. Key uniqueness per parent is enforced by
the server; ``set`` relies on it to turn a conflicting create into an update.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fleet_models.transport.odata import merge_options
from fleet_models.transport.pine import PineClient
from fleet_models.types import ApplicationRef, Record

logger = logging.getLogger(__name__)


class DependentResource:
    """CRUD operations for a key-value resource owned by a parent."""

    def __init__(
        self,
        pine: PineClient,
        resource_name: str,
        resource_key_field: str,
        parent_resource_name: str,
        get_resource_id: Callable[[Any], Awaitable[int]],
    ) -> None:
        """Initialize DependentResource.

        Args:
            pine: Resource API client.
            resource_name: Resource collection, e.g. 'application_tag'.
            resource_key_field: Field holding the key, e.g. 'tag_key'.
            parent_resource_name: Field referencing the parent, e.g. 'application'.
            get_resource_id: Resolves a parent reference to its numeric id.
        """
        self._pine = pine
        self.resource_name = resource_name
        self.resource_key_field = resource_key_field
        self.parent_resource_name = parent_resource_name
        self._get_resource_id = get_resource_id

    async def get_all(self, options: dict[str, Any] | None = None) -> list[Record]:
        """Get all resources, ordered by key."""
        return await self._pine.get(  # type: ignore[return-value]
            self.resource_name,
            options=merge_options(
                {"$orderby": f"{self.resource_key_field} asc"},
                options,
            ),
        )

    async def get_all_by_parent(
        self,
        parent: Any,
        options: dict[str, Any] | None = None,
    ) -> list[Record]:
        """Get all resources of a parent, ordered by key."""
        parent_id = await self._get_resource_id(parent)
        return await self.get_all(
            merge_options(
                {"$filter": {self.parent_resource_name: parent_id}},
                options,
            )
        )

    async def get(self, parent: Any, key: str) -> str | None:
        """Get the value of a key, or None if the key is not set."""
        parent_id = await self._get_resource_id(parent)
        results = await self._pine.get(
            self.resource_name,
            options={
                "$select": "value",
                "$filter": {
                    self.parent_resource_name: parent_id,
                    self.resource_key_field: key,
                },
            },
        )
        if not results:
            return None
        return results[0].get("value")  # type: ignore[index]

    async def set(self, parent: Any, key: str, value: Any) -> None:
        """Create or update a key."""
        parent_id = await self._get_resource_id(parent)
        logger.debug(
            "Setting %s %s on %s %s",
            self.resource_name,
            key,
            self.parent_resource_name,
            parent_id,
        )
        await self._pine.upsert(
            self.resource_name,
            id={
                self.parent_resource_name: parent_id,
                self.resource_key_field: key,
            },
            body={"value": str(value)},
        )

    async def remove(self, parent: Any, key: str) -> None:
        """Remove a key."""
        parent_id = await self._get_resource_id(parent)
        await self._pine.delete(
            self.resource_name,
            options={
                "$filter": {
                    self.parent_resource_name: parent_id,
                    self.resource_key_field: key,
                },
            },
        )


class ApplicationDependentResource(DependentResource):
    """Dependent resource whose parent is an application."""

    async def get_all_by_application(
        self,
        application: ApplicationRef,
        options: dict[str, Any] | None = None,
    ) -> list[Record]:
        """Get all resources of an application."""
        return await self.get_all_by_parent(application, options)


__all__ = ["ApplicationDependentResource", "DependentResource"]
