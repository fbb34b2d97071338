"""Query-and-mutate interface over named API resource collections."""

from __future__ import annotations

import logging
from typing import Any

from fleet_models.errors import InvalidParameterError, RequestError
from fleet_models.transport.odata import compile_options, compile_resource_id
from fleet_models.transport.request import RequestSender
from fleet_models.types import Record

logger = logging.getLogger(__name__)

CONFLICT_STATUS_CODE = 409
NOT_FOUND_STATUS_CODE = 404


class PineClient:
    """Issues OData requests against ``{api_url}/{api_version}/{resource}``.

    Responses are expected in the ``{"d": [...]}`` envelope. Point lookups
    return the single record or None, collection queries return a list.
    """

    def __init__(
        self,
        request: RequestSender,
        api_url: str,
        api_version: str = "v6",
    ) -> None:
        self._request = request
        self.api_url = api_url
        self.api_version = api_version

    def _resource_path(
        self, resource: str, id_: Any = None
    ) -> tuple[str, dict[str, str]]:
        path = f"/{self.api_version}/{resource}"
        if id_ is None:
            return path, {}
        segment, params = compile_resource_id(id_)
        return f"{path}{segment}", params

    async def get(
        self,
        resource: str,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Record | list[Record] | None:
        """Fetch a single record by id or a collection.

        Args:
            resource: Resource name, e.g. 'application'.
            id: Numeric id or alternate key dict (optional).
            options: Query shaping options.

        Returns:
            The record (or None) for point lookups, else a list of records.
        """
        path, params = self._resource_path(resource, id)
        params.update(compile_options(options))

        try:
            response = await self._request.send(
                "GET", path, base_url=self.api_url, params=params or None
            )
        except RequestError as e:
            if id is not None and e.status_code == NOT_FOUND_STATUS_CODE:
                return None
            raise

        results: list[Record] = (response.body or {}).get("d", [])
        if id is None:
            return results
        return results[0] if results else None

    async def post(self, resource: str, body: Record) -> Record:
        """Create a record and return it as stored by the server."""
        path, _ = self._resource_path(resource)
        logger.debug("Creating %s", resource)
        response = await self._request.send(
            "POST", path, base_url=self.api_url, body=body
        )
        return response.body

    async def patch(
        self,
        resource: str,
        body: Record,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """Update a record by id, or every record matching options' $filter."""
        path, params = self._resource_path(resource, id)
        if id is None and not (options and options.get("$filter")):
            raise InvalidParameterError("id", id, "an id or a $filter is required")
        params.update(compile_options(options))
        await self._request.send(
            "PATCH", path, base_url=self.api_url, body=body, params=params or None
        )

    async def delete(
        self,
        resource: str,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """Delete a record by id, or every record matching options' $filter."""
        path, params = self._resource_path(resource, id)
        if id is None and not (options and options.get("$filter")):
            raise InvalidParameterError("id", id, "an id or a $filter is required")
        params.update(compile_options(options))
        await self._request.send(
            "DELETE", path, base_url=self.api_url, params=params or None
        )

    async def upsert(self, resource: str, id: dict[str, Any], body: Record) -> None:
        """Create a record keyed by ``id``, or update it if it already exists.

        Args:
            resource: Resource name.
            id: Natural key fields of the record.
            body: Fields to write.
        """
        try:
            await self.post(resource, {**id, **body})
        except RequestError as e:
            if e.status_code != CONFLICT_STATUS_CODE:
                raise
            logger.debug("%s already exists, updating %s", resource, id)
            await self.patch(resource, body, options={"$filter": dict(id)})


__all__ = ["PineClient"]
