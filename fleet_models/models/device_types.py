"""Device type catalog.

The catalog is fetched once per ``DeviceTypeCatalog`` instance and reused
for every later lookup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from fleet_models.transport.request import RequestSender
from fleet_models.types import DeviceTypeState

logger = logging.getLogger(__name__)

DEVICE_TYPES_ENDPOINT = "/device-types/v1"


class DeviceTypeManifest(BaseModel):
    """Catalog entry for a device type.

    Attributes:
        slug: Canonical device type slug.
        name: Display name.
        state: Lifecycle state (e.g. RELEASED, DISCONTINUED).
        aliases: Legacy slugs that resolve to this device type.
    """

    model_config = ConfigDict(extra="allow")

    slug: str
    name: str | None = None
    state: str | None = None
    aliases: list[str] = Field(default_factory=list)

    @property
    def is_discontinued(self) -> bool:
        """Whether new applications may no longer target this device type."""
        return self.state == DeviceTypeState.DISCONTINUED.value


def find_by_slug(
    catalog: Iterable[DeviceTypeManifest], slug: str
) -> DeviceTypeManifest | None:
    """Find a catalog entry by slug or alias.

    Args:
        catalog: Device type catalog.
        slug: Slug or alias to look up.

    Returns:
        The matching entry, or None.
    """
    for manifest in catalog:
        if manifest.slug == slug or slug in manifest.aliases:
            return manifest
    return None


class DeviceTypeCatalog:
    """Memoized access to the device type catalog."""

    def __init__(self, request: RequestSender) -> None:
        self._request = request
        self._device_types: asyncio.Future[list[DeviceTypeManifest]] | None = None

    async def _fetch(self) -> list[DeviceTypeManifest]:
        logger.debug("Fetching device type catalog")
        response = await self._request.send("GET", DEVICE_TYPES_ENDPOINT)
        return [DeviceTypeManifest.model_validate(entry) for entry in response.body]

    async def get_all(self) -> list[DeviceTypeManifest]:
        """Return the device type catalog, fetching it on first use.

        Concurrent first calls share one request. A failed fetch is not
        remembered, so the next call retries it.
        """
        if self._device_types is None:
            self._device_types = asyncio.ensure_future(self._fetch())
        try:
            return await self._device_types
        except Exception:
            self._device_types = None
            raise

    async def find_by_slug(self, slug: str) -> DeviceTypeManifest | None:
        """Find a catalog entry by slug or alias."""
        return find_by_slug(await self.get_all(), slug)


__all__ = [
    "DEVICE_TYPES_ENDPOINT",
    "DeviceTypeCatalog",
    "DeviceTypeManifest",
    "find_by_slug",
]
