"""Device model operations used by the application and OS models."""

from __future__ import annotations

from fleet_models.models.device_types import DeviceTypeCatalog, DeviceTypeManifest


class DeviceModel:
    """Device-level lookups."""

    def __init__(self, catalog: DeviceTypeCatalog) -> None:
        self._catalog = catalog

    async def get_manifest_by_slug(self, slug: str) -> DeviceTypeManifest | None:
        """Get the catalog manifest of a device type by slug or alias."""
        return await self._catalog.find_by_slug(slug)


__all__ = ["DeviceModel"]
