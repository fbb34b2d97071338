"""Device OS version normalization."""

from __future__ import annotations

from datetime import datetime, timezone

from fleet_models.types import DeviceRecord

# Devices provisioned with the 1.x OS line reported an empty version string.
LEGACY_OS_VERSION = "Resin OS 1.0.0-pre"
LEGACY_OS_CUTOFF = datetime(2017, 1, 1, tzinfo=timezone.utc)


def _parse_created_at(value: str) -> datetime | None:
    try:
        created_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at


def normalize_device_os_version(device: DeviceRecord) -> DeviceRecord:
    """Rewrite a device's ``os_version`` into its display form, in place.

    Surrounding whitespace is dropped. An empty version on a device created
    before the 2.x OS line becomes ``LEGACY_OS_VERSION``.

    Args:
        device: Device record (may be partially selected).

    Returns:
        The same device record.
    """
    os_version = device.get("os_version")
    if os_version is None:
        return device

    os_version = os_version.strip()
    if not os_version and device.get("created_at"):
        created_at = _parse_created_at(device["created_at"])
        if created_at is not None and created_at < LEGACY_OS_CUTOFF:
            os_version = LEGACY_OS_VERSION

    device["os_version"] = os_version
    return device


__all__ = ["LEGACY_OS_CUTOFF", "LEGACY_OS_VERSION", "normalize_device_os_version"]
