"""Shared type definitions for fleet_models.

This module contains enums, TypedDicts, and type aliases shared across
subpackages to avoid circular imports.
"""

from enum import Enum
from typing import Any, TypedDict, Union

# An application is referenced by numeric id, legacy name or "owner/app" slug.
ApplicationRef = Union[int, str]

# Raw resource records as returned by the API.
Record = dict[str, Any]


class DeviceTypeState(str, Enum):
    """Lifecycle state of a device type in the catalog."""

    RELEASED = "RELEASED"
    BETA = "BETA"
    NEW = "NEW"
    DISCONTINUED = "DISCONTINUED"


class ReleaseStatus(str, Enum):
    """Build status of a release."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"
    CANCELLED = "cancelled"


class Network(str, Enum):
    """Network type baked into a generated config.json."""

    ETHERNET = "ethernet"
    WIFI = "wifi"


class VersionToken(str, Enum):
    """Symbolic OS version selectors."""

    LATEST = "latest"
    RECOMMENDED = "recommended"
    DEFAULT = "default"


class ReleaseRef(TypedDict, total=False):
    """Expanded release reference."""

    id: int
    commit: str


class DeviceRecord(TypedDict, total=False):
    """Device as embedded in application responses."""

    id: int
    uuid: str
    device_name: str
    is_online: bool
    os_version: str | None
    os_variant: str | None
    created_at: str


class ApplicationRecord(TypedDict, total=False):
    """Application as returned by the resource API."""

    id: int
    app_name: str
    slug: str
    is_for__device_type: Any
    depends_on__application: Any
    organization: Any
    should_track_latest_release: bool
    should_be_running__release: Any
    owns__device: list[DeviceRecord]
    owns__release: list[ReleaseRef]
    devices_length: int
    online_devices: int


__all__ = [
    "ApplicationRecord",
    "ApplicationRef",
    "DeviceRecord",
    "DeviceTypeState",
    "Network",
    "Record",
    "ReleaseRef",
    "ReleaseStatus",
    "VersionToken",
]
