"""Resource models.

This module handles:
- Applications, with their tags, variables, memberships and invites
- OS images and supported versions per device type
- The device type catalog
- Release and device lookups used by the above
"""

from fleet_models.models.application import ApplicationModel, normalize_application
from fleet_models.models.dependent_resource import (
    ApplicationDependentResource,
    DependentResource,
)
from fleet_models.models.device import DeviceModel
from fleet_models.models.device_types import (
    DeviceTypeCatalog,
    DeviceTypeManifest,
    find_by_slug,
)
from fleet_models.models.invite import ApplicationInviteModel
from fleet_models.models.membership import ApplicationMembershipModel
from fleet_models.models.os import (
    DownloadResult,
    OsConfigOptions,
    OsModel,
    OsVersions,
    normalize_version,
)
from fleet_models.models.release import ReleaseModel

__all__ = [
    "ApplicationDependentResource",
    "ApplicationInviteModel",
    "ApplicationMembershipModel",
    "ApplicationModel",
    "DependentResource",
    "DeviceModel",
    "DeviceTypeCatalog",
    "DeviceTypeManifest",
    "DownloadResult",
    "OsConfigOptions",
    "OsModel",
    "OsVersions",
    "ReleaseModel",
    "find_by_slug",
    "normalize_application",
    "normalize_version",
]
