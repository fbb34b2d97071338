"""Application model.

This module provides the application API:
- Reference resolution: numeric id, legacy name, or "owner/app" slug
- Queries with default ordering/visibility merged with caller options
- Creation with concurrent validation of device type, organization,
  parent and application type
- Release tracking (pin to a release, track the latest release)
- Supervisor actions, API keys, device URLs and support access
- Tags, variables, memberships and invites as sub-namespaces

Every application record returned here has its embedded devices
normalized (OS version display form, device counts).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from fleet_models.errors import (
    AmbiguousApplicationError,
    ApplicationNotFoundError,
    DiscontinuedDeviceTypeError,
    InvalidApplicationTypeError,
    InvalidDeviceTypeError,
    InvalidParameterError,
    OrganizationNotFoundError,
)
from fleet_models.models.dependent_resource import ApplicationDependentResource
from fleet_models.models.invite import ApplicationInviteModel
from fleet_models.models.membership import ApplicationMembershipModel
from fleet_models.transport.odata import merge_options
from fleet_models.types import ApplicationRecord, ApplicationRef, ReleaseStatus
from fleet_models.utils import (
    generate_current_service_details,
    get_current_service_details_expand,
    is_id,
    is_no_application_for_key_response,
    normalize_device_os_version,
    treat_as_missing_application,
    with_supervisor_locked_error,
)

if TYPE_CHECKING:
    from fleet_models.config import Settings
    from fleet_models.models.device import DeviceModel
    from fleet_models.models.release import ReleaseModel
    from fleet_models.transport.pine import PineClient
    from fleet_models.transport.request import RequestSender

logger = logging.getLogger(__name__)

RESOURCE = "application"

# Filter selecting releases an application may be updated to.
QUALIFYING_RELEASE_FILTER: dict[str, Any] = {
    "is_final": True,
    "is_passing_tests": True,
    "is_invalidated": False,
    "status": ReleaseStatus.SUCCESS.value,
}

LATEST_RELEASE_EXPAND: dict[str, Any] = {
    "$select": "id",
    "$top": 1,
    "$filter": QUALIFYING_RELEASE_FILTER,
    "$orderby": "created_at desc",
}


def normalize_application(application: ApplicationRecord) -> ApplicationRecord:
    """Normalize embedded devices and add device counts, in place."""
    devices = application.get("owns__device")
    if isinstance(devices, list):
        for device in devices:
            normalize_device_os_version(device)
        application["devices_length"] = len(devices)
        application["online_devices"] = sum(1 for d in devices if d.get("is_online"))
    return application


class ApplicationModel:
    """Operations on applications (fleets)."""

    def __init__(
        self,
        pine: PineClient,
        request: RequestSender,
        settings: Settings,
        device_model: DeviceModel,
        release_model: ReleaseModel,
    ) -> None:
        """Initialize ApplicationModel.

        Args:
            pine: Resource API client.
            request: HTTP request sender for non-resource endpoints.
            settings: Client settings.
            device_model: Device model (device type manifests).
            release_model: Release model (release lookups).
        """
        self._pine = pine
        self._request = request
        self._settings = settings
        self._device_model = device_model
        self._release_model = release_model

        self.tags = self._dependent_resource("application_tag", "tag_key")
        self.config_var = self._dependent_resource(
            "application_config_variable", "name"
        )
        self.env_var = self._dependent_resource(
            "application_environment_variable", "name"
        )
        self.build_var = self._dependent_resource("build_environment_variable", "name")
        self.membership = ApplicationMembershipModel(pine, self.get)
        self.invite = ApplicationInviteModel(pine, request, self.get)

    def _dependent_resource(
        self, resource_name: str, key_field: str
    ) -> ApplicationDependentResource:
        return ApplicationDependentResource(
            self._pine,
            resource_name=resource_name,
            resource_key_field=key_field,
            parent_resource_name="application",
            get_resource_id=self._get_full_id,
        )

    async def _get_full_id(self, name_or_slug_or_id: ApplicationRef) -> int:
        # Full lookup, so that missing numeric ids fail too
        application = await self.get(name_or_slug_or_id, {"$select": "id"})
        return application["id"]

    async def get_id(self, name_or_slug_or_id: ApplicationRef) -> int:
        """Resolve an application reference to its numeric id.

        Numeric ids are returned as-is without a request, so a missing id
        is only detected by the operation that uses it.

        Raises:
            ApplicationNotFoundError: If a name or slug does not resolve.
            AmbiguousApplicationError: If a name matches several applications.
        """
        if is_id(name_or_slug_or_id):
            return name_or_slug_or_id  # type: ignore[return-value]
        return await self._get_full_id(name_or_slug_or_id)

    def get_dashboard_url(self, id: int) -> str:
        """Get the dashboard URL of an application.

        Raises:
            InvalidParameterError: If id is not an integer.
        """
        if not is_id(id):
            raise InvalidParameterError("id", id, "must be an integer")
        base = httpx.URL(self._settings.resolved_dashboard_url)
        return str(base.join(f"/apps/{id}"))

    async def get_all(
        self, options: dict[str, Any] | None = None
    ) -> list[ApplicationRecord]:
        """Get all applications directly accessible by the caller, by name."""
        applications = await self._pine.get(
            RESOURCE,
            options=merge_options(
                {
                    "$filter": {
                        "is_directly_accessible_by__user": {
                            "$any": {"$alias": "dau", "$expr": {1: 1}},
                        },
                    },
                    "$orderby": "app_name asc",
                },
                options,
            ),
        )
        return [
            normalize_application(app)
            for app in applications  # type: ignore[union-attr]
        ]

    async def get_all_with_device_service_details(
        self, options: dict[str, Any] | None = None
    ) -> list[ApplicationRecord]:
        """Get all applications with each device's current service summary.

        Service summaries omit the release commit.
        """
        applications = await self.get_all(
            merge_options(
                {
                    "$expand": {
                        "owns__device": {
                            "$expand": get_current_service_details_expand(False),
                        },
                    },
                },
                options,
            )
        )
        for application in applications:
            application["owns__device"] = [
                generate_current_service_details(device)
                for device in application.get("owns__device", [])
            ]
        return applications

    async def get(
        self,
        name_or_slug_or_id: ApplicationRef,
        options: dict[str, Any] | None = None,
    ) -> ApplicationRecord:
        """Get a single application.

        Args:
            name_or_slug_or_id: Numeric id, "owner/app" slug, or legacy name.
            options: Extra query options.

        Returns:
            Application record.

        Raises:
            ApplicationNotFoundError: If the reference does not resolve.
            AmbiguousApplicationError: If a legacy name matches several applications.
        """
        if name_or_slug_or_id is None:
            raise ApplicationNotFoundError(name_or_slug_or_id)

        if is_id(name_or_slug_or_id):
            application = await self._pine.get(
                RESOURCE, id=name_or_slug_or_id, options=merge_options({}, options)
            )
            if application is None:
                raise ApplicationNotFoundError(name_or_slug_or_id)
            return normalize_application(application)  # type: ignore[arg-type]

        reference = str(name_or_slug_or_id)
        if "/" in reference:
            # Slugs are unique, so a direct key lookup cannot be ambiguous
            application = await self._pine.get(
                RESOURCE,
                id={"slug": reference.lower()},
                options=merge_options({}, options),
            )
            if application is None:
                raise ApplicationNotFoundError(name_or_slug_or_id)
            return normalize_application(application)  # type: ignore[arg-type]

        applications = await self._pine.get(
            RESOURCE,
            options=merge_options(
                {
                    "$filter": {
                        "$or": {
                            "app_name": reference,
                            "slug": reference.lower(),
                        },
                    },
                },
                options,
            ),
        )
        if not applications:
            raise ApplicationNotFoundError(name_or_slug_or_id)
        if len(applications) > 1:
            raise AmbiguousApplicationError(name_or_slug_or_id)
        return normalize_application(applications[0])  # type: ignore[index]

    async def get_with_device_service_details(
        self,
        name_or_slug_or_id: ApplicationRef,
        options: dict[str, Any] | None = None,
    ) -> ApplicationRecord:
        """Get an application with each device's current services and commits."""
        application = await self.get(
            name_or_slug_or_id,
            merge_options(
                {
                    "$expand": {
                        "owns__device": {
                            "$expand": get_current_service_details_expand(True),
                        },
                    },
                },
                options,
            ),
        )
        if application.get("owns__device"):
            application["owns__device"] = [
                generate_current_service_details(device)
                for device in application["owns__device"]
            ]
        return application

    async def get_app_by_name(
        self,
        app_name: str,
        options: dict[str, Any] | None = None,
    ) -> ApplicationRecord:
        """Get a single application by its exact name.

        Raises:
            ApplicationNotFoundError: If no application has that name.
            AmbiguousApplicationError: If several applications have that name.
        """
        applications = await self._pine.get(
            RESOURCE,
            options=merge_options({"$filter": {"app_name": app_name}}, options),
        )
        if not applications:
            raise ApplicationNotFoundError(app_name)
        if len(applications) > 1:
            raise AmbiguousApplicationError(app_name)
        return normalize_application(applications[0])  # type: ignore[index]

    async def get_app_by_owner(
        self,
        app_name: str,
        owner: str,
        options: dict[str, Any] | None = None,
    ) -> ApplicationRecord:
        """Get a single application by name and owning organization handle."""
        slug = f"{owner.lower()}/{app_name.lower()}"
        application = await self._pine.get(
            RESOURCE, id={"slug": slug}, options=merge_options({}, options)
        )
        if application is None:
            raise ApplicationNotFoundError(slug)
        return normalize_application(application)  # type: ignore[arg-type]

    async def has(self, name_or_slug_or_id: ApplicationRef) -> bool:
        """Check whether an application exists."""
        try:
            await self.get(name_or_slug_or_id, {"$select": ["id"]})
        except ApplicationNotFoundError:
            return False
        return True

    async def has_any(self) -> bool:
        """Check whether the caller has any applications."""
        applications = await self.get_all({"$select": ["id"]})
        return len(applications) != 0

    async def _get_application_type_id(self, application_type: str) -> int:
        app_type = await self._pine.get(
            "application_type",
            id={"slug": application_type},
            options={"$select": "id"},
        )
        if app_type is None:
            raise InvalidApplicationTypeError(application_type)
        return app_type["id"]  # type: ignore[index]

    async def _get_device_type_id(self, device_type: str) -> int:
        manifest = await self._device_model.get_manifest_by_slug(device_type)
        if manifest is None:
            raise InvalidDeviceTypeError(device_type)
        if manifest.is_discontinued:
            raise DiscontinuedDeviceTypeError(device_type)

        # Look up by the manifest slug to resolve aliases
        dt = await self._pine.get(
            "device_type",
            id={"slug": manifest.slug},
            options={"$select": ["id"]},
        )
        if dt is None:
            raise InvalidDeviceTypeError(device_type)
        return dt["id"]  # type: ignore[index]

    async def _get_organization_id(self, organization: int | str) -> int:
        key = "id" if is_id(organization) else "handle"
        org = await self._pine.get(
            "organization",
            id={key: organization},
            options={"$select": ["id"]},
        )
        if org is None:
            raise OrganizationNotFoundError(organization)
        return org["id"]  # type: ignore[index]

    async def _get_parent_id(self, parent: ApplicationRef) -> int:
        application = await self.get(parent, {"$select": ["id"]})
        return application["id"]

    async def _none(self) -> None:
        return None

    async def create(
        self,
        name: str,
        device_type: str,
        organization: int | str,
        application_type: str | None = None,
        parent: ApplicationRef | None = None,
    ) -> ApplicationRecord:
        """Create an application.

        The device type, organization, parent and application type are
        resolved concurrently; if any of them fails, nothing is created.

        Args:
            name: Application name.
            device_type: Device type slug (aliases accepted).
            organization: Organization handle or id.
            application_type: Application type slug (optional).
            parent: Parent application reference (optional).

        Returns:
            The created application.

        Raises:
            InvalidParameterError: If organization is missing.
            InvalidDeviceTypeError: If the device type is unknown.
            DiscontinuedDeviceTypeError: If the device type is discontinued.
            OrganizationNotFoundError: If the organization does not resolve.
            InvalidApplicationTypeError: If the application type does not resolve.
            ApplicationNotFoundError: If the parent does not resolve.
        """
        if organization is None:
            raise InvalidParameterError("organization", organization)

        device_type_id, application_type_id, parent_id, organization_id = (
            await asyncio.gather(
                self._get_device_type_id(device_type),
                self._get_application_type_id(application_type)
                if application_type
                else self._none(),
                self._get_parent_id(parent) if parent else self._none(),
                self._get_organization_id(organization),
            )
        )

        body: dict[str, Any] = {
            "app_name": name,
            "is_for__device_type": device_type_id,
        }
        if parent_id:
            body["depends_on__application"] = parent_id
        if application_type_id:
            body["application_type"] = application_type_id
        if organization_id:
            body["organization"] = organization_id

        logger.info("Creating application %s for %s", name, device_type)
        return await self._pine.post(RESOURCE, body)  # type: ignore[return-value]

    async def remove(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Remove an application."""
        with treat_as_missing_application(name_or_slug_or_id):
            application_id = await self.get_id(name_or_slug_or_id)
            logger.info("Removing application %s", application_id)
            await self._pine.delete(RESOURCE, id=application_id)

    async def rename(
        self, name_or_slug_or_id: ApplicationRef, new_app_name: str
    ) -> None:
        """Rename an application."""
        with treat_as_missing_application(name_or_slug_or_id):
            application_id = await self.get_id(name_or_slug_or_id)
            logger.info("Renaming application %s to %s", application_id, new_app_name)
            await self._pine.patch(
                RESOURCE, {"app_name": new_app_name}, id=application_id
            )

    async def restart(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Restart the application's containers on all of its devices."""
        with with_supervisor_locked_error():
            with treat_as_missing_application(name_or_slug_or_id):
                application_id = await self.get_id(name_or_slug_or_id)
                await self._request.send(
                    "POST", f"/application/{application_id}/restart"
                )

    async def generate_api_key(self, name_or_slug_or_id: ApplicationRef) -> str:
        """Generate an API key for an application."""
        # The endpoint accepts unknown ids, so resolve fully first
        application = await self.get(name_or_slug_or_id, {"$select": "id"})
        response = await self._request.send(
            "POST", f"/application/{application['id']}/generate-api-key"
        )
        return response.body

    async def generate_provisioning_key(
        self,
        name_or_slug_or_id: ApplicationRef,
        key_name: str | None = None,
    ) -> str:
        """Generate a device provisioning key for an application."""
        with treat_as_missing_application(
            name_or_slug_or_id, predicate=is_no_application_for_key_response
        ):
            application_id = await self.get_id(name_or_slug_or_id)
            response = await self._request.send(
                "POST",
                "/api-key/v1/",
                body={
                    "actorType": "application",
                    "actorTypeId": application_id,
                    "roles": ["provisioning-api-key"],
                    "name": key_name,
                },
            )
        return response.body

    async def _supervisor_action(
        self, action: str, app_id: int, data: dict[str, Any]
    ) -> None:
        with with_supervisor_locked_error():
            await self._request.send(
                "POST",
                f"/supervisor/v1/{action}",
                body={"appId": app_id, "data": data},
            )

    async def purge(self, app_id: int) -> None:
        """Purge the data of an application on all of its devices."""
        await self._supervisor_action("purge", app_id, {"appId": str(app_id)})

    async def shutdown(self, app_id: int, force: bool = False) -> None:
        """Shut down all devices of an application."""
        await self._supervisor_action("shutdown", app_id, {"force": bool(force)})

    async def reboot(self, app_id: int, force: bool = False) -> None:
        """Reboot all devices of an application."""
        await self._supervisor_action("reboot", app_id, {"force": bool(force)})

    async def will_track_new_releases(self, name_or_slug_or_id: ApplicationRef) -> bool:
        """Whether the application is set to follow new releases."""
        application = await self.get(
            name_or_slug_or_id, {"$select": "should_track_latest_release"}
        )
        return bool(application["should_track_latest_release"])

    async def is_tracking_latest_release(
        self, name_or_slug_or_id: ApplicationRef
    ) -> bool:
        """Whether the application follows new releases and runs the latest one.

        True when tracking is enabled and either no qualifying release exists
        or the target release is the latest qualifying release.
        """
        application = await self.get(
            name_or_slug_or_id,
            {
                "$select": "should_track_latest_release",
                "$expand": {
                    "should_be_running__release": {"$select": "id"},
                    "owns__release": LATEST_RELEASE_EXPAND,
                },
            },
        )
        tracked = application.get("should_be_running__release") or []
        latest = application.get("owns__release") or []
        if not application.get("should_track_latest_release"):
            return False
        if not latest:
            return True
        return bool(tracked) and tracked[0]["id"] == latest[0]["id"]

    async def pin_to_release(
        self, name_or_slug_or_id: ApplicationRef, full_release_hash: str
    ) -> None:
        """Pin the application to a release and stop tracking new releases."""
        application_id = await self.get_id(name_or_slug_or_id)
        release = await self._release_model.get(
            full_release_hash,
            {
                "$select": "id",
                "$top": 1,
                "$filter": {
                    "belongs_to__application": application_id,
                    "status": ReleaseStatus.SUCCESS.value,
                },
            },
        )
        logger.info(
            "Pinning application %s to release %s", application_id, release["id"]
        )
        await self._pine.patch(
            RESOURCE,
            {
                "should_be_running__release": release["id"],
                "should_track_latest_release": False,
            },
            id=application_id,
        )

    async def get_target_release_hash(
        self, name_or_slug_or_id: ApplicationRef
    ) -> str | None:
        """Get the commit of the release the application should be running."""
        application = await self.get(
            name_or_slug_or_id,
            {
                "$select": "id",
                "$expand": {"should_be_running__release": {"$select": "commit"}},
            },
        )
        releases = application.get("should_be_running__release") or []
        return releases[0].get("commit") if releases else None

    async def track_latest_release(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Follow new releases, moving to the latest qualifying release now."""
        application = await self.get(
            name_or_slug_or_id,
            {"$select": "id", "$expand": {"owns__release": LATEST_RELEASE_EXPAND}},
        )
        body: dict[str, Any] = {"should_track_latest_release": True}
        latest = application.get("owns__release") or []
        if latest:
            body["should_be_running__release"] = latest[0]["id"]

        logger.info("Application %s now tracks the latest release", application["id"])
        await self._pine.patch(RESOURCE, body, id=application["id"])

    async def _set_device_urls(
        self, name_or_slug_or_id: ApplicationRef, enabled: bool
    ) -> None:
        application = await self.get(name_or_slug_or_id, {"$select": "id"})
        await self._pine.patch(
            "device",
            {"is_web_accessible": enabled},
            options={"$filter": {"belongs_to__application": application["id"]}},
        )

    async def enable_device_urls(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Enable public URLs for all devices of an application."""
        await self._set_device_urls(name_or_slug_or_id, True)

    async def disable_device_urls(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Disable public URLs for all devices of an application."""
        await self._set_device_urls(name_or_slug_or_id, False)

    async def grant_support_access(
        self, name_or_slug_or_id: ApplicationRef, expiry_timestamp: int
    ) -> None:
        """Grant support access until a timestamp (milliseconds since the epoch).

        Raises:
            InvalidParameterError: If the timestamp is missing or not in the future.
        """
        if expiry_timestamp is None or expiry_timestamp <= time.time() * 1000:
            raise InvalidParameterError("expiry_timestamp", expiry_timestamp)

        with treat_as_missing_application(name_or_slug_or_id):
            application_id = await self.get_id(name_or_slug_or_id)
            await self._pine.patch(
                RESOURCE,
                {"is_accessible_by_support_until__date": expiry_timestamp},
                id=application_id,
            )

    async def revoke_support_access(self, name_or_slug_or_id: ApplicationRef) -> None:
        """Revoke support access."""
        with treat_as_missing_application(name_or_slug_or_id):
            application_id = await self.get_id(name_or_slug_or_id)
            await self._pine.patch(
                RESOURCE,
                {"is_accessible_by_support_until__date": None},
                id=application_id,
            )


__all__ = [
    "ApplicationModel",
    "LATEST_RELEASE_EXPAND",
    "QUALIFYING_RELEASE_FILTER",
    "normalize_application",
]
