"""Error types raised by fleet_models.

Every error carries a stable ``code`` for structured error handling.
Resolution errors keep the reference the caller passed in so it can be
reported back verbatim.
"""

from typing import Any


class FleetError(Exception):
    """Base error for all fleet_models operations."""

    def __init__(self, message: str, code: str = "fleet_error") -> None:
        """Initialize FleetError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class ApplicationNotFoundError(FleetError):
    """Raised when an application reference does not resolve."""

    def __init__(self, reference: Any, code: str = "application_not_found") -> None:
        super().__init__(f"Application not found: {reference}", code)
        self.reference = reference


class AmbiguousApplicationError(FleetError):
    """Raised when an application reference matches more than one record."""

    def __init__(self, reference: Any, code: str = "application_ambiguous") -> None:
        super().__init__(f"Application is ambiguous: {reference}", code)
        self.reference = reference


class ReleaseNotFoundError(FleetError):
    """Raised when a release commit or id does not resolve."""

    def __init__(self, reference: Any, code: str = "release_not_found") -> None:
        super().__init__(f"Release not found: {reference}", code)
        self.reference = reference


class AmbiguousReleaseError(FleetError):
    """Raised when a commit prefix matches more than one release."""

    def __init__(self, reference: Any, code: str = "release_ambiguous") -> None:
        super().__init__(f"Release is ambiguous: {reference}", code)
        self.reference = reference


class OrganizationNotFoundError(FleetError):
    """Raised when an organization handle or id does not resolve."""

    def __init__(self, reference: Any, code: str = "organization_not_found") -> None:
        super().__init__(f"Organization not found: {reference}", code)
        self.reference = reference


class InvalidParameterError(FleetError):
    """Raised for malformed caller input, before any request is made."""

    def __init__(
        self,
        name: str,
        value: Any,
        reason: str | None = None,
        code: str = "invalid_parameter",
    ) -> None:
        message = f"Invalid parameter {name}: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, code)
        self.name = name
        self.value = value


class InvalidDeviceTypeError(FleetError):
    """Raised when a device type slug is not in the catalog."""

    def __init__(self, device_type: str, code: str = "invalid_device_type") -> None:
        super().__init__(f"Invalid device type: {device_type}", code)
        self.device_type = device_type


class DiscontinuedDeviceTypeError(FleetError):
    """Raised when creating an application for a discontinued device type."""

    def __init__(
        self, device_type: str, code: str = "discontinued_device_type"
    ) -> None:
        super().__init__(f"Discontinued device type: {device_type}", code)
        self.device_type = device_type


class InvalidApplicationTypeError(FleetError):
    """Raised when an application type slug does not resolve."""

    def __init__(
        self, application_type: str, code: str = "invalid_application_type"
    ) -> None:
        super().__init__(f"Invalid application type: {application_type}", code)
        self.application_type = application_type


class MembershipNotFoundError(FleetError):
    """Raised when an application membership does not resolve."""

    def __init__(self, reference: Any, code: str = "membership_not_found") -> None:
        super().__init__(f"Application membership not found: {reference}", code)
        self.reference = reference


class MembershipRoleNotFoundError(FleetError):
    """Raised when an application membership role name does not resolve."""

    def __init__(self, role_name: str, code: str = "membership_role_not_found") -> None:
        super().__init__(f"Application membership role not found: {role_name}", code)
        self.role_name = role_name


class ImageNotFoundError(FleetError):
    """Raised when no OS image exists for a device type and version."""

    def __init__(
        self, device_type: str, version: str, code: str = "image_not_found"
    ) -> None:
        super().__init__(
            f"No such version for the device type: {device_type} {version}", code
        )
        self.device_type = device_type
        self.version = version


class SupervisorLockedError(FleetError):
    """Raised when the device supervisor rejects an action due to update locks."""

    def __init__(
        self,
        message: str = "Supervisor is locked, the action was not performed",
        code: str = "supervisor_locked",
    ) -> None:
        super().__init__(message, code)


class TransportError(FleetError):
    """Raised when a request cannot be completed (timeout, network failure)."""

    def __init__(self, message: str, code: str = "network_error") -> None:
        super().__init__(message, code)


class RequestError(FleetError):
    """Raised when the API answers with an error status."""

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        method: str | None = None,
        url: str | None = None,
        code: str = "request_error",
    ) -> None:
        message = f"Request error {status_code}"
        if method and url:
            message = f"{message} for {method} {url}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message, code)
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url


__all__ = [
    "AmbiguousApplicationError",
    "AmbiguousReleaseError",
    "ApplicationNotFoundError",
    "DiscontinuedDeviceTypeError",
    "FleetError",
    "ImageNotFoundError",
    "InvalidApplicationTypeError",
    "InvalidDeviceTypeError",
    "InvalidParameterError",
    "MembershipNotFoundError",
    "MembershipRoleNotFoundError",
    "OrganizationNotFoundError",
    "ReleaseNotFoundError",
    "RequestError",
    "SupervisorLockedError",
    "TransportError",
]
