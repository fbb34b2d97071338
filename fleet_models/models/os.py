"""OS image model.

This module handles:
- Supported OS versions per device type (latest, recommended, default)
- Resolution of version tokens and npm-style ranges
- Image size estimates and last-modified dates
- Streaming image downloads, optionally to a file with a SHA256 checksum
- Generation of an application's config.json
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from semantic_version import NpmSpec, Version

from fleet_models.errors import (
    ImageNotFoundError,
    InvalidDeviceTypeError,
    InvalidParameterError,
    RequestError,
)
from fleet_models.models.device_types import DeviceTypeCatalog
from fleet_models.transport.image_maker import ImageMakerClient
from fleet_models.transport.request import RequestSender
from fleet_models.types import ApplicationRef, Network, VersionToken
from fleet_models.utils import is_not_found_response, treat_as_missing_application

logger = logging.getLogger(__name__)

# Exact OS version, optionally with a ".revN" suffix and prerelease/build parts.
OS_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+(\.rev\d+)?([-+].+)?$")

DEVELOPMENT_VERSION_PATTERN = re.compile(r"(\.|\+|-)dev")

# OS revision, as a ".revN" suffix or a "+revN" build part.
REVISION_PATTERN = re.compile(r"[.+]rev(\d+)")

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


class OsVersions(BaseModel):
    """Supported OS versions of a device type.

    Attributes:
        versions: All supported versions, newest first.
        latest: Newest version, prereleases included.
        recommended: Newest version that is neither a prerelease nor a
            development build, or None.
        default: recommended if available, latest otherwise.
    """

    versions: list[str]
    latest: str | None = None
    recommended: str | None = None
    default: str | None = None


class OsConfigOptions(BaseModel):
    """Options for generating a config.json.

    Accepts both snake_case names and the camelCase names the API uses.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    network: Network = Network.ETHERNET
    app_update_poll_interval: int | None = None
    wifi_key: str | None = None
    wifi_ssid: str | None = None
    ip: str | None = None
    gateway: str | None = None
    netmask: str | None = None
    version: str | None = None


@dataclass
class DownloadResult:
    """Result of an OS image download."""

    path: Path
    checksum: str
    size_bytes: int


def _coerce_version(version: str) -> Version | None:
    try:
        return Version.coerce(version)
    except ValueError:
        return None


def parse_version(version: str) -> Version | None:
    """Parse an OS version leniently, or return None if it is not a version."""
    semver = _coerce_version(version)
    if semver is None:
        logger.warning("Ignoring unparsable OS version %r", version)
    return semver


def get_revision(version: str) -> int:
    """Get the OS revision of a version ('2.0.0+rev3' and '2.0.0.rev3' give 3).

    Versions without a revision are revision 0.
    """
    match = REVISION_PATTERN.search(version)
    return int(match.group(1)) if match else 0


def is_development_version(version: str) -> bool:
    """Whether a version is a development build (e.g. '2.0.0+dev')."""
    return DEVELOPMENT_VERSION_PATTERN.search(version) is not None


def _sort_parsed(
    versions: Iterable[str],
) -> tuple[list[tuple[str, Version]], list[str]]:
    parsed = []
    unparsable = []
    for version in versions:
        semver = parse_version(version)
        if semver is None:
            unparsable.append(version)
        else:
            parsed.append((version, semver))
    # Revisions only order versions of equal semver precedence
    parsed.sort(
        key=lambda item: (item[1].truncate("prerelease"), get_revision(item[0])),
        reverse=True,
    )
    return parsed, unparsable


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Sort versions newest first. Unparsable versions go last, in input order."""
    parsed, unparsable = _sort_parsed(versions)
    return [version for version, _ in parsed] + unparsable


def build_os_versions(versions: Iterable[str], latest: str | None = None) -> OsVersions:
    """Compute the latest, recommended and default versions.

    Args:
        versions: Supported versions in any order.
        latest: Server-reported latest version, used only when versions is empty.

    Returns:
        OsVersions with versions sorted newest first.
    """
    parsed, unparsable = _sort_parsed(versions)
    ordered = [version for version, _ in parsed] + unparsable

    recommended = None
    for version, semver in parsed:
        if semver.prerelease or is_development_version(version):
            continue
        recommended = version
        break

    latest = ordered[0] if ordered else latest
    return OsVersions(
        versions=ordered,
        latest=latest,
        recommended=recommended,
        default=recommended or latest,
    )


def get_max_satisfying_version(
    version_or_range: str, os_versions: OsVersions
) -> str | None:
    """Resolve a version token, exact version or npm-style range.

    Args:
        version_or_range: 'latest', 'recommended', 'default', an exact version
            or a range such as '^2.0.0'.
        os_versions: Supported versions.

    Returns:
        The newest matching version, or None.
    """
    if version_or_range in {token.value for token in VersionToken}:
        return getattr(os_versions, version_or_range)

    try:
        spec = NpmSpec(version_or_range)
    except ValueError:
        # Exact versions outside semver (e.g. '2.0.0.rev1') are not valid ranges
        if version_or_range in os_versions.versions:
            return version_or_range
        return None

    for version in os_versions.versions:
        semver = _coerce_version(version)
        if semver is not None and spec.match(semver):
            return version
    return None


def normalize_version(version: str) -> str:
    """Validate an exact OS version and strip a leading 'v'.

    Raises:
        InvalidParameterError: If version is empty or not an exact version.
    """
    if not version:
        raise InvalidParameterError("version", version)
    if version == VersionToken.LATEST.value:
        return version

    normalized = version[1:] if version.startswith("v") else version
    if not OS_VERSION_PATTERN.match(normalized):
        raise InvalidParameterError("version", version, "not an exact version")
    return normalized


class OsModel:
    """Operations on OS images."""

    def __init__(
        self,
        request: RequestSender,
        image_maker: ImageMakerClient,
        catalog: DeviceTypeCatalog,
        get_application_id: Callable[[ApplicationRef], Awaitable[int]],
    ) -> None:
        """Initialize OsModel.

        Args:
            request: HTTP request sender for API endpoints.
            image_maker: Image maker client.
            catalog: Device type catalog.
            get_application_id: Resolves an application reference to its id.
        """
        self._request = request
        self._image_maker = image_maker
        self._catalog = catalog
        self._get_application_id = get_application_id

    async def _validate_device_type(self, device_type: str) -> None:
        if await self._catalog.find_by_slug(device_type) is None:
            raise InvalidDeviceTypeError(device_type)

    async def get_download_size(self, device_type: str, version: str = "latest") -> int:
        """Get the estimated (uncompressed) image size in bytes."""
        await self._validate_device_type(device_type)
        return await self._image_maker.get(
            "/size_estimate",
            lambda body: body["size"],
            params={"deviceType": device_type, "version": version},
        )

    async def get_supported_versions(self, device_type: str) -> OsVersions:
        """Get the supported OS versions of a device type.

        Raises:
            InvalidDeviceTypeError: If the device type is unknown.
        """
        await self._validate_device_type(device_type)
        return await self._image_maker.get(
            f"/image/{device_type}/versions",
            lambda body: build_os_versions(body["versions"], body.get("latest")),
        )

    async def get_max_satisfying_version(
        self, device_type: str, version_or_range: str = "latest"
    ) -> str | None:
        """Get the newest supported version matching a token, version or range."""
        os_versions = await self.get_supported_versions(device_type)
        return get_max_satisfying_version(version_or_range, os_versions)

    async def get_last_modified(
        self, device_type: str, version: str = "latest"
    ) -> datetime:
        """Get the last modification date of an image.

        Raises:
            InvalidDeviceTypeError: If the device type is unknown.
            InvalidParameterError: If version is not an exact version.
            ImageNotFoundError: If no image exists for that version.
        """
        await self._validate_device_type(device_type)
        version = normalize_version(version)
        try:
            response = await self._image_maker.request(
                "HEAD", f"/image/{device_type}/", params={"version": version}
            )
        except RequestError as e:
            if is_not_found_response(e):
                raise ImageNotFoundError(device_type, version) from e
            raise
        return parsedate_to_datetime(response.headers["last-modified"])

    @asynccontextmanager
    async def download(
        self, device_type: str, version: str = "latest"
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming download of an image.

        Yields:
            Open response; read it with ``aiter_bytes()``.

        Raises:
            InvalidDeviceTypeError: If the device type is unknown.
            InvalidParameterError: If version is not an exact version.
            ImageNotFoundError: If no image exists for that version.
        """
        await self._validate_device_type(device_type)
        version = normalize_version(version)
        logger.info("Downloading %s OS %s", device_type, version)
        async with AsyncExitStack() as stack:
            # Only errors opening the stream are about the image
            try:
                response = await stack.enter_async_context(
                    self._image_maker.stream(
                        f"/image/{device_type}/", params={"version": version}
                    )
                )
            except RequestError as e:
                if is_not_found_response(e):
                    raise ImageNotFoundError(device_type, version) from e
                raise
            yield response

    async def download_to_file(
        self,
        device_type: str,
        dest_path: Path | str,
        version: str = "latest",
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    ) -> DownloadResult:
        """Download an image to a file.

        Args:
            device_type: Device type slug.
            dest_path: Destination file (parent directories are created).
            version: Exact version or 'latest'.
            chunk_size: Size of chunks to download.

        Returns:
            DownloadResult with path, SHA256 checksum, and size.
        """
        dest_path = Path(dest_path)
        async with self.download(device_type, version) as response:
            total_bytes = 0
            sha256 = hashlib.sha256()

            dest_path.parent.mkdir(parents=True, exist_ok=True)

            with dest_path.open("wb") as f:
                async for chunk in response.aiter_bytes(chunk_size):
                    f.write(chunk)
                    sha256.update(chunk)
                    total_bytes += len(chunk)

        checksum = sha256.hexdigest()
        logger.info(
            "Downloaded %s (%d bytes, checksum: %s)",
            dest_path.name,
            total_bytes,
            checksum[:16] + "...",
        )
        return DownloadResult(path=dest_path, checksum=checksum, size_bytes=total_bytes)

    async def get_config(
        self,
        name_or_slug_or_id: ApplicationRef,
        options: OsConfigOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Get the config.json of an application.

        Args:
            name_or_slug_or_id: Application reference.
            options: Config options (network defaults to ethernet).

        Returns:
            The generated config.json.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
        """
        if not isinstance(options, OsConfigOptions):
            options = OsConfigOptions.model_validate(options or {})

        with treat_as_missing_application(name_or_slug_or_id):
            application_id = await self._get_application_id(name_or_slug_or_id)
            body = options.model_dump(by_alias=True, exclude_none=True, mode="json")
            body["appId"] = application_id
            response = await self._request.send("POST", "/download-config", body=body)
        return response.body


__all__ = [
    "DEVELOPMENT_VERSION_PATTERN",
    "DownloadResult",
    "OS_VERSION_PATTERN",
    "REVISION_PATTERN",
    "OsConfigOptions",
    "OsModel",
    "OsVersions",
    "build_os_versions",
    "get_max_satisfying_version",
    "get_revision",
    "is_development_version",
    "normalize_version",
    "parse_version",
    "sort_versions",
]
