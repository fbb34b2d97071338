"""Client entry point.

``FleetClient`` wires the transport layer and the resource models
together. Every collaborator is created on first access and then reused
for the lifetime of the client.
"""

from __future__ import annotations

import logging
from functools import cached_property
from types import TracebackType

import httpx

from fleet_models.config import Settings, get_settings
from fleet_models.models.application import ApplicationModel
from fleet_models.models.device import DeviceModel
from fleet_models.models.device_types import DeviceTypeCatalog
from fleet_models.models.os import OsModel
from fleet_models.models.release import ReleaseModel
from fleet_models.transport.image_maker import ImageMakerClient
from fleet_models.transport.pine import PineClient
from fleet_models.transport.request import RequestSender

logger = logging.getLogger(__name__)


class FleetClient:
    """Async client for applications and OS images.

    Example:
        async with FleetClient() as client:
            app = await client.application.get("myorg/myapp")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize FleetClient.

        Args:
            settings: Client settings (loaded from the environment if not provided).
            http_client: HTTPX async client (one is created and owned if not provided).
        """
        self.settings = settings or get_settings()
        self._http_client = http_client
        logging.getLogger("fleet_models").setLevel(self.settings.log_level)

    @cached_property
    def request(self) -> RequestSender:
        return RequestSender(self.settings, self._http_client)

    @cached_property
    def pine(self) -> PineClient:
        return PineClient(
            self.request,
            api_url=self.settings.api_url,
            api_version=self.settings.api_version,
        )

    @cached_property
    def image_maker(self) -> ImageMakerClient:
        return ImageMakerClient(self.request, self.settings.image_maker_url)

    @cached_property
    def device_types(self) -> DeviceTypeCatalog:
        return DeviceTypeCatalog(self.request)

    @cached_property
    def device(self) -> DeviceModel:
        return DeviceModel(self.device_types)

    @cached_property
    def release(self) -> ReleaseModel:
        return ReleaseModel(self.pine)

    @cached_property
    def application(self) -> ApplicationModel:
        return ApplicationModel(
            self.pine,
            self.request,
            self.settings,
            device_model=self.device,
            release_model=self.release,
        )

    @cached_property
    def os(self) -> OsModel:
        return OsModel(
            self.request,
            self.image_maker,
            self.device_types,
            get_application_id=self.application.get_id,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this client created it."""
        if "request" in self.__dict__:
            await self.request.aclose()

    async def __aenter__(self) -> FleetClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["FleetClient"]
