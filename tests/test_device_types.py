"""Tests for the device type catalog."""

import asyncio

import httpx
import pytest
import respx

from conftest import API_URL, DEVICE_TYPES
from fleet_models.errors import RequestError
from fleet_models.models.device_types import (
    DeviceTypeCatalog,
    DeviceTypeManifest,
    find_by_slug,
)


class TestFindBySlug:
    """Tests for find_by_slug function."""

    def test_by_slug_and_alias(self):
        """Entries should be found by slug or by alias."""
        catalog = [DeviceTypeManifest.model_validate(dt) for dt in DEVICE_TYPES]

        assert find_by_slug(catalog, "raspberrypi3").slug == "raspberrypi3"
        assert find_by_slug(catalog, "raspberry-pi3").slug == "raspberrypi3"
        assert find_by_slug(catalog, "nope") is None

    def test_discontinued(self):
        """DISCONTINUED entries should report is_discontinued."""
        manifest = DeviceTypeManifest(slug="edge", state="DISCONTINUED")
        assert manifest.is_discontinued
        assert not DeviceTypeManifest(slug="raspberrypi3", state="RELEASED").is_discontinued

    def test_extra_fields_kept(self):
        """Unknown manifest fields should be preserved."""
        manifest = DeviceTypeManifest.model_validate({"slug": "x", "arch": "armv7hf"})
        assert manifest.model_extra == {"arch": "armv7hf"}


class TestDeviceTypeCatalog:
    """Tests for DeviceTypeCatalog."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetched_once(self, client):
        """The catalog should be fetched once and reused."""
        route = respx.get(f"{API_URL}/device-types/v1").mock(
            return_value=httpx.Response(200, json=DEVICE_TYPES)
        )
        catalog = DeviceTypeCatalog(client.request)

        first, second = await asyncio.gather(catalog.get_all(), catalog.get_all())
        third = await catalog.find_by_slug("raspberry-pi")

        assert route.call_count == 1
        assert [dt.slug for dt in first] == ["raspberrypi3", "raspberry-pi", "edge"]
        assert second == first
        assert third.name == "Raspberry Pi (v1 / Zero / Zero W)"

    @pytest.mark.asyncio
    @respx.mock
    async def test_failure_not_memoized(self, client):
        """A failed fetch should be retried on the next call."""
        route = respx.get(f"{API_URL}/device-types/v1").mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json=DEVICE_TYPES),
            ]
        )
        catalog = DeviceTypeCatalog(client.request)

        with pytest.raises(RequestError):
            await catalog.get_all()
        device_types = await catalog.get_all()

        assert route.call_count == 2
        assert len(device_types) == 3
