"""Shared fixtures for fleet_models tests."""

from typing import Any

import httpx
import pytest
import pytest_asyncio

from fleet_models import FleetClient
from fleet_models.config import Settings

API_URL = "https://api.test"
IMAGE_MAKER_URL = "https://img.test"

DEVICE_TYPES = [
    {
        "slug": "raspberrypi3",
        "name": "Raspberry Pi 3",
        "state": "RELEASED",
        "aliases": ["raspberry-pi3"],
    },
    {
        "slug": "raspberry-pi",
        "name": "Raspberry Pi (v1 / Zero / Zero W)",
        "state": "RELEASED",
        "aliases": [],
    },
    {
        "slug": "edge",
        "name": "Intel Edison",
        "state": "DISCONTINUED",
        "aliases": [],
    },
]


def odata(*records: dict[str, Any]) -> httpx.Response:
    """Build a resource API response wrapping records in the 'd' envelope."""
    return httpx.Response(200, json={"d": list(records)})


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at test hosts, ignoring any local .env file."""
    return Settings(
        api_url=API_URL,
        image_maker_url=IMAGE_MAKER_URL,
        api_key="secret-token",
        _env_file=None,
    )


@pytest_asyncio.fixture
async def client(settings):
    """A FleetClient whose HTTP client is closed after the test."""
    fleet = FleetClient(settings)
    yield fleet
    await fleet.aclose()
