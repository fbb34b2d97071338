"""Tests for FleetClient wiring."""

import logging

import httpx
import pytest
import respx

from conftest import API_URL
from fleet_models import FleetClient
from fleet_models.config import Settings


class TestFleetClient:
    """Tests for FleetClient."""

    @pytest.mark.asyncio
    async def test_collaborators_created_once(self, client):
        """Models should be created on first access and then reused."""
        assert client.application is client.application
        assert client.os is client.os
        assert client.device_types is client.device_types
        assert client.pine is client.pine

    @pytest.mark.asyncio
    async def test_sub_namespaces(self, client):
        """The application model should expose its sub-namespaces."""
        application = client.application

        assert application.tags.resource_name == "application_tag"
        assert application.config_var.resource_name == "application_config_variable"
        assert application.env_var.resource_name == "application_environment_variable"
        assert application.build_var.resource_name == "build_environment_variable"
        assert application.membership is not None
        assert application.invite is not None

    @pytest.mark.asyncio
    async def test_applies_log_level(self):
        """The configured log level should apply to the package logger."""
        settings = Settings(log_level="DEBUG", _env_file=None)
        async with FleetClient(settings):
            assert logging.getLogger("fleet_models").level == logging.DEBUG

    @pytest.mark.asyncio
    @respx.mock
    async def test_injected_http_client_not_closed(self, settings):
        """An injected HTTP client should stay open after the client closes."""
        respx.get(f"{API_URL}/ping").mock(return_value=httpx.Response(200))

        async with httpx.AsyncClient() as http_client:
            async with FleetClient(settings, http_client=http_client) as fleet:
                await fleet.request.send("GET", "/ping")

            assert not http_client.is_closed
