"""Tests for configuration module."""

import json
import os
from unittest.mock import patch

from fleet_models.config import (
    DEFAULT_API_URL,
    DEFAULT_IMAGE_MAKER_URL,
    Settings,
    get_settings,
    print_settings_json,
)


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings(_env_file=None)

        assert settings.api_url == DEFAULT_API_URL
        assert settings.image_maker_url == DEFAULT_IMAGE_MAKER_URL
        assert settings.api_version == "v6"
        assert settings.api_key is None
        assert settings.log_level == "INFO"
        assert settings.request_timeout >= 1
        assert settings.download_timeout >= 60

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "FLEET_API_URL": "https://api.example.com",
                "FLEET_LOG_LEVEL": "DEBUG",
                "FLEET_REQUEST_TIMEOUT": "5",
                "FLEET_API_KEY": "abc123",
            },
        ):
            settings = Settings(_env_file=None)
            assert settings.api_url == "https://api.example.com"
            assert settings.log_level == "DEBUG"
            assert settings.request_timeout == 5
            assert settings.api_key is not None
            assert settings.api_key.get_secret_value() == "abc123"

    def test_dashboard_url_derived_from_api_url(self) -> None:
        """Dashboard URL should be inferred from the API URL when unset."""
        settings = Settings(api_url="https://api.example.com", _env_file=None)
        assert settings.resolved_dashboard_url == "https://dashboard.example.com"

    def test_dashboard_url_explicit(self) -> None:
        """An explicit dashboard URL should win."""
        settings = Settings(
            api_url="https://api.example.com",
            dashboard_url="https://console.example.com",
            _env_file=None,
        )
        assert settings.resolved_dashboard_url == "https://console.example.com"


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        settings = get_settings()
        assert isinstance(settings, Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        settings = Settings(_env_file=None)
        json_str = print_settings_json(settings)

        parsed = json.loads(json_str)

        assert "api_url" in parsed
        assert "image_maker_url" in parsed
        assert "request_timeout" in parsed

    def test_print_settings_json_masks_api_key(self) -> None:
        """The API key should never be rendered in clear text."""
        settings = Settings(api_key="very-secret", _env_file=None)
        json_str = print_settings_json(settings)

        assert "very-secret" not in json_str

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        json_str = print_settings_json()
        parsed = json.loads(json_str)
        assert "api_url" in parsed
