"""Configuration settings for fleet_models.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: constructor arguments > env vars > defaults.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.balena-cloud.com"
DEFAULT_IMAGE_MAKER_URL = "https://img.balena-cloud.com"


class Settings(BaseSettings):
    """Client settings.

    Settings are loaded from environment variables with the FLEET_ prefix.
    Explicit keyword arguments override them at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoints
    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the resource API",
    )
    api_version: str = Field(
        default="v6",
        description="Resource API version path segment",
    )
    dashboard_url: str | None = Field(
        default=None,
        description="Dashboard base URL (derived from api_url if not set)",
    )
    image_maker_url: str = Field(
        default=DEFAULT_IMAGE_MAKER_URL,
        description="Base URL of the OS image maker service",
    )

    # Authentication
    api_key: SecretStr | None = Field(
        default=None,
        description="API key or session token sent as a bearer token",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    request_timeout: float = Field(
        default=30.0,
        ge=1,
        description="Timeout for API requests",
    )
    download_timeout: float = Field(
        default=3600.0,
        ge=60,
        description="Timeout for OS image downloads",
    )

    @property
    def resolved_dashboard_url(self) -> str:
        """Return the dashboard URL, inferring it from api_url when unset."""
        if self.dashboard_url:
            return self.dashboard_url
        return self.api_url.replace("api", "dashboard", 1)


def get_settings() -> Settings:
    """Get the client settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The API key is masked by pydantic's SecretStr serialization.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_IMAGE_MAKER_URL",
    "Settings",
    "get_settings",
    "print_settings_json",
]
