"""
Exporter configuration loaded from environment variables and a JSON file.

Uses Pydantic BaseSettings.  Sources, highest priority first: constructor
arguments, environment variables, ``.env`` file, then the JSON config file
(``config/config.json`` unless ``EXPORTER_CONFIG_FILE`` points elsewhere).
The JSON file may use the camelCase keys of the Tuya app credentials
(``appKey``, ``appSecret``, ``countryCode``, ``email``, ``password``).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import os

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from tuya_exporter.src.cloud import REGION_ENDPOINTS

DEFAULT_CONFIG_FILE = "config/config.json"
CONFIG_FILE_ENV_VAR = "EXPORTER_CONFIG_FILE"


class ExporterSettings(BaseSettings):
    """Tuya exporter configuration.

    Attributes:
        app_key: Tuya application key.
        app_secret: Tuya application secret (request signing).
        region: Tuya region code (``AY``, ``AZ``, ``EU``, ``IN``).  Read
            from ``countryCode`` in the JSON file.
        email: Tuya account email.
        password: Tuya account password.
        login_country_code: Country code sent on login (defaults to the
            region code).
        listen_host: HTTP bind address.
        listen_port: HTTP port (default 8001).
        poll_delay_s: Pause between poll cycles.
        watchdog_timeout_s: Maximum duration of startup and of a poll cycle.
        refresh_interval_s: Seconds between device list refreshes.
        inactive_timeout_s: Devices silent for longer are not registered.
        request_timeout_s: Per-request HTTP timeout for the cloud client.
    """

    app_key: str = Field(validation_alias=AliasChoices("app_key", "appKey"))
    app_secret: str = Field(validation_alias=AliasChoices("app_secret", "appSecret"))
    region: str = Field(validation_alias=AliasChoices("region", "countryCode"))
    email: str
    password: str
    login_country_code: str | None = None
    listen_host: str = "0.0.0.0"  # noqa: S104
    listen_port: int = 8001
    poll_delay_s: float = 2.0
    watchdog_timeout_s: float = 30.0
    refresh_interval_s: float = 3600.0
    inactive_timeout_s: float = 1800.0
    request_timeout_s: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Add the JSON config file as the lowest-priority source."""
        json_file = os.environ.get(CONFIG_FILE_ENV_VAR, DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file),
            file_secret_settings,
        )

    @field_validator("region")
    @classmethod
    def region_must_be_known(cls, v: str) -> str:
        """Validate the region against the known API endpoints."""
        region = v.upper()
        if region not in REGION_ENDPOINTS:
            raise ValueError(
                f"REGION must be one of {', '.join(sorted(REGION_ENDPOINTS))} (got '{v}')"
            )
        return region

    @field_validator("listen_port")
    @classmethod
    def listen_port_must_be_valid(cls, v: int) -> int:
        """Validate the HTTP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("LISTEN_PORT must be between 1 and 65535")
        return v

    @field_validator(
        "watchdog_timeout_s",
        "refresh_interval_s",
        "inactive_timeout_s",
        "request_timeout_s",
    )
    @classmethod
    def durations_must_be_positive(cls, v: float) -> float:
        """Validate timeouts and intervals are strictly positive."""
        if v <= 0:
            raise ValueError("timeouts and intervals must be > 0")
        return v

    @field_validator("poll_delay_s")
    @classmethod
    def poll_delay_must_be_non_negative(cls, v: float) -> float:
        """Validate the delay between poll cycles is non-negative."""
        if v < 0:
            raise ValueError("POLL_DELAY_S must be >= 0")
        return v
