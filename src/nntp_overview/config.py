"""Configuration management for the NNTP overview client.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from datetime import datetime, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nntp_overview.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the NNTP_ prefix (e.g., NNTP_HOST).
    """

    model_config = SettingsConfigDict(
        env_prefix="NNTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = Field(
        default="localhost",
        description="News server host name",
    )
    port: int = Field(
        default=119,
        description="News server port (563 is the usual port for NNTP over TLS)",
    )
    use_ssl: bool = Field(
        default=False,
        description="Wrap the connection in TLS",
    )
    connect_timeout: float = Field(
        default=30.0,
        description="Timeout for establishing the connection in seconds",
    )
    username: str | None = Field(
        default=None,
        description="AUTHINFO user name; authentication is skipped when unset",
    )
    password: str | None = Field(
        default=None,
        description="AUTHINFO password",
    )
    encoding: str = Field(
        default="utf-8",
        description="Character encoding used to decode server lines",
    )

    # Overview Configuration
    stream_queue_size: int = Field(
        default=1024,
        ge=1,
        description="Capacity of the decoded-header queue used by streaming XOVER",
    )
    stream_error_queue_size: int = Field(
        default=65536,
        ge=1,
        description="Capacity of the error queue used by streaming XOVER",
    )
    local_timezone: str | None = Field(
        default=None,
        description=(
            "IANA zone used first when resolving zone abbreviations in Date headers. "
            "Defaults to the process's local zone."
        ),
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    @field_validator("local_timezone")
    @classmethod
    def _check_local_timezone(cls, v: str | None) -> str | None:
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown local timezone: {v}") from exc
        return v

    @property
    def host_zone(self) -> tzinfo | None:
        """Zone consulted first when resolving Date zone abbreviations."""
        if self.local_timezone:
            return ZoneInfo(self.local_timezone)
        return datetime.now().astimezone().tzinfo


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.

    Raises:
        ConfigurationError: If the environment holds an invalid value.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
