"""
Process settings for the connector.

Uses Pydantic BaseSettings for environment variable integration and
validation.  Rule configuration lives in ``sccconnector.rules``; this
module only covers how the connector identifies itself and logs.

Configuration sources (in order of precedence):
1. Explicit arguments to ``get_settings()``
2. Environment variables (SCC_*)
3. .env file
4. Default values

Example:
    from sccconnector.config import get_settings

    settings = get_settings()
    print(settings.service_name)  # From SCC_SERVICE_NAME or default
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SccSettings(BaseSettings):
    """
    Settings for the connector process.

    Example:
        export SCC_LOG_LEVEL=debug
        export SCC_LOG_FORMAT=text
    """

    model_config = SettingsConfigDict(
        env_prefix="SCC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = Field(
        default="sccconnector",
        description="service.name set on the resource of emitted diagnostics",
    )

    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for the sccconnector logger",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format (json for log shippers, text for console)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def lower_level(cls, v: object) -> object:
        """Accept upper-case level names (SCC_LOG_LEVEL=DEBUG)."""
        return v.lower() if isinstance(v, str) else v


# Global singleton
_settings: Optional[SccSettings] = None


def get_settings(**overrides) -> SccSettings:
    """
    Get the global settings instance.

    Creates a singleton on first call. Subsequent calls return the same
    instance unless overrides are provided.
    """
    global _settings

    if overrides or _settings is None:
        _settings = SccSettings(**overrides)

    return _settings


def reset_settings() -> None:
    """Reset the global settings (for testing)."""
    global _settings
    _settings = None
