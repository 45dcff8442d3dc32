"""
Centralized configuration management for the Tax Gateway Core.

The gateway itself never reads the environment: callers build a PortalConfig
and RetryConfig (typically through AppConfig.from_env()) and pass them in at
construction. Everything is validated with Pydantic.
"""

import os
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DEFAULT_BASE_URL, EnvironmentVariable, LogLevel

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


class PortalConfig(BaseModel):
    """Connection settings for the portal's gateway layer."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    base_url: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.IRP_BASE_URL.value, DEFAULT_BASE_URL),
        description="Portal base URL",
    )
    api_key: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SANDBOX_API_KEY.value, ""),
        description="Gateway API key",
    )
    api_secret: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SANDBOX_API_SECRET.value, ""),
        description="Gateway API secret",
    )
    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SANDBOX_ENVIRONMENT.value, "test"),
        description="Portal environment tag",
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-call timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are appended with a leading slash."""
        return v.rstrip("/")


class RetryConfig(BaseModel):
    """Retry and backoff behaviour of the request executor."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=1, description="Total attempts per operation")
    initial_delay: float = Field(default=1.0, gt=0, description="First backoff delay (seconds)")
    max_delay: float = Field(default=30.0, gt=0, description="Backoff cap (seconds)")
    multiplier: float = Field(default=2.0, ge=1, description="Exponential multiplier")
    jitter: bool = Field(default=False, description="Randomize delays by +/-25%")

    @model_validator(mode="after")
    def check_delay_bounds(self) -> "RetryConfig":
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must not be smaller than initial_delay")
        return self


class AuthorityCredentials(BaseModel):
    """Per-company document authority login (e-invoice or e-way bill)."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    username: str = Field(..., min_length=1, description="Authority username")
    password: str = Field(..., min_length=1, description="Authority password", repr=False)
    gstin: str = Field(..., description="Company GST registration identifier")

    @field_validator("gstin")
    @classmethod
    def validate_gstin(cls, v: str) -> str:
        if not GSTIN_PATTERN.match(v):
            raise ValueError(f"Invalid GSTIN format: {v}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class QueueConfig(BaseModel):
    """Azure Storage Queue used as an optional log sink."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default="logs-queue", description="Logs queue name")


class FeatureFlags(BaseModel):
    """Feature flags for controlling gateway behavior."""

    enable_logs_queue: bool = Field(default=False, description="Ship logs to the Azure queue")
    enable_idempotency_key: bool = Field(
        default=True, description="Send a stable idempotency key with every submission"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    portal: PortalConfig = Field(default_factory=PortalConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def eway_bill_portal(self) -> PortalConfig:
        """Portal settings for the e-way bill authority, which may live on another host."""
        base_url = os.getenv(EnvironmentVariable.EWAY_BILL_BASE_URL.value)
        if not base_url:
            return self.portal
        return self.portal.model_copy(update={"base_url": base_url.rstrip("/")})


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
