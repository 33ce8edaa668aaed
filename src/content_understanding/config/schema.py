"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from environment variables, optional .env files and programmatic
overrides into the correct types with proper defaults.
"""

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from content_understanding.constants import (
    BACKOFF_JITTER,
    BACKOFF_MULTIPLIER,
    DEFAULT_API_VERSION,
    DEFAULT_USER_AGENT,
    LONG_RUNNING_POLL_TIMEOUT,
    MAX_POLL_INTERVAL,
    POLL_INTERVAL,
    POLL_TIMEOUT,
)

ENV_PREFIX = "AZURE_CONTENT_UNDERSTANDING_"


class ContentUnderstandingSettings(BaseSettings):
    """Pydantic settings schema for the Content Understanding client.

    Integrates with environment variables using the
    AZURE_CONTENT_UNDERSTANDING_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars for forward compatibility
    )

    # --- Service ---

    endpoint: str = Field(
        description="Service endpoint, e.g. https://<resource>.services.ai.azure.com",
        min_length=1,
    )

    api_version: str = Field(default=DEFAULT_API_VERSION, min_length=1)

    subscription_key: str | None = Field(
        default=None,
        description="Static key; takes precedence over token authentication",
    )

    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)

    # --- Polling ---

    timeout_seconds: float = Field(default=POLL_TIMEOUT, gt=0)
    long_running_timeout_seconds: float = Field(default=LONG_RUNNING_POLL_TIMEOUT, gt=0)
    poll_interval_seconds: float = Field(default=POLL_INTERVAL, gt=0)
    polling_strategy: Literal["fixed", "exponential"] = "fixed"
    max_poll_interval_seconds: float = Field(default=MAX_POLL_INTERVAL, gt=0)
    backoff_multiplier: float = Field(default=BACKOFF_MULTIPLIER, ge=1)
    backoff_jitter: float = Field(default=BACKOFF_JITTER, ge=0, le=1)

    # --- Staged data locations ---

    training_data_sas_url: str | None = None
    training_data_path: str | None = None
    reference_docs_sas_url: str | None = None
    reference_docs_path: str | None = None

    # --- Validation Rules ---

    @field_validator("endpoint")
    @classmethod
    def normalize_endpoint(cls, v: str) -> str:
        """Require an http(s) endpoint and drop the trailing slash."""
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Invalid endpoint: {v!r}. Must start with https://")
        return v.rstrip("/")

    @field_validator("polling_strategy", mode="before")
    @classmethod
    def parse_strategy(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator(
        "subscription_key",
        "training_data_sas_url",
        "training_data_path",
        "reference_docs_sas_url",
        "reference_docs_path",
        mode="before",
    )
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        """Treat blank strings from .env files as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_poll_bounds(self) -> "ContentUnderstandingSettings":
        """Ensure the backoff cap is not below the base interval."""
        if self.max_poll_interval_seconds < self.poll_interval_seconds:
            raise ValueError(
                "max_poll_interval_seconds must be >= poll_interval_seconds"
            )
        return self
