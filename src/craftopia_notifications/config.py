"""Configuration for the Craftopia notification client."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    api_base_url: str = "http://localhost:5000/api"
    api_token: SecretStr = SecretStr("")
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)

    # Polling cadence of the notification feed. Tests compress these.
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    reconcile_delay_seconds: float = Field(default=0.5, ge=0)

    sentry_dsn: str | None = None
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="CRAFTOPIA_", env_file=".env", extra="ignore")
