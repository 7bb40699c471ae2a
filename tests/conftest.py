"""Shared fixtures for notification client tests."""

from __future__ import annotations

import pytest
from craftopia_notifications.config import Settings
from fakes import NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://api.craftopia.test",
        api_token="session-token",
        poll_interval_seconds=3600,
        reconcile_delay_seconds=3600,
    )


@pytest.fixture
def clock():
    return lambda: NOW
