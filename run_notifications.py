#!/usr/bin/env python3
"""
Notification feed development runner.
For local development only - polls the backend at CRAFTOPIA_API_BASE_URL
and prints the feed every time it changes.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

# Add src to path
project_dir = Path(__file__).parent
sys.path.insert(0, str(project_dir / "src"))

# Load .env file if it exists (values take priority over defaults)
from dotenv import load_dotenv

env_file = project_dir / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"📁 Loaded config from {env_file}")

os.environ.setdefault("CRAFTOPIA_API_BASE_URL", "http://localhost:5000/api")

import sentry_sdk

from craftopia_notifications.auth import SessionAuth
from craftopia_notifications.client import NotificationClient
from craftopia_notifications.config import Settings
from craftopia_notifications.models import SyncState
from craftopia_notifications.presentation import render_view
from craftopia_notifications.sync import NotificationSync


def _init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        send_default_pii=False,
        traces_sample_rate=0.0,
    )
    print(f"Sentry initialized for environment: {settings.environment}")


async def main() -> None:
    settings = Settings()
    _init_sentry(settings)
    client = NotificationClient(settings, SessionAuth(settings))
    sync = NotificationSync(client, settings)

    def show(view) -> None:
        if view.sync_state is SyncState.FETCHING:
            return
        print("")
        for line in render_view(view, sync.clock()):
            print(line)

    sync.subscribe(show)
    try:
        async with sync:
            while True:
                await asyncio.sleep(3600)
    finally:
        await client.aclose()


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("CRAFTOPIA_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    print("🔔 Starting Craftopia notification feed...")
    print(f"🔗 Backend API: {os.getenv('CRAFTOPIA_API_BASE_URL')}")
    print("")
    print("⚠️  Set CRAFTOPIA_API_TOKEN to a signed-in user's session token first.")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Stopped.")
