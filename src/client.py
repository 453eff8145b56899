"""Telegram client factory for ephemera.

We explicitly manage the client's lifecycle (connect/run_until_disconnected)
so it is obvious when the session is created and when it ends.
"""

from __future__ import annotations

import logging

from telethon import TelegramClient

import settings


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    Raises ConfigError before any network activity when API_ID or API_HASH
    is missing. The session name defaults to "ephemera".
    """

    api_id, api_hash, session_name = settings.load_api_credentials()

    logging.getLogger(__name__).info("Initializing Telegram client (session %s)", session_name)

    return TelegramClient(session_name, api_id, api_hash)
