"""Application entry point for the ephemera retention agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.telegram_store import TelegramMessageStore
from adapters.telegram_transport import register_handlers
from client import build_client
from core.config import TargetScope
from core.dispatcher import EventDispatcher
from core.errors import ConfigError
from core.models import ChannelAttached
from core.scheduler import ExpiryScheduler
from core.sweeper import BackfillSweeper
from get_session import authorize, login

NAME = "EPHEMERA"
FONT = "tarty-1"

DEFAULT_REDACT_PATTERNS = ["API_HASH", "2FA"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {})
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", DEFAULT_REDACT_PATTERNS):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.load_logging_config()
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/ephemera.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _exit_on_config_error(exc: ConfigError) -> None:
    # Logging may itself be what failed to configure.
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)
    logging.getLogger(__name__).error("Configuration error: %s", exc)
    raise SystemExit(2) from exc


async def _serve(client, scope: TargetScope) -> None:
    """Wire the core to the connected client and block until disconnect."""

    logger = logging.getLogger(__name__)

    await client.connect()
    await authorize(client)
    me = await client.get_me()
    logger.info("%s is connected!", me.first_name)

    store = TelegramMessageStore(client)
    scheduler = ExpiryScheduler(store, scope)
    sweeper = BackfillSweeper(store, scope)
    dispatcher = EventDispatcher(scheduler, sweeper)
    register_handlers(client, dispatcher, scope, me.id)

    # The account may already be a member; treat startup as an attach.
    dispatcher.publish(ChannelAttached(scope))

    tasks = [
        asyncio.create_task(scheduler.run()),
        asyncio.create_task(dispatcher.run()),
    ]
    logger.info(
        "Listening for messages in community %s channel %s...",
        scope.community_id,
        scope.channel_id,
    )
    try:
        await client.run_until_disconnected()
    finally:
        # Pending deletions are dropped; the next attach sweep catches up.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Stopped with %s pending deletions dropped", scheduler.pending_count)


def _run() -> None:
    _print_banner()
    logger = logging.getLogger(__name__)

    # Fail fast on configuration before touching the network.
    try:
        _configure_logging()
        logger.info("Starting ephemera")
        scope = settings.load_target_scope()
        client = build_client()
    except ConfigError as exc:
        _exit_on_config_error(exc)

    client.loop.run_until_complete(_serve(client, scope))


def _login() -> None:
    _print_banner()
    try:
        _configure_logging()
        asyncio.run(login())
    except ConfigError as exc:
        _exit_on_config_error(exc)


def _dialog_type(dialog: Any) -> str:
    if getattr(dialog, "is_channel", False):
        entity = getattr(dialog, "entity", None)
        if getattr(entity, "forum", False):
            return "forum"
        if getattr(entity, "megagroup", False):
            return "group"
        return "channel"
    return "group"


def _dialog_title(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = getattr(dialog, "name", None)
    if name:
        return str(name)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


async def _list_group_dialogs(client) -> None:
    dialogs = []
    async for dialog in client.iter_dialogs():
        # Only groups and channels can be managed; private chats have no community.
        if dialog.is_user:
            continue
        dialogs.append(dialog)

    if not dialogs:
        print("This account is not a member of any group.")
        return

    for index, dialog in enumerate(dialogs, start=1):
        entity_id = getattr(dialog.entity, "id", None)
        print(f"{index}. {_dialog_type(dialog)} | {_dialog_title(dialog)} | TARGET_COMMUNITY_ID={entity_id}")


def _discover() -> None:
    _print_banner()
    try:
        client = build_client()
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        raise SystemExit(2) from exc

    async def _run_discover() -> None:
        await client.connect()
        if not await client.is_user_authorized():
            print("Authorization required. Starting login...")
            await authorize(client)
        await _list_group_dialogs(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_discover())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ephemera")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the retention agent")
    subparsers.add_parser("login", help="Create or refresh the Telegram session")
    subparsers.add_parser(
        "discover",
        help="List the groups this account is in, with their community ids.",
    )

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "discover":
        _discover()
        return
    _run()


if __name__ == "__main__":
    main()
