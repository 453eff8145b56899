"""Static configuration for ephemera.

Secrets and the managed target come from the environment (a local .env is
honored). The optional config.json only carries logging preferences.
"""

import json
import os

from dotenv import load_dotenv

from core.config import TargetScope
from core.errors import ConfigError
from core.identity import normalize_community_id

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

DEFAULT_SESSION_NAME = "ephemera"


def _load_json_config() -> dict:
    """Load config.json if present; every section in it is optional."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    try:
        with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
            config = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read {CONFIG_PATH}: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigError(f"{CONFIG_PATH} must hold a JSON object")
    return config


def _require_int(name: str) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        raise ConfigError(f"Missing {name} in environment")
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} is not a valid integer: {raw!r}") from exc


def load_target_scope() -> TargetScope:
    """Build the managed community/channel pair from the environment.

    TARGET_COMMUNITY_ID accepts the bare id or the marked forms Telegram
    clients display (-100<id> for supergroups, -<id> for basic groups).
    TARGET_CHANNEL_ID is the forum topic id, 1 for General.
    """

    load_dotenv()
    community_id = _require_int("TARGET_COMMUNITY_ID")
    channel_id = _require_int("TARGET_CHANNEL_ID")
    try:
        community_id = normalize_community_id(community_id)
    except ValueError as exc:
        raise ConfigError(f"TARGET_COMMUNITY_ID is invalid: {exc}") from exc
    if channel_id <= 0:
        raise ConfigError("TARGET_CHANNEL_ID must be a positive topic id")
    return TargetScope(community_id=community_id, channel_id=channel_id)


def load_api_credentials() -> tuple[int, str, str]:
    """Return (api_id, api_hash, session_name) for the Telegram client."""

    load_dotenv()
    api_id = _require_int("API_ID")
    api_hash = (os.getenv("API_HASH") or "").strip()
    if not api_hash:
        raise ConfigError("Missing API_HASH in environment")
    session_name = os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    return api_id, api_hash, session_name


def load_logging_config() -> dict:
    """Return the optional logging section of config.json."""

    logging_config = _load_json_config().get("logging", {})
    if not isinstance(logging_config, dict):
        raise ConfigError("config.json: logging must be an object")
    return logging_config
