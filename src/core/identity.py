"""Helpers for working with Telegram peer ids of the managed community."""

from __future__ import annotations

CHANNEL_PREFIX = "-100"


def normalize_community_id(raw_id: int) -> int:
    """Return the bare peer id for a marked or unmarked group id.

    Telegram clients show supergroups as ``-100<channel_id>`` and basic groups
    as ``-<chat_id>``, while message peers carry the bare positive id.
    """

    if raw_id > 0:
        return raw_id
    raw_text = str(raw_id)
    if raw_text.startswith(CHANNEL_PREFIX):
        # Channel/supergroup peer id: -100<channel_id>
        channel_part = raw_text[len(CHANNEL_PREFIX):]
        if channel_part.isdigit() and int(channel_part) > 0:
            return int(channel_part)
    if raw_id == 0:
        raise ValueError("community id must not be 0")
    return abs(raw_id)

