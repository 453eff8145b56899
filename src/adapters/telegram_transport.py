"""Telethon event wiring.

Handlers only translate Telegram updates into core transport events and
publish them; all filtering happens in the core.
"""

from __future__ import annotations

import logging

from telethon import events

from adapters.telegram_mapper import to_observed_message
from core.config import TargetScope
from core.dispatcher import EventDispatcher
from core.identity import normalize_community_id
from core.models import ChannelAttached, MessageObserved

LOGGER = logging.getLogger(__name__)


def is_self_join(event, self_id: int, scope: TargetScope) -> bool:
    """True when this account was added to, or joined, the managed group."""

    if not (getattr(event, "user_added", False) or getattr(event, "user_joined", False)):
        return False
    chat_id = getattr(event, "chat_id", None)
    if not chat_id or normalize_community_id(chat_id) != scope.community_id:
        return False
    return self_id in (getattr(event, "user_ids", None) or [])


def register_handlers(client, dispatcher: EventDispatcher, scope: TargetScope, self_id: int) -> None:
    """Attach NewMessage and ChatAction handlers that feed the dispatcher."""

    # Outgoing messages expire too, so both directions are observed.
    @client.on(events.NewMessage())
    async def on_new_message(event) -> None:
        try:
            dispatcher.publish(MessageObserved(to_observed_message(event.message)))
        except Exception:
            LOGGER.exception("Error while handling new message")

    @client.on(events.ChatAction())
    async def on_chat_action(event) -> None:
        if is_self_join(event, self_id, scope):
            LOGGER.info("Joined community %s; scheduling backfill", scope.community_id)
            dispatcher.publish(ChannelAttached(scope))
