"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the scheduler and the sweeper.
"""

from __future__ import annotations

from datetime import timezone
from typing import Optional

from telethon.tl.custom import Message
from telethon.tl.types import MessageActionTopicCreate, PeerChannel, PeerChat

from core.config import GENERAL_TOPIC_ID
from core.models import ObservedMessage


def community_id_from_message(message: Message) -> Optional[int]:
    """Return the bare group id of the message, or None for private chats."""

    peer_id = getattr(message, "peer_id", None)
    if isinstance(peer_id, PeerChannel):
        return peer_id.channel_id
    if isinstance(peer_id, PeerChat):
        return peer_id.chat_id
    # PeerUser (or no peer at all) is a direct message.
    return None


def topic_id_from_message(message: Message) -> int:
    """Return the forum topic of a message, General for everything else."""

    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return GENERAL_TOPIC_ID
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    # A message posted at the root of a topic replies to the topic itself.
    return getattr(reply_to, "reply_to_msg_id", None) or GENERAL_TOPIC_ID


def is_topic_anchor(message: Message) -> bool:
    """True for the service message that opens a forum topic.

    Removing it would remove the whole topic, so it is kept like a pin.
    """

    return isinstance(getattr(message, "action", None), MessageActionTopicCreate)


def to_observed_message(message: Message) -> ObservedMessage:
    """Build a core ObservedMessage from a Telethon Message."""

    created_at = message.date
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return ObservedMessage(
        id=message.id,
        channel_id=topic_id_from_message(message),
        community_id=community_id_from_message(message),
        pinned=bool(getattr(message, "pinned", False)) or is_topic_anchor(message),
        created_at=created_at,
    )
