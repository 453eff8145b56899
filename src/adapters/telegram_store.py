"""Telegram message store adapter.

Implements the core MessageStorePort on top of a connected Telethon client.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from telethon import errors
from telethon.tl.types import PeerChannel, PeerChat

from adapters.telegram_mapper import to_observed_message
from core.config import GENERAL_TOPIC_ID, PAGE_SIZE, TargetScope
from core.errors import DeleteError, FetchError, MessageNotFound
from core.models import ObservedMessage

LOGGER = logging.getLogger(__name__)


class TelegramMessageStore:
    """Fetches and deletes messages of the managed group, with an entity cache."""

    def __init__(self, client, page_size: int = PAGE_SIZE) -> None:
        self._client = client
        self._page_size = page_size
        self._entities: dict[int, Any] = {}

    async def _entity(self, community_id: int):
        if community_id in self._entities:
            return self._entities[community_id]
        # Supergroups (and forums) are channels; fall back to basic groups.
        try:
            entity = await self._client.get_entity(PeerChannel(community_id))
        except ValueError:
            entity = await self._client.get_entity(PeerChat(community_id))
        self._entities[community_id] = entity
        return entity

    async def fetch_page(
        self, scope: TargetScope, before_id: Optional[int] = None
    ) -> list[ObservedMessage]:
        """Return up to page_size messages older than before_id, newest-first."""

        kwargs: dict[str, Any] = {"limit": self._page_size, "offset_id": before_id or 0}
        if scope.channel_id != GENERAL_TOPIC_ID:
            kwargs["reply_to"] = scope.channel_id
        try:
            entity = await self._entity(scope.community_id)
            messages = await self._client.get_messages(entity, **kwargs)
        except (ValueError, errors.RPCError, ConnectionError) as exc:
            raise FetchError(f"community {scope.community_id}: {exc}") from exc
        return [to_observed_message(message) for message in messages]

    async def delete(self, scope: TargetScope, message_id: int) -> None:
        """Revoke one message for everyone."""

        try:
            entity = await self._entity(scope.community_id)
            affected = await self._client.delete_messages(entity, [message_id], revoke=True)
        except errors.MessageIdInvalidError as exc:
            raise MessageNotFound(message_id, str(exc)) from exc
        except (ValueError, errors.RPCError, ConnectionError) as exc:
            raise DeleteError(message_id, str(exc)) from exc

        # Telegram reports no error for unknown ids, only an empty pts_count.
        if not affected or not any(getattr(item, "pts_count", 0) for item in affected):
            raise MessageNotFound(message_id)
        LOGGER.debug("Telegram confirmed deletion of message %s", message_id)
