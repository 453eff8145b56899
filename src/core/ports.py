"""Ports (interfaces) used by the core.

The message store port defines the minimal remote contract the scheduler and
the sweeper need, so the core can be reused with different chat backends.
"""

from __future__ import annotations

from typing import Optional, Protocol

from core.config import TargetScope
from core.models import ObservedMessage


class MessageStorePort(Protocol):
    """Remote message operations required by the core."""

    async def fetch_page(
        self, scope: TargetScope, before_id: Optional[int] = None
    ) -> list[ObservedMessage]:
        """Return one newest-first page, strictly older than ``before_id``.

        Raises ``FetchError`` when the page cannot be retrieved.
        """
        ...

    async def delete(self, scope: TargetScope, message_id: int) -> None:
        """Delete one message.

        Raises ``MessageNotFound`` when the message is already gone and
        ``DeleteError`` for any other failure.
        """
        ...
