"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any Telegram-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from core.config import TargetScope


@dataclass(frozen=True)
class ObservedMessage:
    """Minimal view of a message, as delivered live or fetched from history."""

    id: int
    channel_id: int
    community_id: Optional[int]
    pinned: bool
    created_at: datetime


@dataclass(frozen=True, order=True)
class PendingDeletion:
    """One scheduled deletion, ordered by deadline (monotonic seconds)."""

    deadline: float
    message_id: int = field(compare=False)


@dataclass(frozen=True)
class MessageObserved:
    """Transport event: a new message was posted somewhere."""

    message: ObservedMessage


@dataclass(frozen=True)
class ChannelAttached:
    """Transport event: history for the given scope is now reachable."""

    scope: TargetScope


TransportEvent = Union[MessageObserved, ChannelAttached]


@dataclass
class SweepReport:
    """Outcome counters of one backfill sweep."""

    pages_fetched: int = 0
    messages_seen: int = 0
    candidates: int = 0
    deleted: int = 0
    failed: int = 0
    aborted: bool = False
