"""Scope filtering and age checks shared by the scheduler and the sweeper."""

from __future__ import annotations

from datetime import datetime, timedelta

from core.config import TargetScope
from core.models import ObservedMessage


def in_scope(message: ObservedMessage, scope: TargetScope) -> bool:
    """True when the message lives in the managed community and channel."""

    # Direct messages carry no community and are never managed.
    if message.community_id is None:
        return False
    return message.community_id == scope.community_id and message.channel_id == scope.channel_id


def message_age(message: ObservedMessage, now: datetime) -> timedelta:
    """Age of a message relative to ``now``; negative under clock skew."""

    return now - message.created_at


def is_deletion_candidate(message: ObservedMessage, now: datetime, max_age: timedelta) -> bool:
    """Return True if a backfill sweep should delete this message.

    Pinned messages are always kept. A message that looks newer than ``now``
    has a negative age and never qualifies.
    """

    if message.pinned:
        return False
    age = message_age(message, now)
    if age < timedelta(0):
        return False
    return age > max_age
