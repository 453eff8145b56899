"""Core configuration dataclasses and retention constants.

We keep config parsing outside the core, but these values define the shape
the core expects so adapters and the app layer can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

# Nothing in the managed channel may stay visible longer than this.
MAX_MESSAGE_AGE = timedelta(minutes=30)

# Upper bound of one history fetch.
PAGE_SIZE = 50

# Telegram puts messages outside any forum topic into "General" (id 1).
GENERAL_TOPIC_ID = 1


@dataclass(frozen=True)
class TargetScope:
    """The single community/channel pair under management."""

    community_id: int
    channel_id: int


@dataclass(frozen=True)
class RetentionConfig:
    """Retention settings shared by the scheduler and the sweeper."""

    max_age: timedelta = MAX_MESSAGE_AGE
