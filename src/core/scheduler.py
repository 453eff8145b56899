"""Live expiry scheduler.

Every in-scope message observed on the live stream gets exactly one pending
deletion, due ``max_age`` after the moment it was observed. Pending deletions
live in a single deadline-ordered heap drained by one loop, so only deletions
actually in flight hold an asyncio task, however busy the channel is.
"""

from __future__ import annotations

import asyncio
import heapq
import logging
import time
from typing import Callable, Optional

from core.config import RetentionConfig, TargetScope
from core.errors import DeleteError, MessageNotFound
from core.models import ObservedMessage, PendingDeletion
from core.ports import MessageStorePort
from core.scope import in_scope

LOGGER = logging.getLogger(__name__)


class ExpiryScheduler:
    """Deletes live messages once they reach the retention threshold."""

    def __init__(
        self,
        store: MessageStorePort,
        scope: TargetScope,
        retention: Optional[RetentionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._scope = scope
        self._retention = retention or RetentionConfig()
        self._clock = clock
        self._heap: list[PendingDeletion] = []
        self._pending_ids: set[int] = set()
        self._inflight: set[asyncio.Task] = set()
        self._wakeup = asyncio.Event()

    @property
    def pending_count(self) -> int:
        return len(self._heap)

    @property
    def next_deadline(self) -> Optional[float]:
        return self._heap[0].deadline if self._heap else None

    def on_message_observed(self, message: ObservedMessage) -> bool:
        """Schedule deletion of an in-scope message; return True if scheduled."""

        if not in_scope(message, self._scope):
            return False
        if message.id in self._pending_ids:
            return False

        # Anchored to observation time, not message.created_at.
        deadline = self._clock() + self._retention.max_age.total_seconds()
        heapq.heappush(self._heap, PendingDeletion(deadline=deadline, message_id=message.id))
        self._pending_ids.add(message.id)
        self._wakeup.set()
        LOGGER.info(
            "Scheduling message %s for deletion in %s",
            message.id,
            self._retention.max_age,
        )
        return True

    def _pop_due(self, now: float) -> list[PendingDeletion]:
        due: list[PendingDeletion] = []
        while self._heap and self._heap[0].deadline <= now:
            due.append(heapq.heappop(self._heap))
        return due

    def _launch_due(self, now: float) -> list[asyncio.Task]:
        tasks = [asyncio.create_task(self._delete(entry)) for entry in self._pop_due(now)]
        for task in tasks:
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        return tasks

    async def run_due(self, now: Optional[float] = None) -> int:
        """Issue deletes for every entry whose deadline has passed and wait for them."""

        if now is None:
            now = self._clock()
        tasks = self._launch_due(now)
        if tasks:
            await asyncio.gather(*tasks)
        return len(tasks)

    async def _delete(self, entry: PendingDeletion) -> None:
        try:
            await self._store.delete(self._scope, entry.message_id)
        except MessageNotFound:
            LOGGER.info("Message %s was already deleted", entry.message_id)
        except DeleteError as exc:
            LOGGER.warning("Error deleting message %s: %s", entry.message_id, exc.reason)
        except Exception:
            # Transport failures outside the store contract must not stop the loop.
            LOGGER.exception("Unexpected error deleting message %s", entry.message_id)
        else:
            LOGGER.info("Successfully deleted message %s", entry.message_id)
        finally:
            self._pending_ids.discard(entry.message_id)

    def _seconds_until_next(self) -> Optional[float]:
        if not self._heap:
            return None
        return max(0.0, self._heap[0].deadline - self._clock())

    async def run(self) -> None:
        """Drain the heap forever, sleeping until the nearest deadline."""

        try:
            while True:
                # Deletes run as their own tasks so a slow one never delays later deadlines.
                self._launch_due(self._clock())
                self._wakeup.clear()
                timeout = self._seconds_until_next()
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass
        finally:
            # Shutdown drops deletions still in flight.
            for task in list(self._inflight):
                task.cancel()
            await asyncio.gather(*self._inflight, return_exceptions=True)
