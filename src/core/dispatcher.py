"""Single-consumer dispatcher for transport events.

Transport adapters only publish events; this loop turns them into calls on
the scheduler and the sweeper, which keeps the core free of any gateway
callback shapes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.models import ChannelAttached, MessageObserved, TransportEvent
from core.scheduler import ExpiryScheduler
from core.sweeper import BackfillSweeper

LOGGER = logging.getLogger(__name__)

_STOP = object()


class EventDispatcher:
    """Routes transport events to the live scheduler and backfill sweeper."""

    def __init__(
        self,
        scheduler: ExpiryScheduler,
        sweeper: BackfillSweeper,
        queue: Optional[asyncio.Queue] = None,
    ) -> None:
        self._scheduler = scheduler
        self._sweeper = sweeper
        self._queue = queue if queue is not None else asyncio.Queue()
        self._sweeps: set[asyncio.Task] = set()

    def publish(self, event: TransportEvent) -> None:
        """Enqueue an event without blocking the transport callback."""

        self._queue.put_nowait(event)

    def stop(self) -> None:
        self._queue.put_nowait(_STOP)

    async def run(self) -> None:
        """Consume events until ``stop`` is called."""

        try:
            while True:
                event = await self._queue.get()
                if event is _STOP:
                    break
                try:
                    self._dispatch(event)
                except Exception:
                    LOGGER.exception("Error while dispatching %s", type(event).__name__)
        except asyncio.CancelledError:
            # Shutdown drops in-flight sweeps; the next attach starts over.
            for task in list(self._sweeps):
                task.cancel()
            await asyncio.gather(*self._sweeps, return_exceptions=True)
            raise

        if self._sweeps:
            await asyncio.gather(*self._sweeps, return_exceptions=True)

    def _dispatch(self, event: TransportEvent) -> None:
        if isinstance(event, MessageObserved):
            self._scheduler.on_message_observed(event.message)
        elif isinstance(event, ChannelAttached):
            # Sweeps page through history, so they must not hold up live events.
            task = asyncio.create_task(self._sweep(event))
            self._sweeps.add(task)
            task.add_done_callback(self._sweeps.discard)
        else:
            LOGGER.warning("Unknown transport event %r", event)

    async def _sweep(self, event: ChannelAttached) -> None:
        try:
            await self._sweeper.on_attach(event.scope)
        except Exception:
            LOGGER.exception("Backfill sweep failed")
