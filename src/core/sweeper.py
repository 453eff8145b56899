"""Backfill sweeper.

Runs once per attach event: walks the channel history newest-first, collects
every unpinned message already past the retention threshold and deletes them.
History is only read here; nothing is kept between sweeps.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from core.config import RetentionConfig, TargetScope
from core.errors import DeleteError, FetchError, MessageNotFound
from core.models import ObservedMessage, SweepReport
from core.ports import MessageStorePort
from core.scope import in_scope, is_deletion_candidate

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BackfillSweeper:
    """Deletes overdue history of the managed channel on attach."""

    def __init__(
        self,
        store: MessageStorePort,
        scope: TargetScope,
        retention: Optional[RetentionConfig] = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._scope = scope
        self._retention = retention or RetentionConfig()
        self._now = now

    async def on_attach(self, scope: TargetScope) -> SweepReport:
        """Sweep the channel once; attach events for other scopes are ignored."""

        report = SweepReport()
        if scope != self._scope:
            LOGGER.debug("Ignoring attach for %s", scope)
            return report

        # One cutoff for the whole sweep, however long pagination takes.
        now = self._now()
        LOGGER.info(
            "Backfill sweep started for community %s channel %s",
            scope.community_id,
            scope.channel_id,
        )

        candidates = await self._collect_candidates(now, report)
        await self._delete_candidates(candidates, report)

        LOGGER.info(
            "Backfill sweep complete: pages=%s, messages=%s, candidates=%s, deleted=%s, failed=%s, aborted=%s",
            report.pages_fetched,
            report.messages_seen,
            report.candidates,
            report.deleted,
            report.failed,
            report.aborted,
        )
        return report

    async def _collect_candidates(self, now: datetime, report: SweepReport) -> list[ObservedMessage]:
        candidates: list[ObservedMessage] = []
        # The "before" cursor is exclusive, so the first fetch carries no cursor
        # or the newest message would be skipped.
        before_id: Optional[int] = None

        while True:
            try:
                page = await self._store.fetch_page(self._scope, before_id)
            except FetchError as exc:
                LOGGER.error("Error retrieving messages before %s: %s", before_id, exc)
                report.aborted = True
                break
            except Exception:
                LOGGER.exception("Unexpected error retrieving messages before %s", before_id)
                report.aborted = True
                break

            if not page:
                break

            oldest_id = min(message.id for message in page)
            if before_id is not None and oldest_id >= before_id:
                LOGGER.warning("History cursor did not advance past %s; stopping", before_id)
                break
            report.pages_fetched += 1
            report.messages_seen += len(page)

            candidates.extend(
                message
                for message in page
                if in_scope(message, self._scope)
                and is_deletion_candidate(message, now, self._retention.max_age)
            )
            before_id = oldest_id

        report.candidates = len(candidates)
        return candidates

    async def _delete_candidates(self, candidates: list[ObservedMessage], report: SweepReport) -> None:
        for message in candidates:
            try:
                await self._store.delete(self._scope, message.id)
            except MessageNotFound:
                # Another sweep or the live scheduler got there first.
                LOGGER.info("Message %s was already deleted", message.id)
                report.deleted += 1
            except DeleteError as exc:
                LOGGER.warning("Error deleting message %s: %s", message.id, exc.reason)
                report.failed += 1
            except Exception:
                LOGGER.exception("Unexpected error deleting message %s", message.id)
                report.failed += 1
            else:
                LOGGER.info("Successfully deleted message %s", message.id)
                report.deleted += 1
