from __future__ import annotations

import asyncio
import math

import pytest

from core.config import TargetScope
from core.sweeper import BackfillSweeper

from fakes import NOW, SCOPE, FakeStore, make_message


def _sweeper(store: FakeStore) -> BackfillSweeper:
    return BackfillSweeper(store, SCOPE, now=lambda: NOW)


def test_deletes_only_unpinned_messages_past_threshold() -> None:
    store = FakeStore(
        [
            make_message(1, age_minutes=45),
            make_message(2, age_minutes=10),
            make_message(3, age_minutes=20),
            make_message(4, age_minutes=31, pinned=True),
        ]
    )

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.delete_calls == [1]
    assert sorted(store.messages) == [2, 3, 4]
    assert report.candidates == 1
    assert report.deleted == 1
    assert not report.aborted


def test_empty_channel_is_a_no_op() -> None:
    store = FakeStore([])

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.fetch_calls == [None]
    assert store.delete_calls == []
    assert report.pages_fetched == 0


@pytest.mark.parametrize("total, page_size", [(120, 50), (100, 50), (1, 50), (7, 3)])
def test_pagination_walks_whole_history(total: int, page_size: int) -> None:
    store = FakeStore(
        [make_message(message_id, age_minutes=60) for message_id in range(1, total + 1)],
        page_size=page_size,
    )

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    non_empty_fetches = math.ceil(total / page_size)
    # One cursorless fetch, cursored fetches after it, then one empty page.
    assert store.fetch_calls[0] is None
    assert all(cursor is not None for cursor in store.fetch_calls[1:])
    assert len(store.fetch_calls) == non_empty_fetches + 1
    assert report.pages_fetched == non_empty_fetches
    assert sorted(store.delete_calls) == list(range(1, total + 1))


def test_cursor_is_oldest_id_of_previous_page() -> None:
    store = FakeStore(
        [make_message(message_id, age_minutes=60) for message_id in range(1, 6)],
        page_size=2,
    )

    asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.fetch_calls == [None, 4, 2, 1]


def test_newest_message_is_not_skipped() -> None:
    store = FakeStore([make_message(1, age_minutes=90), make_message(2, age_minutes=40)])

    asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert sorted(store.delete_calls) == [1, 2]


def test_fetch_error_aborts_sweep_but_keeps_collected_candidates() -> None:
    store = FakeStore(
        [make_message(message_id, age_minutes=60) for message_id in range(1, 11)],
        page_size=4,
    )
    store.fail_fetch_at = 2

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert report.aborted
    assert store.fetch_calls == [None, 7]
    assert sorted(store.delete_calls) == [7, 8, 9, 10]


def test_delete_failure_does_not_abort_the_batch() -> None:
    store = FakeStore([make_message(message_id, age_minutes=60) for message_id in range(1, 5)])
    store.fail_delete.add(3)

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert sorted(store.delete_calls) == [1, 2, 3, 4]
    assert report.deleted == 3
    assert report.failed == 1


def test_already_deleted_candidates_are_benign() -> None:
    class YieldingStore(FakeStore):
        async def fetch_page(self, scope, before_id=None):
            await asyncio.sleep(0)
            return await super().fetch_page(scope, before_id)

    store = YieldingStore([make_message(1, age_minutes=60)])
    sweeper = _sweeper(store)

    async def scenario():
        # Two attach events race on the same history.
        return await asyncio.gather(sweeper.on_attach(SCOPE), sweeper.on_attach(SCOPE))

    first, second = asyncio.run(scenario())

    assert store.delete_calls == [1, 1]
    assert first.failed == 0
    assert second.failed == 0


def test_cutoff_is_captured_once_per_sweep() -> None:
    store = FakeStore([make_message(message_id, age_minutes=29) for message_id in range(1, 4)], page_size=1)
    calls = []

    def ticking_now():
        # A clock re-read per page would see these messages cross the threshold.
        calls.append(1)
        return NOW if len(calls) == 1 else NOW.replace(hour=NOW.hour + 1)

    report = asyncio.run(BackfillSweeper(store, SCOPE, now=ticking_now).on_attach(SCOPE))

    assert len(calls) == 1
    assert report.candidates == 0


def test_future_dated_messages_are_kept() -> None:
    store = FakeStore([make_message(1, age_minutes=-120), make_message(2, age_minutes=31)])

    asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.delete_calls == [2]


def test_attach_for_another_scope_is_ignored() -> None:
    store = FakeStore([make_message(1, age_minutes=60)])

    report = asyncio.run(_sweeper(store).on_attach(TargetScope(community_id=1, channel_id=1)))

    assert store.fetch_calls == []
    assert report.candidates == 0


def test_messages_outside_scope_in_a_page_are_kept() -> None:
    other_topic = make_message(2, age_minutes=60, scope=TargetScope(community_id=1234, channel_id=8))
    store = FakeStore([make_message(1, age_minutes=60), other_topic])

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.delete_calls == [1]
    assert report.messages_seen == 2


def test_stops_when_cursor_does_not_advance() -> None:
    class StuckStore(FakeStore):
        async def fetch_page(self, scope, before_id=None):
            self.fetch_calls.append(before_id)
            return [make_message(5, age_minutes=60)]

    store = StuckStore()

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert store.fetch_calls == [None, 5]
    assert report.candidates == 1
    assert store.delete_calls == [5]


def test_unexpected_fetch_error_keeps_collected_candidates() -> None:
    class TimingOutStore(FakeStore):
        async def fetch_page(self, scope, before_id=None):
            if before_id is not None:
                self.fetch_calls.append(before_id)
                raise TimeoutError("request timed out")
            return await super().fetch_page(scope, before_id)

    store = TimingOutStore([make_message(10, age_minutes=60 * 24 * 365)])

    report = asyncio.run(_sweeper(store).on_attach(SCOPE))

    assert report.aborted
    assert store.fetch_calls == [None, 10]
    assert store.delete_calls == [10]
