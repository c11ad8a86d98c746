from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from checkmeter.api.usage import InMemoryUsageStore, UsageTracker


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> _Clock:
    return _Clock(datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def tracker(clock: _Clock) -> UsageTracker:
    return UsageTracker(standard_limit=3, detailed_limit=1, clock=clock)


def test_new_client_has_full_allowance(tracker: UsageTracker) -> None:
    snapshot = tracker.snapshot("203.0.113.7")
    assert snapshot.standard.used == 0
    assert snapshot.standard.remaining == 3
    assert snapshot.detailed.remaining == 1


def test_fourth_standard_check_is_rejected(tracker: UsageTracker) -> None:
    for expected_remaining in (2, 1, 0):
        decision = tracker.consume("client-a", "standard")
        assert decision.accepted
        assert decision.snapshot.standard.remaining == expected_remaining

    rejected = tracker.consume("client-a", "standard")
    assert not rejected.accepted
    assert rejected.snapshot.standard.used == 3
    assert rejected.snapshot.standard.remaining == 0
    assert "midnight" in rejected.error


def test_tiers_are_counted_separately(tracker: UsageTracker) -> None:
    assert tracker.consume("client-a", "detailed").accepted
    assert not tracker.consume("client-a", "detailed").accepted
    decision = tracker.consume("client-a", "standard")
    assert decision.accepted
    assert decision.snapshot.detailed.used == 1
    assert decision.snapshot.standard.used == 1


def test_clients_do_not_share_counters(tracker: UsageTracker) -> None:
    tracker.consume("client-a", "detailed")
    assert tracker.consume("client-b", "detailed").accepted


def test_counters_reset_after_local_midnight(tracker: UsageTracker, clock: _Clock) -> None:
    for _ in range(3):
        tracker.consume("client-a", "standard")
    assert not tracker.consume("client-a", "standard").accepted

    clock.advance(hours=14)
    assert tracker.snapshot("client-a").standard.used == 0
    decision = tracker.consume("client-a", "standard")
    assert decision.accepted
    assert decision.snapshot.standard.used == 1


def test_same_day_does_not_reset(tracker: UsageTracker, clock: _Clock) -> None:
    tracker.consume("client-a", "detailed")
    clock.advance(hours=13)
    assert not tracker.consume("client-a", "detailed").accepted


def test_snapshot_does_not_create_records(tracker: UsageTracker) -> None:
    tracker.snapshot("client-a")
    assert len(tracker.store) == 0


def test_unknown_tier_is_rejected(tracker: UsageTracker) -> None:
    with pytest.raises(ValueError):
        tracker.consume("client-a", "premium")


def test_concurrent_consumers_never_exceed_limit(clock: _Clock) -> None:
    tracker = UsageTracker(standard_limit=5, store=InMemoryUsageStore(), clock=clock)
    accepted: list[bool] = []
    lock = threading.Lock()

    def _worker() -> None:
        decision = tracker.consume("shared", "standard")
        with lock:
            accepted.append(decision.accepted)

    threads = [threading.Thread(target=_worker) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert accepted.count(True) == 5
    assert tracker.snapshot("shared").standard.used == 5


def test_release_returns_a_consumed_check(tracker: UsageTracker) -> None:
    tracker.consume("client-a", "detailed")
    snapshot = tracker.release("client-a", "detailed")
    assert snapshot.detailed.used == 0
    assert tracker.consume("client-a", "detailed").accepted


def test_release_never_goes_below_zero(tracker: UsageTracker) -> None:
    snapshot = tracker.release("client-a", "standard")
    assert snapshot.standard.used == 0
    assert snapshot.standard.remaining == 3
