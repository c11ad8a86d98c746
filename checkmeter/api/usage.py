from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional, Protocol, TypeVar

from ..ai.types import DETAILED_TIER, STANDARD_TIER, TIERS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class UsageCounter:
    count: int = 0
    last_reset: datetime = field(default_factory=local_now)

    def reset_if_new_day(self, now: datetime) -> None:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self.last_reset < midnight:
            self.count = 0
            self.last_reset = now

    def effective_count(self, now: datetime) -> int:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return 0 if self.last_reset < midnight else self.count


@dataclass
class UsageRecord:
    client_id: str
    standard: UsageCounter
    detailed: UsageCounter

    @classmethod
    def fresh(cls, client_id: str, now: datetime) -> "UsageRecord":
        return cls(
            client_id=client_id,
            standard=UsageCounter(last_reset=now),
            detailed=UsageCounter(last_reset=now),
        )

    def counter(self, tier: str) -> UsageCounter:
        return self.detailed if tier == DETAILED_TIER else self.standard


class UsageStore(Protocol):
    def peek(self, client_id: str) -> Optional[UsageRecord]: ...

    def atomic(
        self,
        client_id: str,
        now: datetime,
        operation: Callable[[UsageRecord], T],
    ) -> T: ...


class InMemoryUsageStore:
    """Process-local usage records guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Records are never evicted; they live as long as the process.
        self._records: Dict[str, UsageRecord] = {}

    def peek(self, client_id: str) -> Optional[UsageRecord]:
        with self._lock:
            record = self._records.get(client_id)
            return copy.deepcopy(record) if record is not None else None

    def atomic(
        self,
        client_id: str,
        now: datetime,
        operation: Callable[[UsageRecord], T],
    ) -> T:
        with self._lock:
            record = self._records.get(client_id)
            if record is None:
                record = UsageRecord.fresh(client_id, now)
                self._records[client_id] = record
            return operation(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


@dataclass(frozen=True)
class CounterView:
    used: int
    limit: int
    remaining: int


@dataclass(frozen=True)
class UsageSnapshot:
    standard: CounterView
    detailed: CounterView


@dataclass(frozen=True)
class UsageDecision:
    accepted: bool
    snapshot: UsageSnapshot
    error: str | None = None


@dataclass
class UsageTracker:
    """Per-client daily counters for standard and detailed checks.

    Counters reset the first time a client is seen after local midnight.
    Identity is best-effort, so clients behind one proxy share a bucket.
    """

    standard_limit: int = 3
    detailed_limit: int = 1
    store: UsageStore = field(default_factory=InMemoryUsageStore)
    clock: Callable[[], datetime] = local_now

    def limit_for(self, tier: str) -> int:
        return self.detailed_limit if tier == DETAILED_TIER else self.standard_limit

    def snapshot(self, client_id: str) -> UsageSnapshot:
        now = self.clock()
        record = self.store.peek(client_id)
        if record is None:
            return self._view(0, 0)
        return self._view(
            record.standard.effective_count(now),
            record.detailed.effective_count(now),
        )

    def consume(self, client_id: str, tier: str) -> UsageDecision:
        if tier not in TIERS:
            raise ValueError(f"Unknown check type {tier!r}")
        now = self.clock()

        def _operation(record: UsageRecord) -> UsageDecision:
            record.standard.reset_if_new_day(now)
            record.detailed.reset_if_new_day(now)
            counter = record.counter(tier)
            if counter.count >= self.limit_for(tier):
                return UsageDecision(
                    accepted=False,
                    snapshot=self._view(record.standard.count, record.detailed.count),
                    error=(
                        f"Daily limit for {tier} checks reached; "
                        "resets at local midnight"
                    ),
                )
            counter.count += 1
            return UsageDecision(
                accepted=True,
                snapshot=self._view(record.standard.count, record.detailed.count),
            )

        decision = self.store.atomic(client_id, now, _operation)
        if decision.accepted:
            logger.info(
                "Usage recorded client=%s tier=%s standard_used=%d detailed_used=%d",
                client_id,
                tier,
                decision.snapshot.standard.used,
                decision.snapshot.detailed.used,
            )
        else:
            logger.info("Usage limit reached client=%s tier=%s", client_id, tier)
        return decision

    def release(self, client_id: str, tier: str) -> UsageSnapshot:
        """Give back one check consumed by an analysis that then failed."""

        if tier not in TIERS:
            raise ValueError(f"Unknown check type {tier!r}")
        now = self.clock()

        def _operation(record: UsageRecord) -> UsageSnapshot:
            record.standard.reset_if_new_day(now)
            record.detailed.reset_if_new_day(now)
            counter = record.counter(tier)
            counter.count = max(0, counter.count - 1)
            return self._view(record.standard.count, record.detailed.count)

        snapshot = self.store.atomic(client_id, now, _operation)
        logger.info("Usage released client=%s tier=%s", client_id, tier)
        return snapshot

    def _view(self, standard_used: int, detailed_used: int) -> UsageSnapshot:
        return UsageSnapshot(
            standard=_counter_view(standard_used, self.standard_limit),
            detailed=_counter_view(detailed_used, self.detailed_limit),
        )


def _counter_view(used: int, limit: int) -> CounterView:
    return CounterView(used=used, limit=limit, remaining=max(0, limit - used))


__all__ = [
    "CounterView",
    "InMemoryUsageStore",
    "UsageCounter",
    "UsageDecision",
    "UsageRecord",
    "UsageSnapshot",
    "UsageStore",
    "UsageTracker",
    "local_now",
]
