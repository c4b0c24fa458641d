"""Mutable state of one bulk check batch.

A ``SchedulerState`` is created at batch start, mutated only by the
scheduler loop that owns it, and handed back to the caller inside the
batch result once the run ends.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class SchedulerPhase(StrEnum):
    """Lifecycle phase of a batch."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class QueueItem:
    """A username waiting for (another) dispatch."""

    username: str
    attempts: int = 0


def unique_usernames(usernames: Iterable[str]) -> list[str]:
    """Trim, drop empties and de-duplicate case-sensitively, keeping first-seen order."""
    cleaned = (name.strip() for name in usernames)
    return list(dict.fromkeys(name for name in cleaned if name))


@dataclass
class SchedulerState:
    """Everything the pacing policy reads and writes during a batch."""

    total: int
    concurrency: int
    min_concurrency: int
    max_concurrency: int
    queue: deque[QueueItem] = field(default_factory=deque)
    in_flight: set[str] = field(default_factory=set)

    # Outcome accounting
    completed_count: int = 0
    consecutive_successes: int = 0
    speedup_mark: int = 0
    rate_limit_hits: int = 0
    rate_limit_events: int = 0
    dispatch_count: int = 0

    # Fixed batch bookkeeping
    batch_size: int = 0
    batch_delay: float = 0.0
    batch_dispatched: int = 0

    # Timing (monotonic seconds)
    started_at: float | None = None
    finished_at: float | None = None
    cooldown_until: float = 0.0

    phase: SchedulerPhase = SchedulerPhase.IDLE

    @classmethod
    def for_batch(
        cls,
        usernames: Iterable[str],
        *,
        concurrency: int,
        min_concurrency: int,
        max_concurrency: int,
    ) -> SchedulerState:
        """Build the initial state for a de-duplicated batch."""
        names = unique_usernames(usernames)
        state = cls(
            total=len(names),
            concurrency=concurrency,
            min_concurrency=min_concurrency,
            max_concurrency=max_concurrency,
            queue=deque(QueueItem(name) for name in names),
        )
        state.set_concurrency(concurrency)
        return state

    # -------------------------------------------------------------------------
    # Concurrency
    # -------------------------------------------------------------------------
    def set_concurrency(self, value: int) -> int:
        """Set concurrency clamped to the configured bounds."""
        self.concurrency = max(self.min_concurrency, min(self.max_concurrency, value))
        return self.concurrency

    @property
    def has_capacity(self) -> bool:
        """Whether another check may be put in flight."""
        return len(self.in_flight) < self.concurrency

    # -------------------------------------------------------------------------
    # Queue
    # -------------------------------------------------------------------------
    def pop_next(self) -> QueueItem:
        """Take the front item and mark it in flight."""
        item = self.queue.popleft()
        item.attempts += 1
        self.in_flight.add(item.username)
        self.dispatch_count += 1
        self.batch_dispatched += 1
        return item

    def release(self, username: str) -> None:
        """Remove a username from the in-flight set."""
        self.in_flight.discard(username)

    def requeue_front(self, item: QueueItem) -> None:
        """Put an item back at the head of the queue for the next dispatch."""
        self.queue.appendleft(item)

    @property
    def is_drained(self) -> bool:
        """True when nothing is queued and nothing is in flight."""
        return not self.queue and not self.in_flight

    def refresh_phase(self) -> SchedulerPhase:
        """Derive the phase from queue and in-flight contents."""
        if self.phase in (SchedulerPhase.ABORTED, SchedulerPhase.IDLE):
            return self.phase
        if self.queue:
            self.phase = SchedulerPhase.RUNNING
        elif self.in_flight:
            self.phase = SchedulerPhase.DRAINING
        else:
            self.phase = SchedulerPhase.DONE
        return self.phase

    # -------------------------------------------------------------------------
    # Cooldown
    # -------------------------------------------------------------------------
    def start_cooldown(self, now: float, seconds: float) -> None:
        """Block dispatching until ``now + seconds`` (never shortens a cooldown)."""
        self.cooldown_until = max(self.cooldown_until, now + seconds)

    def cooldown_remaining(self, now: float) -> float:
        """Seconds until dispatching may resume (0 if not cooling down)."""
        return max(0.0, self.cooldown_until - now)

    # -------------------------------------------------------------------------
    # Throughput
    # -------------------------------------------------------------------------
    def elapsed_seconds(self, now: float) -> float:
        """Seconds since batch start (frozen once the batch finished)."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else now
        return max(0.0, end - self.started_at)

    def throughput(self, now: float) -> float:
        """Completed checks per second."""
        elapsed = self.elapsed_seconds(now)
        if elapsed <= 0:
            return 0.0
        return self.completed_count / elapsed
