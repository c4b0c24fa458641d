"""Progress tracking for bulk check batches.

This module provides observable progress and throughput reporting for
the bulk scheduler. Callers register callbacks and receive a
``ProgressUpdate`` snapshot on every change.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

logger = logging.getLogger(__name__)


class ProgressState(StrEnum):
    """State of a tracked batch."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ProgressUpdate:
    """A progress snapshot."""

    total: int
    completed: int
    failed: int
    state: ProgressState
    current_item: str | None = None
    error: str | None = None
    started_at: datetime | None = None
    elapsed_seconds: float = 0.0

    # Pacing telemetry
    concurrency: int = 0
    in_flight: int = 0
    rate_limit_hits: int = 0
    cooldown_remaining: float = 0.0

    @property
    def processed(self) -> int:
        """Items with a terminal outcome."""
        return self.completed + self.failed

    @property
    def remaining(self) -> int:
        """Number of items remaining."""
        return max(0, self.total - self.processed)

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100

    @property
    def success_rate(self) -> float:
        """Success rate percentage (0-100)."""
        if self.processed == 0:
            return 100.0
        return (self.completed / self.processed) * 100

    @property
    def throughput(self) -> float:
        """Processed items per second."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.processed / self.elapsed_seconds

    @property
    def is_cooling_down(self) -> bool:
        """Whether dispatching is paused after a rate limit."""
        return self.cooldown_remaining > 0


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Observable progress tracker for bulk checks.

    Usage:
        tracker = ProgressTracker(total=100)
        tracker.on_progress(lambda u: print(f"{u.progress_percent:.0f}% {u.throughput:.1f}/s"))

        tracker.start()
        tracker.set_current("builderman")
        tracker.increment()
        tracker.complete()
    """

    def __init__(self, total: int = 0, name: str = "bulk check") -> None:
        """Initialize the progress tracker.

        Args:
            total: Total number of usernames to check
            name: Name of the operation for logging
        """
        self._total = total
        self._name = name
        self._completed = 0
        self._failed = 0
        self._state = ProgressState.PENDING
        self._current_item: str | None = None
        self._error: str | None = None
        self._started_at: datetime | None = None
        self._start_time: float | None = None
        self._end_time: float | None = None
        self._concurrency = 0
        self._in_flight = 0
        self._rate_limit_hits = 0
        self._cooldown_remaining = 0.0
        self._callbacks: list[ProgressCallback] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def total(self) -> int:
        """Total number of items to process."""
        return self._total

    @total.setter
    def total(self, value: int) -> None:
        self._total = value
        self._notify()

    @property
    def completed(self) -> int:
        """Number of successfully checked usernames."""
        return self._completed

    @property
    def failed(self) -> int:
        """Number of usernames that ended in an error."""
        return self._failed

    @property
    def state(self) -> ProgressState:
        """Current state of the batch."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the batch is currently in progress."""
        return self._state == ProgressState.IN_PROGRESS

    @property
    def is_done(self) -> bool:
        """Whether the batch has finished (completed, failed, or cancelled)."""
        return self._state in (
            ProgressState.COMPLETED,
            ProgressState.FAILED,
            ProgressState.CANCELLED,
        )

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since start in seconds (frozen once done)."""
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else time.monotonic()
        return end - self._start_time

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a progress callback.

        Callback receives ProgressUpdate on every change.

        Args:
            callback: Function to call on progress updates
        """
        self._callbacks.append(callback)

    def _notify(self) -> None:
        update = self.get_update()
        for callback in self._callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Mark batch as started."""
        self._state = ProgressState.IN_PROGRESS
        self._started_at = datetime.now(UTC)
        self._start_time = time.monotonic()
        self._end_time = None
        logger.info("Started %s (total=%d)", self._name, self._total)
        self._notify()

    def complete(self) -> None:
        """Mark batch as completed."""
        self._finish(ProgressState.COMPLETED)
        logger.info(
            "Completed %s: %d checked, %d errors in %.1fs (%.2f/s)",
            self._name,
            self._completed,
            self._failed,
            self.elapsed_seconds,
            self.get_update().throughput,
        )
        self._notify()

    def fail(self, error: str) -> None:
        """Mark batch as failed.

        Args:
            error: Error message describing the failure
        """
        self._error = error
        self._finish(ProgressState.FAILED)
        logger.error("Failed %s: %s", self._name, error)
        self._notify()

    def cancel(self) -> None:
        """Mark batch as cancelled."""
        self._finish(ProgressState.CANCELLED)
        logger.info(
            "Cancelled %s at %d/%d", self._name, self._completed + self._failed, self._total
        )
        self._notify()

    def _finish(self, state: ProgressState) -> None:
        self._state = state
        self._current_item = None
        self._in_flight = 0
        self._cooldown_remaining = 0.0
        if self._start_time is not None:
            self._end_time = time.monotonic()

    # -------------------------------------------------------------------------
    # Progress Updates
    # -------------------------------------------------------------------------
    def set_current(self, item: str) -> None:
        """Set the username most recently dispatched.

        Args:
            item: Username
        """
        self._current_item = item
        self._notify()

    def increment(self, count: int = 1) -> None:
        """Increment checked count.

        Args:
            count: Number of usernames checked (default 1)
        """
        self._completed += count
        logger.debug(
            "%s progress: %d/%d (%.1f%%)",
            self._name,
            self._completed + self._failed,
            self._total,
            self.get_update().progress_percent,
        )
        self._notify()

    def increment_failed(self, count: int = 1, error: str | None = None) -> None:
        """Increment error count.

        Args:
            count: Number of usernames that errored (default 1)
            error: Optional error description
        """
        self._failed += count
        if error:
            logger.warning("%s item failed: %s", self._name, error)
        self._notify()

    def update_pacing(
        self,
        *,
        concurrency: int,
        in_flight: int,
        rate_limit_hits: int,
        cooldown_remaining: float = 0.0,
        notify: bool = True,
    ) -> None:
        """Record the scheduler's current pacing values.

        Args:
            concurrency: Current concurrency window
            in_flight: Checks currently in flight
            rate_limit_hits: Outstanding rate limit hits
            cooldown_remaining: Seconds left in a rate limit cooldown
            notify: Emit an update to callbacks
        """
        self._concurrency = concurrency
        self._in_flight = in_flight
        self._rate_limit_hits = rate_limit_hits
        self._cooldown_remaining = cooldown_remaining
        if notify:
            self._notify()

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_update(self) -> ProgressUpdate:
        """Get current progress as an update object."""
        return ProgressUpdate(
            total=self._total,
            completed=self._completed,
            failed=self._failed,
            state=self._state,
            current_item=self._current_item,
            error=self._error,
            started_at=self._started_at,
            elapsed_seconds=self.elapsed_seconds,
            concurrency=self._concurrency,
            in_flight=self._in_flight,
            rate_limit_hits=self._rate_limit_hits,
            cooldown_remaining=self._cooldown_remaining,
        )

    def reset(self) -> None:
        """Reset tracker for reuse."""
        self._completed = 0
        self._failed = 0
        self._state = ProgressState.PENDING
        self._current_item = None
        self._error = None
        self._started_at = None
        self._start_time = None
        self._end_time = None
        self._concurrency = 0
        self._in_flight = 0
        self._rate_limit_hits = 0
        self._cooldown_remaining = 0.0
        self._notify()
