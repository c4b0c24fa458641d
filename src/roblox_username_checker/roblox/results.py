"""Result objects for bulk check batches.

Structured results provide consistent interfaces for CLI output,
JSON serialization and exporting available usernames.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from roblox_username_checker.logging import get_logger
from roblox_username_checker.schemas import CheckOutcome, OutcomeKind, SchedulingStrategy

if TYPE_CHECKING:
    from .pacing.state import SchedulerState

logger = get_logger(__name__)


@dataclass
class BatchResult:
    """Terminal outcomes of one bulk check batch.

    ``usernames`` holds the de-duplicated input in order; ``outcomes``
    holds at most one terminal outcome per username.
    """

    usernames: list[str] = field(default_factory=list)
    """De-duplicated input, in first-seen order."""

    outcomes: dict[str, CheckOutcome] = field(default_factory=dict)
    """Terminal outcome per username."""

    strategy: SchedulingStrategy = SchedulingStrategy.ADAPTIVE
    """Policy the batch ran with."""

    state: SchedulerState | None = None
    """Final scheduler state (set when the batch ends)."""

    aborted: bool = False
    """True if the batch was cancelled before every username was checked."""

    duration_seconds: float = 0.0
    """Wall time from first dispatch to the end of the batch."""

    def record(self, outcome: CheckOutcome) -> bool:
        """Store a terminal outcome.

        Returns:
            False if the username already had an outcome (the new one is ignored)
        """
        if not outcome.is_terminal:
            raise ValueError(f"Outcome for {outcome.username!r} is not terminal")
        if outcome.username in self.outcomes:
            logger.warning("Duplicate outcome for {} ignored", outcome.username)
            return False
        self.outcomes[outcome.username] = outcome
        return True

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------
    @property
    def total_count(self) -> int:
        """Number of unique usernames submitted."""
        return len(self.usernames)

    @property
    def checked_count(self) -> int:
        """Number of usernames with a terminal outcome."""
        return len(self.outcomes)

    @property
    def unchecked(self) -> list[str]:
        """Usernames that never reached a terminal outcome (aborted batches)."""
        return [name for name in self.usernames if name not in self.outcomes]

    @property
    def counts(self) -> dict[OutcomeKind, int]:
        """Number of outcomes per kind (every kind present, zero if unused)."""
        tally = Counter(outcome.kind for outcome in self.outcomes.values())
        return {kind: tally.get(kind, 0) for kind in OutcomeKind}

    def by_kind(self, kind: OutcomeKind) -> list[CheckOutcome]:
        """Outcomes of one kind, in input order."""
        return [
            self.outcomes[name]
            for name in self.usernames
            if name in self.outcomes and self.outcomes[name].kind == kind
        ]

    def available_usernames(self) -> list[str]:
        """Usernames reported available, in input order."""
        return [outcome.username for outcome in self.by_kind(OutcomeKind.AVAILABLE)]

    @property
    def error_count(self) -> int:
        return self.counts[OutcomeKind.TRANSIENT_ERROR]

    @property
    def success_rate(self) -> float:
        """Share of checked usernames that did not error (0-100)."""
        if self.checked_count == 0:
            return 100.0
        return (self.checked_count - self.error_count) / self.checked_count * 100

    @property
    def average_response_ms(self) -> float | None:
        """Mean round-trip time over outcomes that carry one."""
        timings = [o.elapsed_ms for o in self.outcomes.values() if o.elapsed_ms is not None]
        if not timings:
            return None
        return sum(timings) / len(timings)

    @property
    def throughput(self) -> float:
        """Checked usernames per second over the batch duration."""
        if self.duration_seconds <= 0:
            return 0.0
        return self.checked_count / self.duration_seconds

    @property
    def rate_limit_events(self) -> int:
        """Rate limited responses seen during the batch (including retried ones)."""
        return self.state.rate_limit_events if self.state else 0

    @property
    def dispatch_count(self) -> int:
        """Checks dispatched, retries included."""
        return self.state.dispatch_count if self.state else 0

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------
    def write_available(self, path: Path) -> int:
        """Write available usernames to ``path``, one per line.

        Returns:
            Number of usernames written
        """
        names = self.available_usernames()
        path.write_text("\n".join(names) + ("\n" if names else ""), encoding="utf-8")
        logger.info("Exported {} available usernames to {}", len(names), path)
        return len(names)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        counts = self.counts
        result: dict[str, object] = {
            "strategy": self.strategy.value,
            "aborted": self.aborted,
            "total": self.total_count,
            "checked": self.checked_count,
            "available": counts[OutcomeKind.AVAILABLE],
            "taken": counts[OutcomeKind.TAKEN],
            "filtered": counts[OutcomeKind.FILTERED],
            "errors": counts[OutcomeKind.TRANSIENT_ERROR],
            "rate_limit_events": self.rate_limit_events,
            "dispatches": self.dispatch_count,
            "duration_seconds": round(self.duration_seconds, 3),
            "throughput": round(self.throughput, 2),
            "success_rate": round(self.success_rate, 1),
            "available_usernames": self.available_usernames(),
            "results": [
                self.outcomes[name].to_dict() for name in self.usernames if name in self.outcomes
            ],
        }
        average = self.average_response_ms
        if average is not None:
            result["average_response_ms"] = round(average, 1)
        if self.unchecked:
            result["unchecked"] = self.unchecked
        return result
