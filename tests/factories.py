"""Factory functions for creating test data.

This module provides factory functions for:
- Pacing configurations tuned for fast, deterministic tests
- Check outcomes
- A scripted stand-in for the validator client

Design principles:
- Factories provide sensible defaults that can be overridden
- The stub checker never touches the network and records every call
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from typing import Any

from roblox_username_checker.config import PacingConfig
from roblox_username_checker.schemas import CheckOutcome, OutcomeKind

# Timing values that make a batch run as fast as the event loop allows
FAST_PACING: dict[str, Any] = {
    "dispatch_interval_ms": 0,
    "rate_limit_delay_step_ms": 0,
    "loop_tick_ms": 1,
    "rate_limit_pause_ms": 0,
    "decay_step_ms": 0,
    "decay_max_ms": 0,
    "item_interval_ms": 0,
    "batch_delay_ms": 0,
    "max_batch_delay_ms": 0,
}


# -----------------------------------------------------------------------------
# Config Factories
# -----------------------------------------------------------------------------
def make_pacing_config(**overrides: Any) -> PacingConfig:
    """Create a PacingConfig with zero delays.

    Args:
        **overrides: Field overrides (concurrency bounds, thresholds, ...)

    Returns:
        PacingConfig instance
    """
    return PacingConfig(**{**FAST_PACING, **overrides})


# -----------------------------------------------------------------------------
# Outcome Factories
# -----------------------------------------------------------------------------
def make_outcome(username: str, kind: OutcomeKind, message: str | None = None) -> CheckOutcome:
    """Create a CheckOutcome of the given kind with the factory defaults."""
    if kind == OutcomeKind.AVAILABLE:
        return CheckOutcome.available(username, message)
    if kind == OutcomeKind.TAKEN:
        return CheckOutcome.taken(username, message)
    if kind == OutcomeKind.FILTERED:
        return CheckOutcome.filtered(username, message)
    if kind == OutcomeKind.RATE_LIMITED:
        return CheckOutcome.rate_limited(username, message or "Rate limited by server", code=429)
    return CheckOutcome.transient_error(username, message or "timeout")


ScriptEntry = OutcomeKind | CheckOutcome | Exception


class StubChecker:
    """Scripted UsernameChecker.

    Each username consumes its script entries in order, one per call;
    once the script is exhausted ``default`` is returned. An Exception
    entry is raised from ``check()``.

    Usage:
        checker = StubChecker({"baz": [OutcomeKind.RATE_LIMITED]})
        await checker.check("baz")  # rate limited
        await checker.check("baz")  # available
    """

    def __init__(
        self,
        script: Mapping[str, Iterable[ScriptEntry]] | None = None,
        *,
        delay: float = 0.0,
        default: OutcomeKind = OutcomeKind.AVAILABLE,
    ) -> None:
        self._script = {name: list(entries) for name, entries in (script or {}).items()}
        self.delay = delay
        self.default = default
        self.calls: list[str] = []
        self.call_times: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def dispatch_count(self, username: str) -> int:
        """Number of times ``username`` was checked."""
        return self.calls.count(username)

    async def check(self, username: str) -> CheckOutcome:
        self.calls.append(username)
        self.call_times.append((username, time.monotonic()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            entries = self._script.get(username)
            entry: ScriptEntry = entries.pop(0) if entries else self.default
            if isinstance(entry, Exception):
                raise entry
            if isinstance(entry, CheckOutcome):
                return entry
            return make_outcome(username, entry)
        finally:
            self.in_flight -= 1
