"""Enums shared by the checker, scheduler and CLI."""

from enum import Enum


class OutcomeKind(str, Enum):
    """Classification of a single username check."""

    AVAILABLE = "available"
    """Upstream code 0: the username can be registered."""

    TAKEN = "taken"
    """Upstream code 1: the username is already in use."""

    FILTERED = "filtered"
    """Upstream code 2 (or pre-filter match): not appropriate for Roblox."""

    RATE_LIMITED = "rate_limited"
    """Throttled by the upstream; the check should be retried."""

    TRANSIENT_ERROR = "transient_error"
    """Timeout, network failure or unexpected response. Not retried."""


class SchedulingStrategy(str, Enum):
    """Policy used to pace a bulk check batch."""

    ADAPTIVE = "adaptive"
    """Concurrency window that shrinks on rate limits and grows on success streaks."""

    FIXED_BATCH = "fixed_batch"
    """Sequential checks in fixed-size batches with a doubling pause on rate limits."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
