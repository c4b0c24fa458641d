"""Roblox username validation module.

This module provides:
- RobloxValidatorClient: Async single-username availability check
- Content pre-filter hook: ContentFilter, WordListFilter
- Bulk checks: BulkScheduler, pacing policies, ProgressTracker
- BatchResult: Aggregated outcomes and export of available usernames
"""

from .client import RobloxValidatorClient, UsernameChecker, classify_response
from .exceptions import BatchInProgressError, CheckerError, ConfigurationError
from .filters import ContentFilter, WordListFilter
from .pacing import (
    AdaptiveWindowPolicy,
    BulkScheduler,
    FixedBatchPolicy,
    PacingPolicy,
    ProgressTracker,
    ProgressUpdate,
    SchedulerPhase,
    SchedulerState,
    build_policy,
)
from .results import BatchResult

__all__ = [
    # Client
    "RobloxValidatorClient",
    "UsernameChecker",
    "classify_response",
    # Exceptions
    "BatchInProgressError",
    "CheckerError",
    "ConfigurationError",
    # Filters
    "ContentFilter",
    "WordListFilter",
    # Bulk checks
    "AdaptiveWindowPolicy",
    "BulkScheduler",
    "FixedBatchPolicy",
    "PacingPolicy",
    "ProgressTracker",
    "ProgressUpdate",
    "SchedulerPhase",
    "SchedulerState",
    "build_policy",
    # Results
    "BatchResult",
]
