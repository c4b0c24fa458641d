"""Bulk check pacing and scheduling.

This module provides the adaptive scheduler that drains a batch of
usernames through the validator without tripping upstream rate limits.

Components:
- PacingPolicy: Adaptive window or fixed batch pacing decisions
- SchedulerState: Explicit per-batch state record
- BulkScheduler: Bounded-concurrency control loop with retry and abort
- ProgressTracker: Observable progress and throughput reporting
"""

from .policy import AdaptiveWindowPolicy, FixedBatchPolicy, PacingPolicy, build_policy
from .progress import ProgressCallback, ProgressState, ProgressTracker, ProgressUpdate
from .scheduler import BulkScheduler, CooldownCallback, OutcomeCallback
from .state import QueueItem, SchedulerPhase, SchedulerState, unique_usernames

__all__ = [
    # Policies
    "AdaptiveWindowPolicy",
    "FixedBatchPolicy",
    "PacingPolicy",
    "build_policy",
    # Progress tracking
    "ProgressCallback",
    "ProgressState",
    "ProgressTracker",
    "ProgressUpdate",
    # Scheduling
    "BulkScheduler",
    "CooldownCallback",
    "OutcomeCallback",
    # State
    "QueueItem",
    "SchedulerPhase",
    "SchedulerState",
    "unique_usernames",
]
