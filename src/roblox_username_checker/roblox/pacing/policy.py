"""Pacing policies for bulk username checks.

A policy decides how many checks may run at once, how long to wait
between dispatches and how to react to rate limiting. The scheduler's
control loop is shared; only the policy differs per strategy.

Adaptive window:
    dispatch_delay = dispatch_interval + rate_limit_hits * delay_step
    concurrency    -> min on every rate limit, +1 per success streak
    idle wait      = min(decay_max, rate_limit_hits * decay_step),
                     then one hit is forgiven with probability p

Fixed batch:
    one check at a time, item_interval between checks, batch_delay after
    every batch_size dispatches; a rate limit doubles batch_delay and
    halves batch_size.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import ClassVar

from roblox_username_checker.config import PacingConfig, get_settings
from roblox_username_checker.schemas import SchedulingStrategy

from ..exceptions import ConfigurationError
from .state import SchedulerState

logger = logging.getLogger(__name__)

RandomSource = Callable[[], float]


class PacingPolicy(ABC):
    """Base class for pacing strategies.

    All methods receive the batch's ``SchedulerState`` and are only ever
    called from the scheduler loop, so they may mutate it freely.
    """

    strategy: ClassVar[SchedulingStrategy]

    def __init__(self, config: PacingConfig | None = None) -> None:
        self._config = config or get_settings().pacing

    @property
    def config(self) -> PacingConfig:
        """Get the pacing configuration."""
        return self._config

    @abstractmethod
    def new_state(self, usernames: Iterable[str]) -> SchedulerState:
        """Create the initial state for a batch."""

    def can_dispatch(self, state: SchedulerState) -> bool:
        """Policy-specific dispatch gate, checked after capacity and cooldown."""
        return True

    @abstractmethod
    def dispatch_delay(self, state: SchedulerState) -> float:
        """Seconds to wait after launching a check."""

    @abstractmethod
    def on_success(self, state: SchedulerState) -> None:
        """React to an Available/Taken/Filtered outcome."""

    @abstractmethod
    def on_rate_limited(self, state: SchedulerState) -> float:
        """React to a rate limited outcome.

        Returns:
            Global cooldown in seconds before the next dispatch
        """

    def on_error(self, state: SchedulerState) -> None:
        """React to a transient error (no pacing change by default)."""
        return None

    def idle_delay(self, state: SchedulerState) -> float:
        """Extra seconds to wait at the end of a loop tick."""
        return 0.0

    def after_idle(self, state: SchedulerState) -> None:
        """Called once the idle wait has elapsed."""
        return None


class AdaptiveWindowPolicy(PacingPolicy):
    """Concurrency window tuned by rate limit hits and success streaks."""

    strategy = SchedulingStrategy.ADAPTIVE

    def __init__(
        self,
        config: PacingConfig | None = None,
        *,
        rng: RandomSource | None = None,
    ) -> None:
        """Initialize the adaptive policy.

        Args:
            config: Pacing configuration (uses settings if not provided)
            rng: Source of uniform [0, 1) floats for hit decay
        """
        super().__init__(config)
        cfg = self._config
        if not cfg.min_concurrency <= cfg.initial_concurrency <= cfg.max_concurrency:
            raise ConfigurationError(
                f"Invalid concurrency bounds: {cfg.min_concurrency} <= "
                f"{cfg.initial_concurrency} <= {cfg.max_concurrency} does not hold"
            )
        self._rng = rng or random.random

    def new_state(self, usernames: Iterable[str]) -> SchedulerState:
        return SchedulerState.for_batch(
            usernames,
            concurrency=self._config.initial_concurrency,
            min_concurrency=self._config.min_concurrency,
            max_concurrency=self._config.max_concurrency,
        )

    def dispatch_delay(self, state: SchedulerState) -> float:
        delay_ms = self._config.dispatch_interval_ms
        if state.rate_limit_hits > 0:
            delay_ms += state.rate_limit_hits * self._config.rate_limit_delay_step_ms
        return delay_ms / 1000

    def on_success(self, state: SchedulerState) -> None:
        streak = state.consecutive_successes - state.speedup_mark
        if (
            streak >= self._config.speedup_threshold
            and state.rate_limit_hits == 0
            and state.concurrency < state.max_concurrency
        ):
            state.set_concurrency(state.concurrency + 1)
            state.speedup_mark = state.consecutive_successes
            logger.info(
                "Concurrency raised to %d after %d consecutive successes",
                state.concurrency,
                state.consecutive_successes,
            )

    def on_rate_limited(self, state: SchedulerState) -> float:
        if state.concurrency != state.min_concurrency:
            logger.info(
                "Rate limited: concurrency %d -> %d", state.concurrency, state.min_concurrency
            )
        state.set_concurrency(state.min_concurrency)
        return self._config.rate_limit_pause_ms / 1000

    def idle_delay(self, state: SchedulerState) -> float:
        if state.rate_limit_hits <= 0:
            return 0.0
        delay_ms = min(
            self._config.decay_max_ms,
            state.rate_limit_hits * self._config.decay_step_ms,
        )
        return delay_ms / 1000

    def after_idle(self, state: SchedulerState) -> None:
        if state.rate_limit_hits > 0 and self._rng() < self._config.decay_probability:
            state.rate_limit_hits -= 1
            logger.debug("Rate limit hits decayed to %d", state.rate_limit_hits)


class FixedBatchPolicy(PacingPolicy):
    """Sequential checks in shrinking batches with a doubling pause."""

    strategy = SchedulingStrategy.FIXED_BATCH

    def new_state(self, usernames: Iterable[str]) -> SchedulerState:
        state = SchedulerState.for_batch(
            usernames,
            concurrency=1,
            min_concurrency=1,
            max_concurrency=1,
        )
        state.batch_size = self._config.batch_size
        state.batch_delay = self._config.batch_delay_ms / 1000
        return state

    def can_dispatch(self, state: SchedulerState) -> bool:
        return state.batch_dispatched < state.batch_size

    def dispatch_delay(self, state: SchedulerState) -> float:
        return self._config.item_interval_ms / 1000

    def on_success(self, state: SchedulerState) -> None:
        return None

    def on_rate_limited(self, state: SchedulerState) -> float:
        max_delay = self._config.max_batch_delay_ms / 1000
        state.batch_delay = min(state.batch_delay * 2, max_delay)
        state.batch_size = max(1, state.batch_size // 2)
        logger.info(
            "Rate limited: batch delay %.2fs, batch size %d",
            state.batch_delay,
            state.batch_size,
        )
        return state.batch_delay

    def idle_delay(self, state: SchedulerState) -> float:
        # Pause only at a batch boundary with more work left
        if state.batch_dispatched < state.batch_size or state.in_flight or not state.queue:
            return 0.0
        return state.batch_delay

    def after_idle(self, state: SchedulerState) -> None:
        if state.batch_dispatched >= state.batch_size and not state.in_flight:
            state.batch_dispatched = 0


def build_policy(
    config: PacingConfig | None = None,
    *,
    strategy: SchedulingStrategy | None = None,
    rng: RandomSource | None = None,
) -> PacingPolicy:
    """Resolve a scheduling strategy to a policy instance.

    Args:
        config: Pacing configuration (uses settings if not provided)
        strategy: Override for ``config.strategy``
        rng: Random source for the adaptive policy

    Returns:
        A fresh policy instance
    """
    cfg = config or get_settings().pacing
    chosen = strategy or cfg.strategy
    if chosen == SchedulingStrategy.ADAPTIVE:
        return AdaptiveWindowPolicy(cfg, rng=rng)
    if chosen == SchedulingStrategy.FIXED_BATCH:
        return FixedBatchPolicy(cfg)
    raise ConfigurationError(f"Unknown scheduling strategy: {chosen}")
