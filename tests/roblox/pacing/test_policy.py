"""Unit tests for pacing policies."""

import pytest

from roblox_username_checker.config import PacingConfig
from roblox_username_checker.roblox import (
    AdaptiveWindowPolicy,
    ConfigurationError,
    FixedBatchPolicy,
    build_policy,
)
from roblox_username_checker.schemas import SchedulingStrategy


def always(value: float):
    """Random source returning a constant."""
    return lambda: value


class TestAdaptiveWindowPolicy:
    """Tests for the adaptive concurrency window."""

    def test_new_state_uses_config_bounds(self) -> None:
        """Initial state carries the configured concurrency bounds."""
        policy = AdaptiveWindowPolicy(PacingConfig())
        state = policy.new_state(["a", "b"])

        assert state.concurrency == 4
        assert state.min_concurrency == 2
        assert state.max_concurrency == 8

    def test_invalid_bounds_rejected(self) -> None:
        """Bounds violating min <= initial <= max are rejected."""
        config = PacingConfig.model_construct(
            **{**PacingConfig().model_dump(), "initial_concurrency": 10}
        )
        with pytest.raises(ConfigurationError):
            AdaptiveWindowPolicy(config)

    def test_dispatch_delay_grows_with_hits(self) -> None:
        """Each outstanding hit adds the delay step."""
        policy = AdaptiveWindowPolicy(PacingConfig())
        state = policy.new_state(["a"])

        assert policy.dispatch_delay(state) == pytest.approx(0.150)
        state.rate_limit_hits = 3
        assert policy.dispatch_delay(state) == pytest.approx(0.300)

    def test_rate_limit_drops_to_min(self) -> None:
        """A rate limit resets concurrency to the floor and pauses."""
        policy = AdaptiveWindowPolicy(PacingConfig())
        state = policy.new_state(["a"])
        state.set_concurrency(7)

        cooldown = policy.on_rate_limited(state)

        assert state.concurrency == 2
        assert cooldown == pytest.approx(2.0)

    def test_speedup_after_threshold(self) -> None:
        """Concurrency grows by one per threshold successes."""
        policy = AdaptiveWindowPolicy(PacingConfig(speedup_threshold=3))
        state = policy.new_state(["a"])

        for _ in range(2):
            state.consecutive_successes += 1
            policy.on_success(state)
        assert state.concurrency == 4

        state.consecutive_successes += 1
        policy.on_success(state)
        assert state.concurrency == 5

        # The streak re-arms from the last raise
        state.consecutive_successes += 1
        policy.on_success(state)
        assert state.concurrency == 5

        for _ in range(2):
            state.consecutive_successes += 1
            policy.on_success(state)
        assert state.concurrency == 6

    def test_no_speedup_with_outstanding_hits(self) -> None:
        """Concurrency stays put while rate limit hits are outstanding."""
        policy = AdaptiveWindowPolicy(PacingConfig(speedup_threshold=1))
        state = policy.new_state(["a"])
        state.rate_limit_hits = 1

        state.consecutive_successes = 10
        policy.on_success(state)

        assert state.concurrency == 4

    def test_speedup_capped_at_max(self) -> None:
        """Concurrency never exceeds the ceiling."""
        policy = AdaptiveWindowPolicy(
            PacingConfig(initial_concurrency=8, speedup_threshold=1)
        )
        state = policy.new_state(["a"])

        state.consecutive_successes = 5
        policy.on_success(state)

        assert state.concurrency == 8

    def test_idle_delay(self) -> None:
        """Idle wait scales with hits up to the cap."""
        policy = AdaptiveWindowPolicy(PacingConfig())
        state = policy.new_state(["a"])

        assert policy.idle_delay(state) == 0.0
        state.rate_limit_hits = 2
        assert policy.idle_delay(state) == pytest.approx(0.6)
        state.rate_limit_hits = 50
        assert policy.idle_delay(state) == pytest.approx(3.0)

    def test_decay_uses_random_source(self) -> None:
        """One hit is forgiven only when the draw is below the probability."""
        state_holder = AdaptiveWindowPolicy(PacingConfig(), rng=always(0.5))
        state = state_holder.new_state(["a"])
        state.rate_limit_hits = 2
        state_holder.after_idle(state)
        assert state.rate_limit_hits == 2

        lucky = AdaptiveWindowPolicy(PacingConfig(), rng=always(0.1))
        lucky.after_idle(state)
        assert state.rate_limit_hits == 1

    def test_decay_never_negative(self) -> None:
        """Decay does nothing without outstanding hits."""
        policy = AdaptiveWindowPolicy(PacingConfig(), rng=always(0.0))
        state = policy.new_state(["a"])

        policy.after_idle(state)

        assert state.rate_limit_hits == 0


class TestFixedBatchPolicy:
    """Tests for the fixed batch fallback."""

    def test_sequential_state(self) -> None:
        """Fixed batches run one check at a time."""
        policy = FixedBatchPolicy(PacingConfig())
        state = policy.new_state(["a", "b"])

        assert state.concurrency == 1
        assert state.batch_size == 5
        assert state.batch_delay == pytest.approx(0.5)
        assert policy.dispatch_delay(state) == pytest.approx(0.2)

    def test_batch_gate(self) -> None:
        """Dispatching stops at the batch size until the pause elapses."""
        policy = FixedBatchPolicy(PacingConfig(batch_size=2))
        state = policy.new_state(["a", "b", "c"])

        for _ in range(2):
            assert policy.can_dispatch(state)
            state.release(state.pop_next().username)
        assert not policy.can_dispatch(state)
        assert policy.idle_delay(state) == pytest.approx(0.5)

        policy.after_idle(state)

        assert state.batch_dispatched == 0
        assert policy.can_dispatch(state)

    def test_no_pause_inside_batch(self) -> None:
        """Idle wait is zero mid-batch or when nothing is queued."""
        policy = FixedBatchPolicy(PacingConfig(batch_size=1))
        state = policy.new_state(["a"])
        assert policy.idle_delay(state) == 0.0

        state.release(state.pop_next().username)
        assert policy.idle_delay(state) == 0.0

    def test_rate_limit_backoff(self) -> None:
        """A rate limit doubles the pause and halves the batch."""
        policy = FixedBatchPolicy(PacingConfig(batch_size=5, max_batch_delay_ms=1500))
        state = policy.new_state(["a"])

        assert policy.on_rate_limited(state) == pytest.approx(1.0)
        assert state.batch_size == 2

        assert policy.on_rate_limited(state) == pytest.approx(1.5)
        assert state.batch_size == 1

        policy.on_rate_limited(state)
        assert state.batch_size == 1
        assert state.batch_delay == pytest.approx(1.5)


class TestBuildPolicy:
    """Tests for strategy resolution."""

    def test_default_strategy(self) -> None:
        """The configured strategy is used by default."""
        policy = build_policy(PacingConfig())

        assert isinstance(policy, AdaptiveWindowPolicy)
        assert policy.strategy == SchedulingStrategy.ADAPTIVE

    def test_strategy_override(self) -> None:
        """An explicit strategy wins over config."""
        policy = build_policy(PacingConfig(), strategy=SchedulingStrategy.FIXED_BATCH)

        assert isinstance(policy, FixedBatchPolicy)

    def test_strategy_from_config(self) -> None:
        """Config strategy selects the fixed batch policy."""
        policy = build_policy(PacingConfig(strategy=SchedulingStrategy.FIXED_BATCH))

        assert policy.strategy == SchedulingStrategy.FIXED_BATCH
