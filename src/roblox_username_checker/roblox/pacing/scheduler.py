"""Bulk check scheduler with adaptive pacing.

The scheduler drains a queue of usernames through a ``UsernameChecker``
while a ``PacingPolicy`` decides concurrency and delays.

Features:
- Bounded concurrency (at most ``state.concurrency`` checks in flight)
- Rate limited usernames re-queued at the front behind a global cooldown
- Single-writer state: check tasks only post completions, the loop
  applies them
- Cooperative abort that lets in-flight checks finish
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from roblox_username_checker.config import PacingConfig, get_settings
from roblox_username_checker.logging import LogContext, bind_batch, get_logger
from roblox_username_checker.schemas import CheckOutcome, SchedulingStrategy

from ..exceptions import BatchInProgressError
from ..results import BatchResult
from .policy import PacingPolicy, RandomSource, build_policy
from .progress import ProgressState, ProgressTracker
from .state import QueueItem, SchedulerPhase, SchedulerState

if TYPE_CHECKING:
    from loguru import Logger

    from ..client import UsernameChecker

logger = get_logger(__name__)

OutcomeCallback = Callable[[str, CheckOutcome], None]
CooldownCallback = Callable[[float], None]


@dataclass
class _BatchRun:
    """Per-batch context owned by the scheduler loop."""

    batch_id: str
    state: SchedulerState
    result: BatchResult
    log: Logger
    completions: deque[tuple[QueueItem, CheckOutcome]] = field(default_factory=deque)
    signal: asyncio.Event = field(default_factory=asyncio.Event)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)


class BulkScheduler:
    """Runs bulk username checks against a rate limited upstream.

    Usage:
        async with RobloxValidatorClient() as client:
            scheduler = BulkScheduler(client)
            scheduler.on_outcome(lambda name, outcome: print(name, outcome.kind))
            result = await scheduler.run(["builderman", "roblox", "xX_new_Xx"])

        print(result.available_usernames())

    Cancel from another task with ``scheduler.cancel()`` or by setting the
    ``abort`` event passed to ``run()``.
    """

    def __init__(
        self,
        checker: UsernameChecker,
        config: PacingConfig | None = None,
        *,
        policy: PacingPolicy | None = None,
        strategy: SchedulingStrategy | None = None,
        progress: ProgressTracker | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the bulk scheduler.

        Args:
            checker: Performs single checks; must not raise
            config: Pacing configuration (defaults to settings; ignored with a policy)
            policy: Explicit pacing policy (built from config/strategy if omitted)
            strategy: Scheduling strategy override when building the policy
            progress: Optional ProgressTracker for progress reporting
            rng: Random source for rate limit decay
            clock: Monotonic clock in seconds
        """
        if policy is None:
            policy = build_policy(config or get_settings().pacing, strategy=strategy, rng=rng)
        # Loop settings always come from the policy's config
        self._config = policy.config
        self._policy = policy
        self._checker = checker
        self._progress = progress
        self._clock = clock

        self._outcome_callbacks: list[OutcomeCallback] = []
        self._cooldown_callbacks: list[CooldownCallback] = []

        self._abort: asyncio.Event | None = None
        self._run: _BatchRun | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def policy(self) -> PacingPolicy:
        """The pacing policy in use."""
        return self._policy

    @property
    def config(self) -> PacingConfig:
        """The pacing configuration."""
        return self._config

    @property
    def is_running(self) -> bool:
        """Whether a batch is currently running."""
        return self._run is not None

    @property
    def state(self) -> SchedulerState | None:
        """State of the running batch (None when idle)."""
        return self._run.state if self._run else None

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------
    def on_outcome(self, callback: OutcomeCallback) -> None:
        """Register a callback for every outcome, rate limited ones included."""
        self._outcome_callbacks.append(callback)

    def on_cooldown(self, callback: CooldownCallback) -> None:
        """Register a callback receiving the cooldown length after a rate limit."""
        self._cooldown_callbacks.append(callback)

    def _emit_outcome(self, outcome: CheckOutcome) -> None:
        for callback in self._outcome_callbacks:
            try:
                callback(outcome.username, outcome)
            except Exception as e:
                logger.warning("Outcome callback error: {}", e)

    def _emit_cooldown(self, seconds: float) -> None:
        for callback in self._cooldown_callbacks:
            try:
                callback(seconds)
            except Exception as e:
                logger.warning("Cooldown callback error: {}", e)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def cancel(self) -> None:
        """Stop dispatching new checks.

        In-flight checks finish (or time out) and their outcomes are kept.
        """
        if self._abort is not None:
            self._abort.set()
            logger.info("Bulk check cancellation requested")

    def _aborted(self) -> bool:
        return self._abort is not None and self._abort.is_set()

    async def run(
        self,
        usernames: Iterable[str],
        *,
        abort: asyncio.Event | None = None,
    ) -> BatchResult:
        """Check every username and return the aggregated result.

        Usernames are trimmed and de-duplicated (case-sensitive, first
        occurrence wins) before dispatch.

        Args:
            usernames: Usernames to check
            abort: Optional event that cancels the batch when set

        Returns:
            BatchResult with one terminal outcome per checked username

        Raises:
            BatchInProgressError: If this scheduler is already running a batch
        """
        if self._run is not None:
            raise BatchInProgressError("A batch is already running on this scheduler")

        state = self._policy.new_state(usernames)
        result = BatchResult(
            usernames=[item.username for item in state.queue],
            strategy=self._policy.strategy,
        )
        batch_id = uuid.uuid4().hex[:8]
        run = _BatchRun(batch_id=batch_id, state=state, result=result, log=bind_batch(batch_id))

        self._abort = abort or asyncio.Event()
        self._run = run

        state.started_at = self._clock()
        state.phase = SchedulerPhase.RUNNING
        run.log.info(
            "Starting batch of {} usernames ({}, concurrency={})",
            state.total,
            self._policy.strategy.value,
            state.concurrency,
        )
        if self._progress:
            if self._progress.state != ProgressState.PENDING:
                self._progress.reset()
            self._progress.total = state.total
            self._publish_pacing(run, notify=False)
            self._progress.start()

        try:
            await self._drive(run)
        except BaseException:
            if self._progress:
                self._progress.fail("Batch interrupted")
            raise
        finally:
            self._run = None
            await self._cancel_stragglers(run)

        state.finished_at = self._clock()
        state.phase = SchedulerPhase.ABORTED if self._aborted() else SchedulerPhase.DONE
        result.state = state
        result.aborted = state.phase == SchedulerPhase.ABORTED
        result.duration_seconds = state.elapsed_seconds(state.finished_at)

        run.log.info(
            "Batch {}: {}/{} checked in {:.1f}s ({:.2f}/s), {} rate limit events",
            state.phase.value,
            result.checked_count,
            result.total_count,
            result.duration_seconds,
            state.throughput(state.finished_at),
            state.rate_limit_events,
        )
        if self._progress:
            if result.aborted:
                self._progress.cancel()
            else:
                self._progress.complete()
        return result

    async def _cancel_stragglers(self, run: _BatchRun) -> None:
        pending = [task for task in run.tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Control Loop
    # -------------------------------------------------------------------------
    async def _drive(self, run: _BatchRun) -> None:
        """Dispatch, collect and pace until the queue and in-flight set are empty."""
        state = run.state
        tick = self._config.loop_tick_ms / 1000

        while True:
            self._drain(run)

            if self._aborted() and state.phase != SchedulerPhase.ABORTED:
                state.phase = SchedulerPhase.ABORTED
                run.log.warning(
                    "Batch aborted: {} queued, waiting for {} in flight",
                    len(state.queue),
                    len(state.in_flight),
                )

            if state.phase == SchedulerPhase.ABORTED:
                if not state.in_flight:
                    return
            elif state.is_drained:
                return

            while self._can_dispatch(state):
                self._dispatch(run)
                await self._pause(run, self._policy.dispatch_delay(state))

            await self._pause(run, tick, stop_on_completion=True)

            if not self._aborted():
                idle = self._policy.idle_delay(state)
                if idle > 0:
                    await self._pause(run, idle)
                self._policy.after_idle(state)

            self._publish_pacing(run)

    def _can_dispatch(self, state: SchedulerState) -> bool:
        if self._aborted() or not state.queue or not state.has_capacity:
            return False
        if state.cooldown_remaining(self._clock()) > 0:
            return False
        return self._policy.can_dispatch(state)

    def _dispatch(self, run: _BatchRun) -> None:
        item = run.state.pop_next()
        run.state.refresh_phase()
        if item.attempts > 1:
            run.log.debug("Retrying {} (attempt {})", item.username, item.attempts)

        task = asyncio.create_task(self._check(run, item), name=f"check:{item.username}")
        run.tasks.add(task)
        task.add_done_callback(run.tasks.discard)

        if self._progress:
            self._publish_pacing(run, notify=False)
            self._progress.set_current(item.username)

    async def _check(self, run: _BatchRun, item: QueueItem) -> None:
        """Run one check and post its outcome to the loop."""
        try:
            with LogContext(batch=run.batch_id):
                outcome = await self._checker.check(item.username)
        except Exception as e:
            run.log.opt(exception=e).warning("Check for {} raised unexpectedly", item.username)
            outcome = CheckOutcome.transient_error(item.username, f"unexpected error: {e}")
        run.completions.append((item, outcome))
        run.signal.set()

    async def _pause(
        self,
        run: _BatchRun,
        seconds: float,
        *,
        stop_on_completion: bool = False,
    ) -> None:
        """Wait up to ``seconds``, applying completions as they arrive."""
        deadline = self._clock() + seconds
        while True:
            self._drain(run)
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            try:
                await asyncio.wait_for(run.signal.wait(), timeout=remaining)
            except TimeoutError:
                return
            if stop_on_completion:
                self._drain(run)
                return

    # -------------------------------------------------------------------------
    # Completion Handling
    # -------------------------------------------------------------------------
    def _drain(self, run: _BatchRun) -> None:
        run.signal.clear()
        while run.completions:
            item, outcome = run.completions.popleft()
            self._apply(run, item, outcome)

    def _apply(self, run: _BatchRun, item: QueueItem, outcome: CheckOutcome) -> None:
        """Fold one outcome into the batch state."""
        state = run.state
        state.release(item.username)

        if outcome.is_rate_limited:
            state.rate_limit_hits += 1
            state.rate_limit_events += 1
            state.consecutive_successes = 0
            state.speedup_mark = 0
            cooldown = self._policy.on_rate_limited(state)

            max_attempts = self._config.max_attempts
            if max_attempts and item.attempts >= max_attempts:
                run.log.warning(
                    "{} still rate limited after {} attempts", item.username, item.attempts
                )
                self._finish_item(
                    run,
                    CheckOutcome.transient_error(
                        item.username, "rate limit retries exhausted", code=outcome.code
                    ),
                )
            else:
                state.requeue_front(item)
                state.start_cooldown(self._clock(), cooldown)
                run.log.info(
                    "{} rate limited (attempt {}), cooling down {:.1f}s",
                    item.username,
                    item.attempts,
                    cooldown,
                )
                self._emit_outcome(outcome)
                self._emit_cooldown(cooldown)
            state.refresh_phase()
            self._publish_pacing(run)
            return

        self._finish_item(run, outcome)
        state.refresh_phase()

    def _finish_item(self, run: _BatchRun, outcome: CheckOutcome) -> None:
        """Record a terminal outcome."""
        state = run.state
        state.completed_count += 1
        if outcome.is_success:
            state.consecutive_successes += 1
            self._policy.on_success(state)
        else:
            self._policy.on_error(state)

        run.result.record(outcome)
        self._emit_outcome(outcome)

        if self._progress:
            self._publish_pacing(run, notify=False)
            if outcome.is_success:
                self._progress.increment()
            else:
                self._progress.increment_failed(error=f"{outcome.username}: {outcome.message}")

    def _publish_pacing(self, run: _BatchRun, *, notify: bool = True) -> None:
        if self._progress is None:
            return
        state = run.state
        self._progress.update_pacing(
            concurrency=state.concurrency,
            in_flight=len(state.in_flight),
            rate_limit_hits=state.rate_limit_hits,
            cooldown_remaining=state.cooldown_remaining(self._clock()),
            notify=notify,
        )
