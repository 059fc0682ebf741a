"""Backoff policy and the attempt loop driving a retried command."""

from __future__ import annotations

import logging as py_logging
import shlex
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from retrycmd.config import DEFAULT_MAX_BACKOFF_SECONDS, DEFAULT_SLEEP_SECONDS, RetryConfig
from retrycmd.launcher import AttemptOutcome, ProcessLauncher, build_environment
from retrycmd.logging import format_elapsed

logger = py_logging.getLogger(__name__)


class RunState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RetryPolicy:
    backoff: bool = False
    sleep_seconds: int = DEFAULT_SLEEP_SECONDS
    max_backoff_seconds: int = DEFAULT_MAX_BACKOFF_SECONDS

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            backoff=config.backoff_enabled,
            sleep_seconds=config.sleep_seconds,
            max_backoff_seconds=config.max_backoff_seconds,
        )

    def delay(self, count: int) -> int:
        """Seconds to sleep once ``count`` attempts have completed.

        The attempt loop asks after incrementing its counter, so the first
        exponential delay is ``2 ** 1``. ``delay(0)`` is only ever reported,
        never slept.
        """
        if count < 0:
            raise ValueError(f"attempt count must be non-negative, got {count}")
        if not self.backoff:
            return self.sleep_seconds
        # 2 ** bit_length always exceeds the clamp.
        if count >= self.max_backoff_seconds.bit_length():
            return self.max_backoff_seconds
        return min(2**count, self.max_backoff_seconds)


class RetryRun:
    """Single-use retry run over one configuration."""

    def __init__(
        self,
        config: RetryConfig,
        *,
        launcher: ProcessLauncher | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.policy = RetryPolicy.from_config(config)
        self.launcher = launcher or ProcessLauncher()
        self.sleep = sleep
        self.clock = clock
        self.environ = environ

        self.attempt_count = 0
        self.start_time = clock()
        self.previous_exit_code: int | None = None
        self.last_outcome: AttemptOutcome | None = None
        self.state = RunState.RUNNING
        self.goal_reached = False
        self._consumed = False

    def elapsed(self) -> str:
        return format_elapsed(self.start_time, self.clock())

    def describe_attempt(self) -> str:
        budget = f"/{self.config.max_tries}" if self.config.max_tries != 0 else ""
        return f"try #{self.attempt_count + 1}{budget}: {shlex.join(self.config.command)}"

    def build_environment(self) -> dict[str, str]:
        count = self.attempt_count
        return build_environment(
            attempt_count=count,
            max_tries=self.config.max_tries,
            next_sleep=self.policy.delay(count + 1),
            prev_sleep=self.policy.delay(count) if count > 0 else None,
            previous_exit_code=self.previous_exit_code,
            base=self.environ,
        )

    def should_retry(self, outcome: AttemptOutcome) -> bool:
        return outcome.success == self.config.retry_on_success

    def keep_trying(self) -> bool:
        self.attempt_count += 1
        return self.config.max_tries == 0 or self.attempt_count < self.config.max_tries

    def retry(self) -> int | None:
        """Run attempts until the success predicate holds or the budget runs out.

        Returns the exit code of the final attempt, or None when it was
        terminated by a signal. ``goal_reached`` tells the two stop reasons
        apart afterwards.
        """
        if self._consumed:
            raise RuntimeError("RetryRun instances are single-use.")
        self._consumed = True

        while True:
            logger.info(self.describe_attempt())
            outcome = self.launcher.launch(self.config.command, self.build_environment())
            self.last_outcome = outcome

            wants_retry = self.should_retry(outcome)
            within_budget = self.keep_trying()
            if not wants_retry:
                self.goal_reached = True
                break
            if not within_budget:
                break

            self.previous_exit_code = outcome.exit_code
            duration = self.policy.delay(self.attempt_count)
            logger.debug("%s, sleeping %ss", outcome.description, duration)
            self.sleep(duration)

        self.state = RunState.STOPPED
        logger.debug("total duration %ss", self.elapsed())
        return outcome.exit_code
