"""Child process launching with retry metadata in the environment."""

from __future__ import annotations

import logging as py_logging
import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from retrycmd.errors import ExitCode, LaunchError

logger = py_logging.getLogger(__name__)

ENV_TRY = "RETRY_TRY"
ENV_MAX = "RETRY_MAX"
ENV_NEXT_SLEEP = "RETRY_NEXT_SLEEP"
ENV_PREV_SLEEP = "RETRY_PREV_SLEEP"
ENV_PREV_EXIT_CODE = "RETRY_PREV_EXIT_CODE"
RETRY_ENV_VARS = (ENV_TRY, ENV_MAX, ENV_NEXT_SLEEP, ENV_PREV_SLEEP, ENV_PREV_EXIT_CODE)


@dataclass(frozen=True)
class AttemptOutcome:
    """Termination status of one attempt.

    ``exit_code`` is None when the child was killed by a signal, in which case
    ``signal`` holds the signal number.
    """

    exit_code: int | None
    signal: int | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def description(self) -> str:
        if self.exit_code is not None:
            return f"unexpected exit code: {self.exit_code}"
        return "process terminated by signal"


def outcome_from_returncode(returncode: int) -> AttemptOutcome:
    if returncode < 0:
        return AttemptOutcome(exit_code=None, signal=-returncode)
    return AttemptOutcome(exit_code=returncode)


def build_environment(
    *,
    attempt_count: int,
    max_tries: int,
    next_sleep: int,
    prev_sleep: int | None = None,
    previous_exit_code: int | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    env[ENV_TRY] = str(attempt_count + 1)
    env[ENV_MAX] = str(max_tries)
    env[ENV_NEXT_SLEEP] = str(next_sleep)

    # Values inherited from an enclosing retry run must not leak into this one.
    if prev_sleep is None:
        env.pop(ENV_PREV_SLEEP, None)
    else:
        env[ENV_PREV_SLEEP] = str(prev_sleep)

    if previous_exit_code is None:
        env.pop(ENV_PREV_EXIT_CODE, None)
    else:
        env[ENV_PREV_EXIT_CODE] = str(previous_exit_code)
    return env


class ProcessLauncher:
    def __init__(
        self,
        *,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.runner = runner

    def launch(self, argv: Sequence[str], env: Mapping[str, str]) -> AttemptOutcome:
        command = list(argv)
        try:
            # subprocess.run kills the child if waiting is interrupted.
            completed = self.runner(command, env=dict(env), shell=False, check=False)
        except FileNotFoundError as exc:
            logger.debug("Executable not found command=%s", command)
            raise LaunchError(
                f"Command not found: {command[0]}",
                code=ExitCode.COMMAND_NOT_FOUND,
                hint="Check the executable name and PATH.",
            ) from exc
        except OSError as exc:
            logger.debug("Failed to start command=%s error=%s", command, exc)
            raise LaunchError(
                f"Failed to execute command: {command[0]} ({exc.strerror or exc})",
                code=ExitCode.COMMAND_NOT_EXECUTABLE,
                hint="Check that the command is executable.",
            ) from exc

        return outcome_from_returncode(completed.returncode)
