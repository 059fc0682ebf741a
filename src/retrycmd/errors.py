"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    COMMAND_NOT_EXECUTABLE = 126
    COMMAND_NOT_FOUND = 127
    INTERRUPTED = 130


_SIGNAL_EXIT_BASE = 128


@dataclass
class RetryCmdError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class LaunchError(RetryCmdError):
    """The wrapped command could not be started at all."""


def user_facing_error(message: str, *, hint: str = "") -> str:
    message = message.rstrip(".")
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."


def signal_exit_code(signum: int) -> int:
    return _SIGNAL_EXIT_BASE + signum
