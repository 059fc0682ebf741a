"""Run configuration record and TOML defaults loading."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from retrycmd.errors import ExitCode, RetryCmdError
from retrycmd.logging import LogLevel

DEFAULT_CONFIG_PATH = Path("~/.config/retrycmd/config.toml")
CONFIG_PATH_ENV = "RETRYCMD_CONFIG"
DEFAULT_MAX_TRIES = 10
DEFAULT_SLEEP_SECONDS = 5
DEFAULT_MAX_BACKOFF_SECONDS = 60


class RetryConfig(BaseModel):
    """Fully resolved options for a single retry run."""

    model_config = ConfigDict(frozen=True)

    max_tries: int = Field(default=DEFAULT_MAX_TRIES, ge=0)
    sleep_seconds: int = Field(default=DEFAULT_SLEEP_SECONDS, ge=0)
    backoff_enabled: bool = False
    max_backoff_seconds: int = Field(default=DEFAULT_MAX_BACKOFF_SECONDS, ge=0)
    log_level: LogLevel = LogLevel.INFO
    quiet: bool = False
    retry_on_success: bool = False
    command: tuple[str, ...] = Field(min_length=1)


class RetryDefaults(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    max_tries: int = Field(default=DEFAULT_MAX_TRIES, ge=0)
    sleep: int = Field(default=DEFAULT_SLEEP_SECONDS, ge=0)
    backoff: bool = False
    max_backoff: int = Field(default=DEFAULT_MAX_BACKOFF_SECONDS, ge=0)
    verbose: bool = False


def build_config(*, command: Sequence[str], **options: object) -> RetryConfig:
    try:
        return RetryConfig(command=tuple(command), **options)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "config" for error in exc.errors()
        )
        raise RetryCmdError(
            f"Invalid configuration: {fields}",
            code=ExitCode.CONFIG_ERROR,
            hint="Check the command line flags and the defaults file.",
        ) from exc


def get_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.getenv(CONFIG_PATH_ENV, "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _non_negative_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _sanitize(raw: dict[str, object]) -> RetryDefaults:
    defaults = RetryDefaults()

    for key in ("max_tries", "sleep", "max_backoff"):
        value = raw.get(key)
        if _non_negative_int(value):
            setattr(defaults, key, value)

    for key in ("backoff", "verbose"):
        value = raw.get(key)
        if isinstance(value, bool):
            setattr(defaults, key, value)

    return defaults


def load_defaults(path: str | Path | None = None) -> RetryDefaults:
    resolved = get_config_path(path)
    if not resolved.exists():
        return RetryDefaults()
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return RetryDefaults()
    if not isinstance(raw, dict):
        return RetryDefaults()
    return _sanitize(raw)
