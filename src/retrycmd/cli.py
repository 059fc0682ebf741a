"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from retrycmd import __version__
from retrycmd.config import RetryConfig, RetryDefaults, build_config, load_defaults
from retrycmd.errors import ExitCode, RetryCmdError, signal_exit_code, user_facing_error
from retrycmd.launcher import ProcessLauncher
from retrycmd.logging import LogLevel, configure_logging
from retrycmd.retry import RetryRun

logger = py_logging.getLogger(__name__)

_USAGE = "%(prog)s [options] [--] cmd [args..]"
_SEPARATOR = "--"


def _non_negative_int_type(flag: str) -> Callable[[str], int]:
    def parse(value: str) -> int:
        try:
            parsed = int(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"{flag} must be a number") from exc
        if parsed < 0:
            raise argparse.ArgumentTypeError(f"{flag} must be zero or greater")
        return parsed

    return parse


def build_parser(defaults: RetryDefaults | None = None) -> argparse.ArgumentParser:
    defaults = defaults or RetryDefaults()
    parser = argparse.ArgumentParser(
        prog="retrycmd",
        usage=_USAGE,
        description="Run cmd until it succeeds or the number of tries runs out.",
    )
    parser.add_argument(
        "-b",
        "--backoff",
        action="store_true",
        default=defaults.backoff,
        help="Sleep times between each try will increase exponentially (up to max-backoff)",
    )
    parser.add_argument(
        "-m",
        "--max-backoff",
        type=_non_negative_int_type("--max-backoff"),
        default=defaults.max_backoff,
        metavar="n",
        help=f"Max sleep in seconds between tries when using exponential backoff. default={defaults.max_backoff}",
    )
    parser.add_argument(
        "-n",
        "--max-tries",
        type=_non_negative_int_type("--max-tries"),
        default=defaults.max_tries,
        metavar="n",
        help=f"Max number of tries. Set to 0 for unlimited tries. default={defaults.max_tries}",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Don't log anything")
    parser.add_argument(
        "-s",
        "--sleep",
        type=_non_negative_int_type("--sleep"),
        default=defaults.sleep,
        metavar="n",
        help=f"Sleep n seconds between tries. default={defaults.sleep}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=defaults.verbose,
        help="More verbose logging",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Print version information",
    )
    parser.add_argument(
        "-x",
        "--retry-on-success",
        action="store_true",
        help="Retry when cmd has an exit code of 0",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write a debug log to this file (skipped with --quiet)",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run, with its arguments")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser(load_defaults())
    return parser.parse_args(argv)


def command_from_namespace(namespace: argparse.Namespace) -> list[str]:
    command = list(namespace.command)
    if command and command[0] == _SEPARATOR:
        command = command[1:]
    return command


def config_from_namespace(namespace: argparse.Namespace) -> RetryConfig:
    command = command_from_namespace(namespace)
    if not command:
        raise RetryCmdError(
            "No command provided",
            code=ExitCode.INVALID_ARGS,
            hint="Pass the command to retry after the options.",
        )
    return build_config(
        command=command,
        max_tries=namespace.max_tries,
        sleep_seconds=namespace.sleep,
        backoff_enabled=namespace.backoff,
        max_backoff_seconds=namespace.max_backoff,
        log_level=LogLevel.DEBUG if namespace.verbose else LogLevel.INFO,
        quiet=namespace.quiet,
        retry_on_success=namespace.retry_on_success,
    )


def exit_status(run: RetryRun, exit_code: int | None) -> int:
    if run.goal_reached:
        return int(ExitCode.SUCCESS)
    if exit_code is not None:
        return exit_code
    outcome = run.last_outcome
    if outcome is not None and outcome.signal is not None:
        return signal_exit_code(outcome.signal)
    return int(ExitCode.FAILURE)


def main(
    argv: Sequence[str] | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    launcher: ProcessLauncher | None = None,
) -> int:
    configure_logging()
    parser = build_parser(load_defaults())
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.debug("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    try:
        config = config_from_namespace(namespace)
        run = RetryRun(config, launcher=launcher, sleep=sleep)
        configure_logging(
            config.log_level,
            quiet=config.quiet,
            start=run.start_time,
            clock=run.clock,
            log_file=namespace.log_file,
        )
        exit_code = run.retry()
        return exit_status(run, exit_code)
    except RetryCmdError as exc:
        logger.debug(
            "Handled RetryCmdError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        if exc.code == ExitCode.INVALID_ARGS:
            parser.print_usage(sys.stderr)
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except KeyboardInterrupt:
        logger.debug("Interrupted while running command")
        return int(ExitCode.INTERRUPTED)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
