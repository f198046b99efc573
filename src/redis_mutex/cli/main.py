"""CLI entrypoint for redis-mutex."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import NoReturn

from dotenv import find_dotenv, load_dotenv

from redis_mutex.cli.parser import parse_arguments
from redis_mutex.cli.progress import WaitProgress
from redis_mutex.core.colors import ConsoleColors
from redis_mutex.core.config import RunConfig
from redis_mutex.core.config_validation import validate_run_config
from redis_mutex.core.constants import EXIT_FAILURE, EXIT_SIGNAL_BASE, EXIT_SUCCESS
from redis_mutex.core.exceptions import MutexError, TerminationSignal
from redis_mutex.core.logging import setup_logging
from redis_mutex.guard import run_command, run_locked
from redis_mutex.protocol.session import Session

__all__ = ["main", "run"]

SIGINT_EXIT_STATUS = EXIT_SIGNAL_BASE + 2


def _bootstrap_dotenv(logger: logging.Logger) -> None:
    """Load .env from the working directory without overriding the real environment."""
    try:
        if load_dotenv(find_dotenv(usecwd=True), override=False):
            logger.debug("Loaded environment from .env")
    except OSError as e:
        logger.debug(f"Failed to load .env: {e}")


def _report_error(error: MutexError | str) -> int:
    """Print a coloured error message to stderr and return the failure exit code."""
    print(ConsoleColors.error(f"ERROR: {error}"), file=sys.stderr)
    return EXIT_FAILURE


def _dry_run(config: RunConfig, logger: logging.Logger) -> int:
    with Session.connect(config.connection, logger=logger) as session:
        session.execute("PING")
    if not config.quiet:
        print(ConsoleColors.success(f"Coordinator at {config.connection.address} is reachable"), file=sys.stderr)
    return EXIT_SUCCESS


def run(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the guarded command and return the exit status."""
    _bootstrap_dotenv(logging.getLogger(__name__))
    args = parse_arguments(argv)
    ConsoleColors.configure(no_color=args.no_color)

    config = RunConfig.from_args(args)
    logger = setup_logging(config.log.level, config.log.log_format, config.log.log_file, quiet=config.quiet)

    try:
        validate_run_config(config)
    except MutexError as e:
        return _report_error(e)

    try:
        if config.dry_run:
            return _dry_run(config, logger)

        with WaitProgress(config.lock.key, config.lock.acquire_timeout_seconds, disable=config.quiet) as progress:

            def protected_command() -> int:
                progress.close()
                logger.debug(f"Running command: {config.command[0]}")
                return run_command(config.command, logger=logger)

            return run_locked(config, protected_command, on_wait=progress.update, logger=logger)
    except MutexError as e:
        return _report_error(e)
    except TerminationSignal as e:
        logger.warning(f"Terminated by signal {e.signum}")
        return EXIT_SIGNAL_BASE + e.signum
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return SIGINT_EXIT_STATUS


def main() -> NoReturn:
    """Main entry point for the script"""
    sys.exit(run())
