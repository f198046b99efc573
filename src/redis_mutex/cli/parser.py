"""CLI argument parsing for redis-mutex."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

from redis_mutex.core.constants import (
    DEFAULT_ACQUIRE_TIMEOUT,
    DEFAULT_CONNECT_ATTEMPTS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_TTL_SECONDS,
    ENV_VAR_MAPPING,
    VALID_LOG_LEVELS,
)
from redis_mutex.core.version import __version__


def _env(option: str, fallback: object = None) -> object:
    """Environment fallback for an option; argparse applies ``type`` to string defaults."""
    value = os.environ.get(ENV_VAR_MAPPING[option])
    if value is None or not value.strip():
        return fallback
    return value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redis-mutex",
        description="Run a command while holding a lock stored in Redis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a job, waiting for the lock as long as it takes
  redis-mutex nightly-backup -- ./backup.sh

  # Give up after 30 seconds of waiting, lock expires after 10 minutes
  redis-mutex --wait 30 --ttl 600 job-x -- make deploy

  # Remote coordinator with password from the environment
  REDIS_MUTEX_PASSWORD=secret redis-mutex -H redis.internal -n 2 job-x -- echo ok

  # Check connectivity and credentials only
  redis-mutex -H redis.internal --dry-run

Environment variables:
  REDIS_MUTEX_HOST, REDIS_MUTEX_PORT, REDIS_MUTEX_DB, REDIS_MUTEX_PASSWORD,
  REDIS_MUTEX_USER, LOG_LEVEL (also read from a .env file)

Exit codes:
  0      the command ran and exited 0 (or --dry-run succeeded)
  1      connection, authentication, protocol or configuration error,
         or the lock was not acquired before --wait elapsed
  2      invalid command-line usage
  N      otherwise, the command's own exit status
  128+N  terminated by signal N
""",
    )

    parser.add_argument("key", nargs="?", help="Name of the lock key")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run while holding the lock (prefix with -- to separate it from options)",
    )

    conn_group = parser.add_argument_group("Coordinator", "Where and how to connect")
    conn_group.add_argument(
        "-H", "--host", default=_env("host", DEFAULT_HOST), help=f"Coordinator host (default: {DEFAULT_HOST})"
    )
    conn_group.add_argument(
        "-p", "--port", type=int, default=_env("port", DEFAULT_PORT), help=f"Coordinator port (default: {DEFAULT_PORT})"
    )
    conn_group.add_argument("-n", "--db", type=int, default=_env("db"), metavar="N", help="Database index to select")
    conn_group.add_argument(
        "-a",
        "--password",
        default=_env("password"),
        help="Password for AUTH (prefer REDIS_MUTEX_PASSWORD; command lines are visible to other users)",
    )
    conn_group.add_argument("--user", default=_env("user"), help="ACL username sent with the password")
    conn_group.add_argument(
        "--connect-attempts",
        type=int,
        default=DEFAULT_CONNECT_ATTEMPTS,
        metavar="N",
        help=f"Connection attempts before giving up, 1s apart (default: {DEFAULT_CONNECT_ATTEMPTS})",
    )
    conn_group.add_argument(
        "--connect-timeout",
        type=float,
        default=DEFAULT_CONNECT_TIMEOUT,
        metavar="SECONDS",
        help=f"Timeout for each connection attempt (default: {DEFAULT_CONNECT_TIMEOUT})",
    )
    conn_group.add_argument(
        "--socket-timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Read/write timeout once connected; a timeout is treated as a lost connection (default: none)",
    )

    lock_group = parser.add_argument_group("Lock", "Acquisition behavior")
    lock_group.add_argument(
        "-t",
        "--ttl",
        type=int,
        default=DEFAULT_TTL_SECONDS,
        metavar="SECONDS",
        help=f"Lock expiry; bounds how long a crashed holder blocks others (default: {DEFAULT_TTL_SECONDS})",
    )
    lock_group.add_argument(
        "-w",
        "--wait",
        type=int,
        default=DEFAULT_ACQUIRE_TIMEOUT,
        metavar="SECONDS",
        help="Give up if the lock is not acquired within this time; 0 waits forever (default: 0)",
    )
    lock_group.add_argument(
        "-i",
        "--interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        metavar="SECONDS",
        help=f"Pause between acquisition attempts (default: {DEFAULT_POLL_INTERVAL})",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Connect and authenticate, then exit without taking the lock",
    )
    parser.add_argument("--quiet", "-q", action="store_true", help="Only report errors")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        default=None,
        help="Logging level (default: LOG_LEVEL environment variable or INFO)",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default="text", help="Log output format (default: text)"
    )
    parser.add_argument("--log-file", default=None, metavar="PATH", help="Also write logs to a rotating file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored error output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    return build_parser().parse_args(argv)
