"""Configuration dataclasses for redis-mutex.

These dataclasses centralize all configuration options for type safety
and easy testing. They can be created from command-line arguments or
used directly in code.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field

from redis_mutex.core.constants import (
    DEFAULT_ACQUIRE_TIMEOUT,
    DEFAULT_CONNECT_ATTEMPTS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_TTL_SECONDS,
)


@dataclass
class ConnectionConfig:
    """Coordinator connection parameters.

    Attributes:
        host: Coordinator hostname or IP (default: 127.0.0.1)
        port: Coordinator TCP port (default: 6379)
        database: Database index to SELECT after connecting (default: None, skip)
        password: Credential sent with AUTH (default: None, skip)
        username: ACL username sent with AUTH alongside the password (default: None)
        max_connect_attempts: Total connect attempts before giving up (default: 5)
        connect_timeout_seconds: Timeout for each connect attempt (default: 5.0)
        socket_timeout_seconds: Read/write timeout once connected (default: None, block)
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    database: int | None = None
    password: str | None = field(default=None, repr=False)
    username: str | None = None
    max_connect_attempts: int = DEFAULT_CONNECT_ATTEMPTS
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT
    socket_timeout_seconds: float | None = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class LockConfig:
    """Lock acquisition parameters.

    Attributes:
        key: Coordinator key that represents the lock
        ttl_seconds: Lock expiry, bounds how long a crashed holder can block others (default: 60)
        acquire_timeout_seconds: Give up waiting after this many seconds, 0 = never (default: 0)
        poll_interval_seconds: Constant pause between acquisition attempts (default: 0.5)
    """

    key: str = ""
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    acquire_timeout_seconds: int = DEFAULT_ACQUIRE_TIMEOUT
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL

    @property
    def ttl_milliseconds(self) -> int:
        return self.ttl_seconds * 1000


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: None, resolved from LOG_LEVEL or INFO)
        log_format: "text" or "json" (default: "text")
        log_file: Optional path for a rotating log file (default: None)
    """

    level: str | None = None
    log_format: str = "text"
    log_file: str | None = None


@dataclass
class RunConfig:
    """Master configuration for one guarded run.

    Attributes:
        connection: Coordinator connection parameters
        lock: Lock acquisition parameters
        log: Logging configuration
        command: Argument vector of the protected command
        quiet: Suppress non-error output
        dry_run: Connect and authenticate only, never take the lock
    """

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    log: LogConfig = field(default_factory=LogConfig)
    command: list[str] = field(default_factory=list)
    quiet: bool = False
    dry_run: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> RunConfig:
        """Create configuration from parsed command-line arguments."""
        command = list(getattr(args, "command", None) or [])
        if command and command[0] == "--":
            command = command[1:]
        return cls(
            connection=ConnectionConfig(
                host=getattr(args, "host", DEFAULT_HOST),
                port=getattr(args, "port", DEFAULT_PORT),
                database=getattr(args, "db", None),
                password=getattr(args, "password", None) or None,
                username=getattr(args, "user", None) or None,
                max_connect_attempts=getattr(args, "connect_attempts", DEFAULT_CONNECT_ATTEMPTS),
                connect_timeout_seconds=getattr(args, "connect_timeout", DEFAULT_CONNECT_TIMEOUT),
                socket_timeout_seconds=getattr(args, "socket_timeout", None),
            ),
            lock=LockConfig(
                key=getattr(args, "key", "") or "",
                ttl_seconds=getattr(args, "ttl", DEFAULT_TTL_SECONDS),
                acquire_timeout_seconds=getattr(args, "wait", DEFAULT_ACQUIRE_TIMEOUT),
                poll_interval_seconds=getattr(args, "interval", DEFAULT_POLL_INTERVAL),
            ),
            log=LogConfig(
                level=getattr(args, "log_level", None),
                log_format=getattr(args, "log_format", "text"),
                log_file=getattr(args, "log_file", None),
            ),
            command=command,
            quiet=getattr(args, "quiet", False),
            dry_run=getattr(args, "dry_run", False),
        )
