"""Configuration validation helpers for redis-mutex."""

import math

from redis_mutex.core.config import ConnectionConfig, LockConfig, RunConfig
from redis_mutex.core.exceptions import ConfigurationError


class ConfigValidator:
    """Provides detailed validation for configuration fields.

    Every validator returns a tuple of (is_valid, error_message). The
    error message is None when the value is valid.
    """

    @staticmethod
    def validate_key(key: str) -> tuple[bool, str | None]:
        if not key or not key.strip():
            return False, "Lock key cannot be empty"
        return True, None

    @staticmethod
    def validate_host(host: str) -> tuple[bool, str | None]:
        if not host or not host.strip():
            return False, "Coordinator host cannot be empty (--host)"
        return True, None

    @staticmethod
    def validate_port(port: int) -> tuple[bool, str | None]:
        if isinstance(port, bool) or not isinstance(port, int):
            return False, f"Port must be an integer, got {port!r}"
        if not 1 <= port <= 65535:
            return False, f"Port must be between 1 and 65535, got {port}"
        return True, None

    @staticmethod
    def validate_database(database: int | None) -> tuple[bool, str | None]:
        if database is None:
            return True, None
        if database < 0:
            return False, f"--db cannot be negative, got {database}"
        return True, None

    @staticmethod
    def validate_positive_int(value: int, option: str) -> tuple[bool, str | None]:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return False, f"{option} must be a positive integer, got {value!r}"
        return True, None

    @staticmethod
    def validate_non_negative(value: float, option: str) -> tuple[bool, str | None]:
        """Validate a finite, non-negative number of seconds."""
        try:
            number = float(value)
        except (TypeError, ValueError):
            return False, f"{option} must be a number, got {value!r}"
        if not math.isfinite(number) or number < 0:
            return False, f"{option} must be a finite number >= 0, got {value!r}"
        return True, None

    @staticmethod
    def validate_positive_seconds(value: float | None, option: str, allow_none: bool = False) -> tuple[bool, str | None]:
        if value is None:
            return (True, None) if allow_none else (False, f"{option} is required")
        valid, error = ConfigValidator.validate_non_negative(value, option)
        if not valid:
            return valid, error
        if float(value) == 0:
            return False, f"{option} must be greater than 0"
        return True, None


def _connection_errors(connection: ConnectionConfig) -> list[tuple[str, str]]:
    checks = [
        ("host", ConfigValidator.validate_host(connection.host)),
        ("port", ConfigValidator.validate_port(connection.port)),
        ("db", ConfigValidator.validate_database(connection.database)),
        (
            "connect_attempts",
            ConfigValidator.validate_positive_int(connection.max_connect_attempts, "--connect-attempts"),
        ),
        (
            "connect_timeout",
            ConfigValidator.validate_positive_seconds(connection.connect_timeout_seconds, "--connect-timeout"),
        ),
        (
            "socket_timeout",
            ConfigValidator.validate_positive_seconds(
                connection.socket_timeout_seconds, "--socket-timeout", allow_none=True
            ),
        ),
    ]
    return [(name, error) for name, (valid, error) in checks if not valid and error]


def _lock_errors(lock: LockConfig) -> list[tuple[str, str]]:
    checks = [
        ("key", ConfigValidator.validate_key(lock.key)),
        ("ttl", ConfigValidator.validate_positive_int(lock.ttl_seconds, "--ttl")),
        ("wait", ConfigValidator.validate_non_negative(lock.acquire_timeout_seconds, "--wait")),
        ("interval", ConfigValidator.validate_non_negative(lock.poll_interval_seconds, "--interval")),
    ]
    errors = [(name, error) for name, (valid, error) in checks if not valid and error]
    if isinstance(lock.acquire_timeout_seconds, float) and not lock.acquire_timeout_seconds.is_integer():
        errors.append(("wait", f"--wait must be a whole number of seconds, got {lock.acquire_timeout_seconds}"))
    return errors


def collect_config_errors(config: RunConfig) -> list[tuple[str, str]]:
    """Return (field, message) pairs for every invalid setting in config."""
    errors = _connection_errors(config.connection)
    if not config.dry_run:
        errors.extend(_lock_errors(config.lock))
        if not config.command:
            errors.append(("command", "No command given to run while holding the lock"))
    return errors


def validate_run_config(config: RunConfig) -> RunConfig:
    """Validate a run configuration before any network activity.

    Raises:
        ConfigurationError: for the first invalid setting; the remaining
            problems are listed in ``details``.
    """
    errors = collect_config_errors(config)
    if not errors:
        return config
    field, message = errors[0]
    details = "; ".join(msg for _, msg in errors[1:]) or None
    raise ConfigurationError(message, field=field, details=details)
