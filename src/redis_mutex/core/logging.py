"""Logging helpers for redis-mutex.

All diagnostics go to stderr: stdout belongs to the protected command.
"""

import atexit
import contextlib
import json
import logging
import os
import re
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from redis_mutex.core.constants import LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES, VALID_LOG_LEVELS

LOGGER_NAME = "redis_mutex"

_LOG_RECORD_RESERVED_FIELDS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime"}
_REDACTED_VALUE = "[REDACTED]"
_SENSITIVE_PARTS = {"password", "passwd", "pwd", "secret", "token", "requirepass", "credential"}
_SENSITIVE_KEY_REGEX = r"password|passwd|pwd|secret|token|requirepass|credential"
_MESSAGE_VALUE_REGEX = r"""
(?:
    "(?:[^"\\]|\\.)*" |
    '(?:[^'\\]|\\.)*' |
    [^,\s;}\]]+
)
"""
_SENSITIVE_KEY_VALUE_PATTERN = re.compile(
    rf"""(?ix)
    (?P<full_key>["']?(?<![A-Za-z0-9])[A-Za-z_]*(?:{_SENSITIVE_KEY_REGEX})["']?)
    (?P<separator>\s*[:=]\s*)
    (?P<value>{_MESSAGE_VALUE_REGEX})
    """
)


def _safe_record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # Keep logging resilient when message formatting fails (bad placeholders or broken __str__).
        return f"{record.msg!s} [log-message-format-error]"


def _is_sensitive_field(name: str) -> bool:
    parts = [part for part in re.split(r"[^a-z0-9]+", name.lower()) if part]
    return any(part in _SENSITIVE_PARTS for part in parts)


def _redact_captured_value(value: str) -> str:
    if len(value) >= 2 and value[0] in {"'", '"'} and value[-1] == value[0]:
        return f"{value[0]}{_REDACTED_VALUE}{value[0]}"
    return _REDACTED_VALUE


def _redact_key_value_match(match: re.Match[str]) -> str:
    return f"{match.group('full_key')}{match.group('separator')}{_redact_captured_value(match.group('value'))}"


def redact_message(message: str) -> str:
    """Scrub credential-like key/value pairs from text."""
    return _SENSITIVE_KEY_VALUE_PATTERN.sub(_redact_key_value_match, message)


def _redact_value(value: object) -> object:
    if isinstance(value, dict):
        return {k: _REDACTED_VALUE if _is_sensitive_field(str(k)) else _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(item) for item in value)
    if isinstance(value, str):
        return redact_message(value)
    return value


def _extra_fields(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if isinstance(key, str) and key not in _LOG_RECORD_RESERVED_FIELDS and not key.startswith("_")
    }


class SensitiveDataFilter(logging.Filter):
    """Best-effort redaction for credentials and lock tokens in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_message(_safe_record_message(record))
        record.args = ()
        for key, value in _extra_fields(record).items():
            if _is_sensitive_field(key):
                record.__dict__[key] = _REDACTED_VALUE
            else:
                with contextlib.suppress(Exception):
                    record.__dict__[key] = _redact_value(value)
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Each log record is a single JSON object on one line, suitable for
    log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_message(_safe_record_message(record)),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record).items():
            log_entry.setdefault(key, _REDACTED_VALUE if _is_sensitive_field(key) else _redact_value(value))

        return json.dumps(log_entry, default=str)


_atexit_registered = False


def resolve_log_level(log_level: str | None, quiet: bool = False) -> int:
    """Resolve the numeric level.

    Priority: 1) quiet mode (ERROR), 2) passed parameter, 3) LOG_LEVEL env var, 4) INFO
    """
    if quiet:
        return logging.ERROR
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO")
    if log_level.upper() not in VALID_LOG_LEVELS:
        print(f"Warning: Invalid log level '{log_level}', using INFO", file=sys.stderr)
        log_level = "INFO"
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(
    log_level: str | None = None,
    log_format: str = "text",
    log_file: str | None = None,
    quiet: bool = False,
) -> logging.Logger:
    """Configure stderr logging (and optionally a rotating log file).

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - "text" (default) or "json" for structured logging
        log_file: Optional file path; rotated at LOG_FILE_MAX_BYTES
        quiet: Only log errors

    Returns:
        The package logger
    """
    global _atexit_registered

    if not _atexit_registered:
        atexit.register(logging.shutdown)
        _atexit_registered = True

    numeric_level = resolve_log_level(log_level, quiet)

    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(RotatingFileHandler(path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUP_COUNT))
        except OSError as e:
            print(f"Warning: Cannot open log file {path}: {e}. Logging to console only.", file=sys.stderr)

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        handler.addFilter(SensitiveDataFilter())
        logging.root.addHandler(handler)

    logging.root.setLevel(numeric_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    return logger
