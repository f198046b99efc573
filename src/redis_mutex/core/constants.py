"""Constants and default values for redis-mutex.

This module centralizes all magic numbers, environment variable names and
exit codes used throughout the application.
"""

# ==================== COORDINATOR DEFAULTS ====================

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 6379
DEFAULT_CONNECT_ATTEMPTS: int = 5
DEFAULT_CONNECT_TIMEOUT: float = 5.0  # seconds per connect attempt
CONNECT_RETRY_DELAY_SECONDS: float = 1.0  # fixed pause between connect attempts

# ==================== LOCK DEFAULTS ====================

DEFAULT_TTL_SECONDS: int = 60
DEFAULT_ACQUIRE_TIMEOUT: int = 0  # 0 = wait forever
DEFAULT_POLL_INTERVAL: float = 0.5
TOKEN_LENGTH: int = 40
TOKEN_ALPHABET: str = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Atomic compare-and-delete executed server-side on release.
RELEASE_SCRIPT: str = (
    'if redis.call("get", KEYS[1]) == ARGV[1] then '
    'return redis.call("del", KEYS[1]) '
    "else return 0 end"
)

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep
VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ==================== EXIT CODES ====================

EXIT_SUCCESS: int = 0
EXIT_FAILURE: int = 1
EXIT_COMMAND_NOT_EXECUTABLE: int = 126
EXIT_COMMAND_NOT_FOUND: int = 127
EXIT_SIGNAL_BASE: int = 128

# ==================== ENVIRONMENT VARIABLES ====================

# Environment variable fallbacks for CLI options (CLI flags take precedence)
ENV_VAR_MAPPING: dict[str, str] = {
    "host": "REDIS_MUTEX_HOST",
    "port": "REDIS_MUTEX_PORT",
    "db": "REDIS_MUTEX_DB",
    "password": "REDIS_MUTEX_PASSWORD",
    "user": "REDIS_MUTEX_USER",
}
