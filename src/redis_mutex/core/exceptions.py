"""Custom exceptions for redis-mutex.

All exception classes carry enough context to print a single actionable
line on the diagnostic stream before the process exits.
"""


class MutexError(Exception):
    """Base exception for all redis-mutex errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(MutexError):
    """Exception raised for invalid or missing configuration values.

    Detected before any network activity, so raising it has no side effects.

    Examples:
        - Empty lock key or host
        - Non-positive TTL
        - Missing command to run
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class CoordinatorError(MutexError):
    """Base exception for failures talking to the coordinator."""


class ConnectionFailedError(CoordinatorError):
    """Raised when the coordinator stays unreachable after every connect attempt."""

    def __init__(self, host: str, port: int, attempts: int, original_error: Exception | None = None):
        self.host = host
        self.port = port
        self.attempts = attempts
        self.original_error = original_error
        details = str(original_error) if original_error is not None else None
        super().__init__(f"Could not connect to {host}:{port} after {attempts} attempt(s)", details)


class DisconnectError(CoordinatorError):
    """Raised when the session stream is closed or unreadable mid-protocol.

    Never retried: after a reconnect the holder cannot tell whether the lock
    is still held.
    """

    def __init__(self, message: str = "Connection to coordinator lost", operation: str | None = None,
                 details: str | None = None):
        self.operation = operation
        super().__init__(message, details)

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"during {self.operation}")
        if self.details:
            parts.append(self.details)
        return " - ".join(parts)


class ProtocolError(CoordinatorError):
    """Raised for malformed or unsupported wire data."""


class CommandError(CoordinatorError):
    """Raised when the coordinator answers a command with an error reply.

    Attributes:
        command: Name of the command that was rejected (arguments are never kept)
        reply_message: Error text returned by the coordinator
    """

    def __init__(self, command: str, reply_message: str):
        self.command = command.upper()
        self.reply_message = reply_message
        super().__init__(f"{self.command} rejected by coordinator", reply_message)


class AuthenticationError(CommandError):
    """Raised when the coordinator rejects the configured credential."""

    def __init__(self, reply_message: str):
        super().__init__("AUTH", reply_message)


class NamespaceError(CommandError):
    """Raised when the coordinator rejects the configured database index."""

    def __init__(self, database: int, reply_message: str):
        self.database = database
        super().__init__("SELECT", reply_message)


class LockStateError(MutexError):
    """Raised when a lock operation is invoked from the wrong state."""


class TerminationSignal(BaseException):
    """Raised from a signal handler so that cleanup runs through normal unwinding.

    Derives from BaseException, like KeyboardInterrupt, so that broad
    ``except Exception`` blocks do not swallow it.
    """

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"terminated by signal {signum}")
