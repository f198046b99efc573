"""Core module - Foundation components with no internal dependencies.

This module provides the basic building blocks used throughout the application:
- Version information
- Custom exceptions
- Configuration dataclasses and validation
- Constants and defaults
- Logging, console colors and signal handling
"""

from redis_mutex.core.version import __version__

from redis_mutex.core.exceptions import (
    MutexError,
    ConfigurationError,
    CoordinatorError,
    ConnectionFailedError,
    DisconnectError,
    ProtocolError,
    CommandError,
    AuthenticationError,
    NamespaceError,
    LockStateError,
    TerminationSignal,
)

from redis_mutex.core.config import (
    ConnectionConfig,
    LockConfig,
    LogConfig,
    RunConfig,
)

__all__ = [
    "__version__",
    "MutexError",
    "ConfigurationError",
    "CoordinatorError",
    "ConnectionFailedError",
    "DisconnectError",
    "ProtocolError",
    "CommandError",
    "AuthenticationError",
    "NamespaceError",
    "LockStateError",
    "TerminationSignal",
    "ConnectionConfig",
    "LockConfig",
    "LogConfig",
    "RunConfig",
]
