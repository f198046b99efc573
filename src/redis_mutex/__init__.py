"""
redis-mutex - run a command while holding a lock in Redis

Mutual exclusion across processes and hosts using a single Redis-compatible
coordinator: SET NX PX to acquire, an atomic compare-and-delete to release.
"""

from redis_mutex.core.version import __version__
from redis_mutex.core.config import ConnectionConfig, LockConfig, RunConfig
from redis_mutex.guard import run_command, run_locked
from redis_mutex.locks import AcquireResult, LockController, LockIdentity, LockState
from redis_mutex.protocol import Reply, ReplyKind, Session

__all__ = [
    "AcquireResult",
    "ConnectionConfig",
    "LockConfig",
    "LockController",
    "LockIdentity",
    "LockState",
    "Reply",
    "ReplyKind",
    "RunConfig",
    "Session",
    "__version__",
    "run_command",
    "run_locked",
]
