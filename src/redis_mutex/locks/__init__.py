"""Locking subsystem: identity, acquisition state machine and release."""

from redis_mutex.locks.controller import AcquireResult, LockController, LockState
from redis_mutex.locks.identity import LockIdentity, generate_token

__all__ = [
    "AcquireResult",
    "LockController",
    "LockIdentity",
    "LockState",
    "generate_token",
]
