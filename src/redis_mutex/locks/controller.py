"""Lock controller: acquisition state machine and ownership-checked release.

States::

    IDLE -> TRYING -> HELD -> RELEASED
                   -> TIMED_OUT
                   -> FATAL

Acquisition polls a conditional set (``SET key token NX PX ttl``) at a
constant interval. Release is a single server-side compare-and-delete, so
a holder whose TTL lapsed can never delete a lock that another process
has since acquired.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from redis_mutex.core.config import LockConfig
from redis_mutex.core.constants import RELEASE_SCRIPT
from redis_mutex.core.exceptions import CommandError, CoordinatorError, LockStateError
from redis_mutex.locks.identity import LockIdentity
from redis_mutex.protocol.replies import ReplyKind
from redis_mutex.protocol.session import Session


class LockState(Enum):
    """Lifecycle states of one lock controller."""

    IDLE = "idle"
    TRYING = "trying"
    HELD = "held"
    TIMED_OUT = "timed_out"
    FATAL = "fatal"
    RELEASED = "released"


@dataclass(frozen=True)
class AcquireResult:
    """Outcome of ``LockController.acquire``.

    Attributes:
        acquired: True when the lock is held
        state: Final state (HELD or TIMED_OUT)
        waited_seconds: Time spent between the first attempt and the outcome
        attempts: Number of conditional-set commands sent
    """

    acquired: bool
    state: LockState
    waited_seconds: float
    attempts: int


class LockController:
    """Acquire and release one lock over an established session."""

    def __init__(
        self,
        session: Session,
        identity: LockIdentity,
        config: LockConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        shield: Callable[[], contextlib.AbstractContextManager[None]] = contextlib.nullcontext,
        logger: logging.Logger | None = None,
    ):
        self.session = session
        self.identity = identity
        self.config = config
        self._clock = clock
        self._sleep = sleep
        self._shield = shield
        self.logger = logger or logging.getLogger(__name__)
        self.state = LockState.IDLE
        # set while a conditional set may have been applied but its outcome is not recorded
        self._set_pending = False

    @property
    def held(self) -> bool:
        return self.state is LockState.HELD

    def acquire(self, on_wait: Callable[[float], None] | None = None) -> AcquireResult:
        """Poll until the lock is held or the acquire timeout elapses.

        Args:
            on_wait: Called with the elapsed seconds after every contended poll

        Returns:
            AcquireResult; ``acquired`` is False only on timeout

        Raises:
            CommandError: the coordinator answered the conditional set with an error
            DisconnectError: the session was lost; polling stops immediately
            LockStateError: acquire was already called on this controller
        """
        if self.state is not LockState.IDLE:
            raise LockStateError(f"Cannot acquire from state {self.state.value}")

        key = self.identity.key
        timeout = self.config.acquire_timeout_seconds
        interval = self.config.poll_interval_seconds
        self.state = LockState.TRYING
        start = self._clock()
        elapsed = 0.0
        attempts = 0

        while True:
            attempts += 1
            if self._try_set():
                self.logger.info(
                    f"Acquired lock '{key}' after {elapsed:.2f}s ({attempts} attempt(s), ttl {self.config.ttl_seconds}s)"
                )
                return AcquireResult(True, LockState.HELD, elapsed, attempts)

            if attempts == 1:
                self.logger.info(f"Lock '{key}' is held by another owner; waiting")
            else:
                self.logger.debug(f"Lock '{key}' still held (attempt {attempts}, {elapsed:.2f}s elapsed)")

            self._sleep(interval)
            elapsed = self._clock() - start
            if on_wait is not None:
                on_wait(elapsed)

            if timeout > 0 and elapsed >= timeout:
                self.state = LockState.TIMED_OUT
                self.logger.error(f"Timed out after {elapsed:.2f}s waiting for lock '{key}' ({attempts} attempt(s))")
                return AcquireResult(False, LockState.TIMED_OUT, elapsed, attempts)

    def _try_set(self) -> bool:
        """Send one conditional set and record its outcome; True when now HELD.

        The round trip runs inside ``shield`` so a termination signal cannot
        land between the server applying the set and the state change.
        """
        with self._shield():
            self._set_pending = True
            try:
                reply = self.session.send(
                    "SET", self.identity.key, self.identity.token, "NX", "PX", self.config.ttl_milliseconds
                )
            except CoordinatorError:
                self._set_pending = False
                self.state = LockState.FATAL
                raise

            if reply.kind is ReplyKind.ERROR:
                self._set_pending = False
                self.state = LockState.FATAL
                raise CommandError("SET", reply.error_message or "")

            if reply.is_null:
                self._set_pending = False
                return False
            self.state = LockState.HELD
            self._set_pending = False
            return True

    def release(self) -> bool | None:
        """Delete the lock key only if it still holds this run's token.

        Attempted once; failures are logged and never raised. Also attempted
        when acquisition was interrupted after a conditional set was sent but
        before its outcome was recorded, since the set may have taken effect.

        Returns:
            True if deleted, False if not owned anymore or the release failed,
            None if the lock was not held
        """
        interrupted = self.state is LockState.TRYING and self._set_pending
        if self.state is not LockState.HELD and not interrupted:
            return None

        key = self.identity.key
        if interrupted:
            self.logger.warning(f"Acquisition of lock '{key}' was interrupted; releasing in case it was taken")
        self.state = LockState.RELEASED
        self._set_pending = False
        try:
            reply = self.session.send("EVAL", RELEASE_SCRIPT, 1, key, self.identity.token)
        except (CoordinatorError, OSError) as e:
            self.logger.error(f"Failed to release lock '{key}': {e}")
            return False

        if reply.kind is ReplyKind.ERROR:
            self.logger.error(f"Failed to release lock '{key}': {reply.error_message}")
            return False
        if reply.kind is ReplyKind.INTEGER and reply.value == 1:
            self.logger.info(f"Released lock '{key}'")
            return True

        self.logger.warning(f"Lock '{key}' was no longer held by this process (expired or taken over); left untouched")
        return False
