"""Scoped conversion of termination signals into exceptions.

Inside a ``TerminationGuard`` block, SIGTERM and SIGHUP raise
``TerminationSignal`` in the main thread, so pending ``finally`` blocks
(lock release, session teardown) run before the process exits. Previous
handlers are restored when the block ends.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading
from collections.abc import Iterator
from types import FrameType

from redis_mutex.core.exceptions import TerminationSignal

TERMINATION_SIGNALS: tuple[int, ...] = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig is not None
)


class TerminationGuard:
    """Context manager that turns termination signals into ``TerminationSignal``.

    Usage:
        with TerminationGuard() as guard:
            acquire()
            try:
                run()
            finally:
                with guard.shielded():
                    release()

    A signal delivered while ``shielded()`` is active is remembered and
    raised once the shielded block exits.
    """

    def __init__(self, signals: tuple[int, ...] = TERMINATION_SIGNALS, logger: logging.Logger | None = None):
        self.signals = signals
        self.logger = logger or logging.getLogger(__name__)
        self._previous: dict[int, object] = {}
        self._installed = False
        self._shield_depth = 0
        self._pending: int | None = None

    @property
    def installed(self) -> bool:
        return self._installed

    def __enter__(self) -> TerminationGuard:
        if threading.current_thread() is not threading.main_thread():
            self.logger.debug("Not in main thread; termination signals left untouched")
            return self
        for signum in self.signals:
            self._previous[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle)
        self._installed = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self._installed:
            return
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()
        self._installed = False

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        del frame
        if self._shield_depth > 0:
            if self._pending is None:
                self._pending = signum
            return
        raise TerminationSignal(signum)

    @contextlib.contextmanager
    def shielded(self) -> Iterator[None]:
        """Defer termination signals until the wrapped block completes."""
        self._shield_depth += 1
        try:
            yield
        finally:
            self._shield_depth -= 1
        if self._shield_depth == 0 and self._pending is not None:
            signum, self._pending = self._pending, None
            raise TerminationSignal(signum)
