"""Guarded execution: run an action while holding the lock.

The release is scheduled on every exit path out of the action: normal
return, an exception, Ctrl-C, or SIGTERM/SIGHUP (converted into
``TerminationSignal`` by ``TerminationGuard``).
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence

from redis_mutex.core.config import ConnectionConfig, RunConfig
from redis_mutex.core.constants import (
    EXIT_COMMAND_NOT_EXECUTABLE,
    EXIT_COMMAND_NOT_FOUND,
    EXIT_FAILURE,
    EXIT_SIGNAL_BASE,
)
from redis_mutex.core.signals import TerminationGuard
from redis_mutex.locks.controller import LockController
from redis_mutex.locks.identity import LockIdentity
from redis_mutex.protocol.session import Session

SessionFactory = Callable[[ConnectionConfig], Session]

# Grace period for the child after forwarding termination
CHILD_TERMINATE_TIMEOUT = 5.0


def returncode_to_exit_status(returncode: int) -> int:
    """Map a subprocess return code to a shell-style exit status."""
    if returncode < 0:
        return EXIT_SIGNAL_BASE + (-returncode)
    return returncode


def run_command(argv: Sequence[str], logger: logging.Logger | None = None) -> int:
    """Run argv with inherited standard streams and return its exit status.

    If waiting is interrupted (Ctrl-C, TerminationSignal), the child is
    terminated before the interruption propagates.
    """
    log = logger or logging.getLogger(__name__)
    try:
        proc = subprocess.Popen(list(argv))
    except FileNotFoundError:
        log.error(f"Command not found: {argv[0]}")
        return EXIT_COMMAND_NOT_FOUND
    except PermissionError:
        log.error(f"Command is not executable: {argv[0]}")
        return EXIT_COMMAND_NOT_EXECUTABLE

    try:
        returncode = proc.wait()
    except BaseException:
        _stop_child(proc, log)
        raise
    return returncode_to_exit_status(returncode)


def _stop_child(proc: subprocess.Popen, log: logging.Logger) -> None:
    if proc.poll() is not None:
        return
    log.warning(f"Stopping command (pid {proc.pid})")
    proc.terminate()
    try:
        proc.wait(timeout=CHILD_TERMINATE_TIMEOUT)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def run_locked(
    config: RunConfig,
    action: Callable[[], int],
    *,
    session_factory: SessionFactory | None = None,
    on_wait: Callable[[float], None] | None = None,
    logger: logging.Logger | None = None,
) -> int:
    """Acquire the lock, run action, and always release.

    Returns:
        The action's exit status, or EXIT_FAILURE if the lock was not
        acquired before the timeout

    Raises:
        ConnectionFailedError, AuthenticationError, NamespaceError: during connect
        CommandError, DisconnectError, ProtocolError: during acquisition
        TerminationSignal, KeyboardInterrupt: after release has run
    """
    log = logger or logging.getLogger(__name__)
    factory = session_factory or (lambda conn: Session.connect(conn, logger=log))
    identity = LockIdentity.generate(config.lock.key)

    with TerminationGuard(logger=log) as termination:
        session = factory(config.connection)
        try:
            controller = LockController(session, identity, config.lock, shield=termination.shielded, logger=log)
            try:
                result = controller.acquire(on_wait=on_wait)
                if not result.acquired:
                    return EXIT_FAILURE
                return action()
            finally:
                # no-op unless the lock is held or a set was interrupted in flight
                with termination.shielded():
                    controller.release()
        finally:
            with termination.shielded():
                session.close()
