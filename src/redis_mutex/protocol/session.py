"""Transport session: one synchronous connection to the coordinator.

A session sends one command and reads one reply at a time. It is opened
with a bounded number of connect attempts and is never reconnected
afterwards: once a lock may be held, a fresh connection cannot tell
"still held" apart from "lost".
"""

from __future__ import annotations

import contextlib
import logging
import socket
from collections.abc import Callable
from typing import BinaryIO

from redis_mutex.core.config import ConnectionConfig
from redis_mutex.core.constants import CONNECT_RETRY_DELAY_SECONDS
from redis_mutex.core.exceptions import (
    AuthenticationError,
    CommandError,
    ConnectionFailedError,
    CoordinatorError,
    DisconnectError,
    NamespaceError,
    ProtocolError,
)
from redis_mutex.protocol.codec import decode_reply, encode_command
from redis_mutex.protocol.replies import Reply
from redis_mutex.protocol.resilience import retry_with_backoff


def _command_name(args: tuple) -> str:
    name = args[0] if args else ""
    if isinstance(name, bytes):
        name = name.decode("ascii", errors="replace")
    return str(name).upper()


class Session:
    """A single open connection to the coordinator.

    Usage:
        with Session.connect(config) as session:
            reply = session.send("SET", key, token, "NX", "PX", 5000)
    """

    def __init__(self, sock: socket.socket, *, address: str = "", logger: logging.Logger | None = None):
        self._sock = sock
        self._reader: BinaryIO = sock.makefile("rb")
        self.address = address
        self.logger = logger or logging.getLogger(__name__)
        self._closed = False
        self._broken = False

    @classmethod
    def connect(
        cls,
        config: ConnectionConfig,
        *,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> Session:
        """Open a session, retrying the TCP connect, then run the handshake.

        Raises:
            ConnectionFailedError: every connect attempt failed
            AuthenticationError: AUTH was rejected
            NamespaceError: SELECT was rejected
            DisconnectError: the coordinator hung up during the handshake
        """
        log = logger or logging.getLogger(__name__)

        @retry_with_backoff(
            max_attempts=config.max_connect_attempts,
            base_delay=CONNECT_RETRY_DELAY_SECONDS,
            exponential_base=1,
            jitter=False,
            retryable_exceptions=(OSError,),
            logger=log,
            sleep=sleep,
        )
        def open_socket() -> socket.socket:
            return socket.create_connection(
                (config.host, config.port),
                timeout=config.connect_timeout_seconds,
            )

        try:
            sock = open_socket()
        except OSError as e:
            raise ConnectionFailedError(config.host, config.port, config.max_connect_attempts, e) from e

        sock.settimeout(config.socket_timeout_seconds)
        with contextlib.suppress(OSError):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        session = cls(sock, address=config.address, logger=log)
        log.debug(f"Connected to coordinator at {config.address}")
        try:
            session.handshake(config)
        except BaseException:
            session.close(graceful=False)
            raise
        return session

    def handshake(self, config: ConnectionConfig) -> None:
        """Authenticate and select the database, if configured."""
        if config.password:
            auth_args = ("AUTH", config.username, config.password) if config.username else ("AUTH", config.password)
            try:
                self.execute(*auth_args)
            except CommandError as e:
                raise AuthenticationError(e.reply_message) from None
            self.logger.debug("Authenticated with coordinator")

        if config.database is not None:
            try:
                self.execute("SELECT", config.database)
            except CommandError as e:
                raise NamespaceError(config.database, e.reply_message) from None
            self.logger.debug(f"Selected database {config.database}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def healthy(self) -> bool:
        return not self._closed and not self._broken

    def send(self, *args: str | bytes | int) -> Reply:
        """Write one command and read exactly one reply.

        Error replies are returned, not raised.

        Raises:
            DisconnectError: the session is closed, broken, or the stream failed
        """
        command = _command_name(args)
        if self._closed:
            raise DisconnectError("Session is closed", operation=command)
        if self._broken:
            raise DisconnectError("Session was lost earlier and is not reconnected", operation=command)

        frame = encode_command(*args)
        try:
            self._sock.sendall(frame)
        except OSError as e:
            self._broken = True
            raise DisconnectError(operation=command, details=str(e)) from e

        try:
            return decode_reply(self._reader)
        except DisconnectError as e:
            self._broken = True
            if e.operation is None or e.operation.startswith("reading"):
                e.operation = command
            raise
        except ProtocolError:
            # stream position is unknown after a malformed reply
            self._broken = True
            raise
        except BaseException:
            # interrupted mid-read: the reply is left on the stream
            self._broken = True
            raise

    def execute(self, *args: str | bytes | int) -> Reply:
        """Like ``send`` but raise ``CommandError`` on an error reply."""
        reply = self.send(*args)
        if reply.is_error:
            raise CommandError(_command_name(args), reply.error_message or "")
        return reply

    def close(self, graceful: bool = True) -> None:
        """Tear the session down: QUIT (best effort) then close the socket. Idempotent."""
        if self._closed:
            return
        try:
            if graceful and not self._broken:
                try:
                    self.send("QUIT")
                except (CoordinatorError, OSError) as e:
                    self.logger.debug(f"QUIT not acknowledged: {e}")
        finally:
            self._closed = True
            with contextlib.suppress(OSError):
                self._reader.close()
            with contextlib.suppress(OSError):
                self._sock.close()
        self.logger.debug(f"Closed connection to {self.address or 'coordinator'}")

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
