"""Wire codec for the coordinator protocol.

Requests are arrays of bulk strings::

    *<argc>\\r\\n$<len>\\r\\n<arg>\\r\\n ...

Replies are decoded one at a time from a buffered binary stream by reading
one CRLF-terminated header line and dispatching on its type tag.
"""

from __future__ import annotations

from typing import Protocol

from redis_mutex.core.exceptions import DisconnectError, ProtocolError
from redis_mutex.protocol.replies import Reply, ReplyKind

CRLF = b"\r\n"
ARRAY_TAG = b"*"
ENCODING = "utf-8"

# Guards against a corrupt length header asking for an absurd read.
MAX_BULK_LENGTH = 512 * 1024 * 1024


class ReplyStream(Protocol):
    """Minimal binary reader interface (``socket.makefile('rb')``, ``io.BytesIO``)."""

    def readline(self, size: int = -1, /) -> bytes: ...

    def read(self, size: int = -1, /) -> bytes: ...


def _to_bytes(arg: str | bytes | int) -> bytes:
    if isinstance(arg, bytes):
        return arg
    if isinstance(arg, bool):
        raise ProtocolError(f"Unsupported argument type: {type(arg).__name__}")
    if isinstance(arg, int):
        return str(arg).encode("ascii")
    if isinstance(arg, str):
        return arg.encode(ENCODING)
    raise ProtocolError(f"Unsupported argument type: {type(arg).__name__}")


def encode_command(*args: str | bytes | int) -> bytes:
    """Encode one command as an array of bulk strings."""
    if not args:
        raise ProtocolError("Cannot encode an empty command")
    parts = [b"*%d\r\n" % len(args)]
    for arg in args:
        payload = _to_bytes(arg)
        parts.append(b"$%d\r\n" % len(payload))
        parts.append(payload)
        parts.append(CRLF)
    return b"".join(parts)


def _read_line(stream: ReplyStream) -> bytes:
    try:
        line = stream.readline()
    except OSError as e:
        raise DisconnectError(operation="reading reply", details=str(e)) from e
    if not line:
        raise DisconnectError("Coordinator closed the connection", operation="reading reply")
    if not line.endswith(b"\n"):
        # readline() only stops short of a newline at end of stream
        raise DisconnectError("Coordinator closed the connection mid-reply", operation="reading reply")
    if not line.endswith(CRLF):
        raise ProtocolError("Reply line not terminated by CRLF", details=repr(line))
    return line[:-2]


def _read_exact(stream: ReplyStream, size: int) -> bytes:
    try:
        data = stream.read(size)
    except OSError as e:
        raise DisconnectError(operation="reading bulk payload", details=str(e)) from e
    if data is None or len(data) < size:
        raise DisconnectError("Coordinator closed the connection mid-reply", operation="reading bulk payload")
    return data


def _parse_int(raw: bytes, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ProtocolError(f"Malformed {what}", details=repr(raw)) from None


def _decode_text(raw: bytes) -> str:
    return raw.decode(ENCODING, errors="replace")


def decode_reply(stream: ReplyStream) -> Reply:
    """Read exactly one reply from stream.

    Raises:
        DisconnectError: the stream ended or failed before a full reply was read
        ProtocolError: the reply is malformed or of an unsupported type (arrays)
    """
    line = _read_line(stream)
    if not line:
        raise ProtocolError("Empty reply header")

    tag, body = line[:1], line[1:]
    if tag == ARRAY_TAG:
        raise ProtocolError("Array replies are not supported", details=_decode_text(line))

    try:
        kind = ReplyKind(_decode_text(tag))
    except ValueError:
        raise ProtocolError("Unknown reply type", details=repr(line)) from None

    if kind is ReplyKind.STATUS:
        return Reply.status(_decode_text(body))
    if kind is ReplyKind.ERROR:
        return Reply.error(_decode_text(body))
    if kind is ReplyKind.INTEGER:
        return Reply.integer(_parse_int(body, "integer reply"))

    length = _parse_int(body, "bulk length")
    if length < 0:
        return Reply.null()
    if length > MAX_BULK_LENGTH:
        raise ProtocolError("Bulk reply too large", details=str(length))
    # payload plus its trailing CRLF; for length 0 this is just the CRLF
    data = _read_exact(stream, length + 2)
    if data[-2:] != CRLF:
        raise ProtocolError("Bulk reply missing CRLF terminator")
    return Reply.bulk(_decode_text(data[:-2]))
