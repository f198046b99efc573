"""Coordinator protocol: wire codec, typed replies and the transport session."""

from redis_mutex.protocol.codec import decode_reply, encode_command
from redis_mutex.protocol.replies import Reply, ReplyKind
from redis_mutex.protocol.session import Session

__all__ = [
    "Reply",
    "ReplyKind",
    "Session",
    "decode_reply",
    "encode_command",
]
