"""Typed coordinator replies.

The subset of the wire protocol used here has four reply shapes. Arrays
are never expected and are rejected by the decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReplyKind(Enum):
    """Type tag of a decoded reply."""

    STATUS = "+"
    ERROR = "-"
    INTEGER = ":"
    BULK = "$"


@dataclass(frozen=True)
class Reply:
    """Immutable decoded reply.

    ``value`` is a str for STATUS and ERROR, an int for INTEGER, and a str or
    None for BULK. A BULK with value None is the protocol's null reply, which
    is distinct from an empty bulk string.
    """

    kind: ReplyKind
    value: str | int | None

    @classmethod
    def status(cls, text: str) -> Reply:
        return cls(ReplyKind.STATUS, text)

    @classmethod
    def error(cls, text: str) -> Reply:
        return cls(ReplyKind.ERROR, text)

    @classmethod
    def integer(cls, number: int) -> Reply:
        return cls(ReplyKind.INTEGER, number)

    @classmethod
    def bulk(cls, payload: str | None) -> Reply:
        return cls(ReplyKind.BULK, payload)

    @classmethod
    def null(cls) -> Reply:
        return cls(ReplyKind.BULK, None)

    @property
    def is_error(self) -> bool:
        return self.kind is ReplyKind.ERROR

    @property
    def is_null(self) -> bool:
        return self.kind is ReplyKind.BULK and self.value is None

    @property
    def error_message(self) -> str | None:
        return str(self.value) if self.is_error else None
