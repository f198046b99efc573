"""Lock identity: the key being locked and this run's proof of ownership."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from redis_mutex.core.constants import TOKEN_ALPHABET, TOKEN_LENGTH


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Return a random alphanumeric token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class LockIdentity:
    """Immutable (key, token) pair created once per run.

    The token is excluded from ``repr`` so it never reaches logs or tracebacks.
    """

    key: str
    token: str = field(repr=False)

    @classmethod
    def generate(cls, key: str) -> LockIdentity:
        return cls(key=key, token=generate_token())

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("lock key cannot be empty")
        if len(self.token) < 32 or not self.token.isalnum():
            raise ValueError("lock token must be at least 32 alphanumeric characters")
