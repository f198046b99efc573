"""Wait indicator shown while another process holds the lock."""

from __future__ import annotations

import sys
from typing import TextIO

from tqdm import tqdm


class WaitProgress:
    """tqdm bar fed from the acquisition loop's ``on_wait`` hook.

    The bar is created lazily on the first contended poll, so uncontended
    runs print nothing. Disabled when quiet or when stderr is not a TTY.
    """

    def __init__(self, key: str, timeout_seconds: int, *, disable: bool = False, file: TextIO | None = None):
        self.key = key
        self.timeout_seconds = timeout_seconds
        self.file = file or sys.stderr
        isatty = getattr(self.file, "isatty", None)
        self.disabled = disable or not (isatty is not None and isatty())
        self._bar: tqdm | None = None

    def update(self, elapsed: float) -> None:
        if self.disabled:
            return
        if self._bar is None:
            self._bar = tqdm(
                total=self.timeout_seconds or None,
                desc=f"Waiting for lock '{self.key}'",
                unit="s",
                file=self.file,
                leave=False,
                dynamic_ncols=True,
            )
        target = min(elapsed, self.timeout_seconds) if self.timeout_seconds else elapsed
        delta = target - self._bar.n
        if delta > 0:
            self._bar.update(delta)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def __enter__(self) -> WaitProgress:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
