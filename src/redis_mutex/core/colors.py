"""Console colors for redis-mutex diagnostics.

Provides ANSI color codes for stderr output with auto-detection
of TTY support and the NO_COLOR convention.
"""

import os
import sys


class ConsoleColors:
    """ANSI color codes for diagnostic output.

    Colors are only emitted when stderr is a TTY and NO_COLOR is unset.
    """

    GREEN = "\033[92m"
    RED = "\033[91m"
    RESET = "\033[0m"

    _enabled = sys.stderr.isatty() and "NO_COLOR" not in os.environ and (os.name != "nt" or bool(os.environ.get("TERM")))

    @classmethod
    def configure(cls, no_color: bool = False) -> None:
        """Apply the global color policy (``--no-color`` wins over TTY detection)."""
        if no_color:
            cls._enabled = False

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._enabled

    @classmethod
    def _wrap(cls, code: str, text: str) -> str:
        if cls._enabled:
            return f"{code}{text}{cls.RESET}"
        return text

    @classmethod
    def success(cls, text: str) -> str:
        """Format text as success (green)"""
        return cls._wrap(cls.GREEN, text)

    @classmethod
    def error(cls, text: str) -> str:
        """Format text as error (red)"""
        return cls._wrap(cls.RED, text)
