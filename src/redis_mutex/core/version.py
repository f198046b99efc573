"""Version information for redis-mutex."""

__version__ = "1.0.0"
