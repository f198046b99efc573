"""CLI module - Command-line interface components."""

from redis_mutex.cli.main import main, run
from redis_mutex.cli.parser import build_parser, parse_arguments

__all__ = [
    "build_parser",
    "main",
    "parse_arguments",
    "run",
]
