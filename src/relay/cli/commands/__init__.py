"""CLI command modules."""

from relay.cli.commands import config, health, serve

__all__ = [
    "config",
    "health",
    "serve",
]
