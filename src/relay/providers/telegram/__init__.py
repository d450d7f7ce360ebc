"""Telegram provider."""

from relay.providers.telegram.provider import TelegramProvider

__all__ = [
    "TelegramProvider",
]
