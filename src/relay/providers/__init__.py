"""Chat providers."""

from relay.providers.base import (
    ChannelEvent,
    ChannelEventHandler,
    IncomingMessage,
    MessageHandler,
    OutgoingMessage,
    Provider,
)
from relay.providers.telegram import TelegramProvider

__all__ = [
    # Base
    "ChannelEvent",
    "ChannelEventHandler",
    "IncomingMessage",
    "MessageHandler",
    "OutgoingMessage",
    "Provider",
    # Telegram
    "TelegramProvider",
]
