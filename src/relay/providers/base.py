"""Abstract provider interface for chat platforms."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


@dataclass
class IncomingMessage:
    """Message received from a provider."""

    id: str
    chat_id: str
    user_id: str
    text: str
    chat_name: str
    username: str | None = None
    display_name: str | None = None
    command: str | None = None  # "reset", "status", ... without the slash
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = None

    @property
    def is_command(self) -> bool:
        return self.command is not None


@dataclass
class OutgoingMessage:
    """Message to send via a provider."""

    chat_id: str
    text: str
    reply_to_message_id: str | None = None
    parse_mode: str | None = None


@dataclass
class ChannelEvent:
    """The bot was added to or removed from a chat."""

    chat_id: str
    chat_name: str
    kind: Literal["joined", "removed"]


MessageHandler = Callable[[IncomingMessage], Awaitable[None]]
ChannelEventHandler = Callable[[ChannelEvent], Awaitable[None]]


class Provider(ABC):
    """Abstract interface for chat providers.

    Providers deliver inbound messages and channel lifecycle events and send
    outbound text. They never split text: callers pass fragments that already
    fit the platform limit.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'telegram')."""
        ...

    @abstractmethod
    async def start(self, handler: MessageHandler) -> None:
        """Start the provider and begin receiving messages.

        Args:
            handler: Callback to handle incoming messages.
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the provider and clean up resources."""
        ...

    @abstractmethod
    async def send(self, message: OutgoingMessage) -> str:
        """Send a message.

        Returns:
            Sent message ID.
        """
        ...

    def set_event_handler(self, handler: ChannelEventHandler) -> None:
        """Set the handler for channel lifecycle events."""
        raise NotImplementedError("Provider does not support channel events")

    async def send_typing(self, chat_id: str) -> None:
        """Show a typing indicator, where supported."""
        return None
