"""In-memory registry of channel sessions."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ChannelSession:
    """Binding between a chat channel and an assistant conversation."""

    channel_id: str
    conversation_id: str
    channel_name: str
    working_directory: Path
    created_at: datetime = field(default_factory=_now)
    last_activity_at: datetime = field(default_factory=_now)
    message_count: int = 0
    is_processing: bool = False


@dataclass
class SessionStats:
    total: int
    processing: int
    total_messages: int


class SessionRegistry:
    """Keyed store of :class:`ChannelSession`, one entry per channel.

    Not thread-safe: it is only touched from the event loop.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChannelSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._sessions

    def __iter__(self) -> Iterator[ChannelSession]:
        return iter(list(self._sessions.values()))

    def get(self, channel_id: str) -> ChannelSession | None:
        return self._sessions.get(channel_id)

    def add(self, session: ChannelSession) -> None:
        """Register a session.

        Raises:
            ValueError: If the channel already has a session or the
                conversation id is empty.
        """
        if not session.conversation_id:
            raise ValueError("conversation_id must not be empty")
        if session.channel_id in self._sessions:
            raise ValueError(f"Channel {session.channel_id} already has a session")
        self._sessions[session.channel_id] = session

    def remove(self, channel_id: str) -> ChannelSession | None:
        return self._sessions.pop(channel_id, None)

    def stats(self) -> SessionStats:
        sessions = list(self._sessions.values())
        return SessionStats(
            total=len(sessions),
            processing=sum(1 for s in sessions if s.is_processing),
            total_messages=sum(s.message_count for s in sessions),
        )
