"""Channel session lifecycle.

Sessions live in memory only; a restart starts every channel with a fresh
conversation.
"""

from relay.sessions.errors import (
    BackendUnavailableError,
    ConversationLostError,
    NoSessionError,
    SessionBusyError,
    SessionError,
)
from relay.sessions.manager import SessionManager
from relay.sessions.registry import ChannelSession, SessionRegistry, SessionStats

__all__ = [
    "BackendUnavailableError",
    "ChannelSession",
    "ConversationLostError",
    "NoSessionError",
    "SessionBusyError",
    "SessionError",
    "SessionManager",
    "SessionRegistry",
    "SessionStats",
]
