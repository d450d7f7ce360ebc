"""Session lifecycle errors."""


class SessionError(Exception):
    """Base error for session operations."""

    def __init__(self, message: str, channel_id: str) -> None:
        super().__init__(message)
        self.channel_id = channel_id


class NoSessionError(SessionError):
    """No session is registered for the channel."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"No session found for channel {channel_id}", channel_id)


class SessionBusyError(SessionError):
    """The channel already has a message in flight."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(
            "Session is currently processing another message. Please wait.",
            channel_id,
        )


class BackendUnavailableError(SessionError):
    """A conversation could not be created or repaired."""


class ConversationLostError(SessionError):
    """The conversation was not found again right after being recreated."""
