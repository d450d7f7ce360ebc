"""Assistant server client."""

from relay.assistant.client import AssistantClient
from relay.assistant.errors import (
    AssistantClientError,
    AssistantHTTPError,
    AssistantNotFoundError,
    AssistantTimeoutError,
    AssistantUnavailableError,
)
from relay.assistant.types import (
    Conversation,
    DecodedReply,
    ReplyPart,
    decode_reply,
    render_reply,
)

__all__ = [
    "AssistantClient",
    "AssistantClientError",
    "AssistantHTTPError",
    "AssistantNotFoundError",
    "AssistantTimeoutError",
    "AssistantUnavailableError",
    "Conversation",
    "DecodedReply",
    "ReplyPart",
    "decode_reply",
    "render_reply",
]
