"""Bridge between a chat provider and assistant sessions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from relay.assistant.errors import (
    AssistantClientError,
    AssistantHTTPError,
    AssistantTimeoutError,
    AssistantUnavailableError,
)
from relay.chunker import SAFE_LIMIT, chunk_message
from relay.providers.base import ChannelEvent, IncomingMessage, OutgoingMessage
from relay.sessions.errors import (
    BackendUnavailableError,
    ConversationLostError,
    NoSessionError,
    SessionBusyError,
    SessionError,
)

if TYPE_CHECKING:
    from relay.providers.base import Provider
    from relay.sessions.manager import SessionManager
    from relay.sessions.registry import ChannelSession

logger = logging.getLogger(__name__)

TYPING_INTERVAL = 4.0  # Telegram clears the indicator after ~5s
ERROR_BODY_MAX_LEN = 500

GREETING_TEXT = (
    "🚀 **Relay** - session initialized!\n"
    "Send your messages here to talk to the assistant."
)
EMPTY_REPLY_TEXT = "_The assistant returned an empty reply._"
REPLY_FAILED_TEXT = "⚠️ Part of the reply could not be delivered."


def render_error(error: Exception) -> str:
    """Render an error as a user-facing chat message."""
    if isinstance(error, SessionBusyError):
        return "⏳ Still working on your previous message. Please wait for it to finish."
    if isinstance(error, NoSessionError):
        return "No active session for this chat. Send your message again to start one."
    if isinstance(error, BackendUnavailableError):
        return "❌ Could not reach the assistant to start a conversation. Is the server running?"
    if isinstance(error, ConversationLostError):
        return "❌ The conversation was lost on the assistant server. Use /reset to start over."
    if isinstance(error, AssistantTimeoutError):
        return (
            "⏱️ The request timed out. The assistant may still be working on it; "
            "check back later or send a follow-up."
        )
    if isinstance(error, AssistantUnavailableError):
        return "❌ The assistant server is unreachable. Is it running?"
    if isinstance(error, AssistantHTTPError):
        body = (error.response or "").strip()
        if len(body) > ERROR_BODY_MAX_LEN:
            body = body[:ERROR_BODY_MAX_LEN] + "..."
        text = f"❌ Assistant error {error.status_code}"
        return f"{text}:\n```\n{body}\n```" if body else text
    if isinstance(error, AssistantClientError):
        return f"❌ Assistant error: {error}"
    return "Sorry, I encountered an error processing your message. Please try again."


def format_session_status(session: ChannelSession | None) -> str:
    if session is None:
        return "No active session for this chat."
    return (
        f"**Session**\n"
        f"- Conversation: `{session.conversation_id}`\n"
        f"- Directory: `{session.working_directory}`\n"
        f"- Messages: {session.message_count}\n"
        f"- Busy: {'yes' if session.is_processing else 'no'}\n"
        f"- Last activity: {session.last_activity_at:%Y-%m-%d %H:%M:%S} UTC"
    )


class Bridge:
    """Routes chat events into the session manager and replies back.

    Replies are chunked to ``max_length`` and sent in order; the first
    fragment replies to the triggering message.
    """

    def __init__(
        self,
        provider: Provider,
        session_manager: SessionManager,
        max_length: int = SAFE_LIMIT,
        typing_interval: float = TYPING_INTERVAL,
    ) -> None:
        self._provider = provider
        self._sessions = session_manager
        self._max_length = max_length
        self._typing_interval = typing_interval

    @property
    def session_manager(self) -> SessionManager:
        return self._sessions

    async def start(self) -> None:
        """Wire handlers and start the provider (blocks until it stops)."""
        self._provider.set_event_handler(self.handle_channel_event)
        await self._provider.start(self.handle_message)

    async def stop(self) -> None:
        await self._provider.stop()

    async def handle_message(self, message: IncomingMessage) -> None:
        """Handle an inbound chat message."""
        if message.command == "reset":
            await self._handle_reset(message)
            return
        if message.command == "status":
            await self._handle_status(message)
            return

        try:
            await self._sessions.create_session(message.chat_id, message.chat_name)
            async with self._typing(message.chat_id):
                reply = await self._sessions.send_message(
                    message.chat_id, message.text
                )
        except (SessionError, AssistantClientError) as e:
            logger.warning(
                "forward_failed",
                extra={
                    "chat_id": message.chat_id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            await self._send_text(message.chat_id, render_error(e), message.id)
            return
        except Exception as e:
            logger.exception("Error handling message")
            await self._send_text(message.chat_id, render_error(e), message.id)
            return

        await self.send_reply(message.chat_id, reply, reply_to=message.id)

    async def send_reply(
        self, chat_id: str, text: str, *, reply_to: str | None = None
    ) -> list[str]:
        """Chunk and send a reply, returning the sent message IDs.

        A fragment that fails to send is logged and skipped; the remaining
        fragments are still sent, followed by a notice to the chat.
        """
        fragments = chunk_message(text, self._max_length)
        if not fragments:
            fragments = [EMPTY_REPLY_TEXT]

        sent_ids: list[str] = []
        failed = 0
        for i, fragment in enumerate(fragments):
            try:
                sent_ids.append(
                    await self._send_text(
                        chat_id, fragment, reply_to if i == 0 else None
                    )
                )
            except Exception:
                failed += 1
                logger.exception(
                    "reply_fragment_failed",
                    extra={
                        "chat_id": chat_id,
                        "fragment": i,
                        "fragments": len(fragments),
                    },
                )

        if failed:
            try:
                await self._send_text(chat_id, REPLY_FAILED_TEXT, reply_to)
            except Exception:
                logger.exception(
                    "reply_failure_notice_failed", extra={"chat_id": chat_id}
                )
            return sent_ids
        logger.debug(
            "reply_sent",
            extra={"chat_id": chat_id, "fragments": len(fragments), "chars": len(text)},
        )
        return sent_ids

    async def handle_channel_event(self, event: ChannelEvent) -> None:
        """Create a session when the bot joins a chat, delete it on removal."""
        if event.kind == "removed":
            await self._sessions.delete_session(event.chat_id)
            return

        try:
            await self._sessions.create_session(event.chat_id, event.chat_name)
        except BackendUnavailableError as e:
            await self._send_text(event.chat_id, render_error(e))
            return
        await self._send_text(event.chat_id, GREETING_TEXT)

    async def _handle_reset(self, message: IncomingMessage) -> None:
        session = self._sessions.get_session(message.chat_id)
        working_directory = session.working_directory if session else None
        await self._sessions.delete_session(message.chat_id)
        try:
            await self._sessions.create_session(
                message.chat_id, message.chat_name, working_directory
            )
        except BackendUnavailableError as e:
            await self._send_text(message.chat_id, render_error(e), message.id)
            return
        await self._send_text(
            message.chat_id, "🔄 Started a fresh conversation.", message.id
        )

    async def _handle_status(self, message: IncomingMessage) -> None:
        stats = self._sessions.get_stats()
        text = (
            f"{format_session_status(self._sessions.get_session(message.chat_id))}\n\n"
            f"**Bridge**\n"
            f"- Sessions: {stats.total}\n"
            f"- In flight: {stats.processing}\n"
            f"- Messages forwarded: {stats.total_messages}"
        )
        await self._send_text(message.chat_id, text, message.id)

    async def _send_text(
        self, chat_id: str, text: str, reply_to: str | None = None
    ) -> str:
        return await self._provider.send(
            OutgoingMessage(chat_id=chat_id, text=text, reply_to_message_id=reply_to)
        )

    @contextlib.asynccontextmanager
    async def _typing(self, chat_id: str) -> AsyncIterator[None]:
        """Keep the typing indicator alive while the body runs."""
        task = asyncio.create_task(self._typing_loop(chat_id))
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _typing_loop(self, chat_id: str) -> None:
        while True:
            await self._provider.send_typing(chat_id)
            await asyncio.sleep(self._typing_interval)
