"""Session manager binding chat channels to assistant conversations."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from relay.assistant.errors import AssistantClientError, AssistantNotFoundError
from relay.sessions.errors import (
    BackendUnavailableError,
    ConversationLostError,
    NoSessionError,
    SessionBusyError,
)
from relay.sessions.registry import ChannelSession, SessionRegistry, SessionStats

if TYPE_CHECKING:
    from relay.assistant.client import AssistantClient

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_PREFIXES = ("opencode", "oc", "project", "proj")
DEFAULT_TITLE_TEMPLATE = "Telegram: #{name}"


class SessionManager:
    """Manages the channel -> conversation lifecycle.

    Provides:
    - Idempotent session creation with working directory resolution
    - Single-flight forwarding per channel (a second caller gets
      :class:`SessionBusyError` instead of waiting)
    - Transparent recreation when the server forgets a conversation
    - Unconditional local cleanup on deletion
    """

    def __init__(
        self,
        client: AssistantClient,
        registry: SessionRegistry | None = None,
        default_working_directory: Path | None = None,
        channel_prefixes: Sequence[str] = DEFAULT_CHANNEL_PREFIXES,
        title_template: str = DEFAULT_TITLE_TEMPLATE,
    ) -> None:
        """Initialize session manager.

        Args:
            client: Assistant server client.
            registry: Session store; a fresh one is created if omitted.
            default_working_directory: Fallback working directory hint.
            channel_prefixes: Channel name prefixes that mark a project name.
            title_template: Conversation title, formatted with ``name``.
        """
        self._client = client
        self._registry = registry if registry is not None else SessionRegistry()
        self._default_working_directory = default_working_directory or Path.home()
        self._title_template = title_template
        self._prefix_re = _compile_prefix_pattern(channel_prefixes)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def default_working_directory(self) -> Path:
        return self._default_working_directory

    def resolve_working_directory(
        self, channel_name: str, override: str | Path | None = None
    ) -> Path:
        """Resolve the working directory hint for a channel.

        Examples (default directory ``~/Dev``):
            - "proj-myapp" -> ~/Dev/myapp
            - "oc_tools" -> ~/Dev/tools
            - "general" -> ~/Dev
        """
        if override:
            return Path(override).expanduser()

        project = self._project_from_channel_name(channel_name)
        if project is None:
            return self._default_working_directory
        return self._default_working_directory / project

    def _project_from_channel_name(self, channel_name: str) -> str | None:
        name = channel_name.strip()
        match = self._prefix_re.match(name)
        if not match:
            return None
        project = re.sub(r"\s+", "-", name[match.end() :].strip())
        if not project or project in (".", "..") or re.search(r"[/\\]", project):
            return None
        return project

    def _title_for(self, channel_name: str) -> str:
        return self._title_template.format(name=channel_name)

    async def create_session(
        self,
        channel_id: str,
        channel_name: str,
        working_directory: str | Path | None = None,
    ) -> ChannelSession:
        """Create a session for a channel, or return the existing one.

        Raises:
            BackendUnavailableError: If the conversation cannot be created.
        """
        existing = self._registry.get(channel_id)
        if existing is not None:
            logger.debug("session_exists", extra={"channel.id": channel_id})
            return existing

        resolved = self.resolve_working_directory(channel_name, working_directory)

        try:
            conversation = await self._client.create_conversation(
                self._title_for(channel_name)
            )
        except AssistantClientError as e:
            logger.error(
                "session_create_failed",
                extra={"channel.id": channel_id, "error.message": str(e)},
            )
            raise BackendUnavailableError(
                f"Could not create a conversation: {e}", channel_id
            ) from e

        # Another caller may have registered the channel while we waited
        existing = self._registry.get(channel_id)
        if existing is not None:
            logger.info(
                "session_create_raced",
                extra={"channel.id": channel_id, "conversation.id": conversation.id},
            )
            await self._delete_remote(conversation.id)
            return existing

        session = ChannelSession(
            channel_id=channel_id,
            conversation_id=conversation.id,
            channel_name=channel_name,
            working_directory=resolved,
        )
        self._registry.add(session)
        logger.info(
            "session_created",
            extra={
                "channel.id": channel_id,
                "channel.name": channel_name,
                "conversation.id": conversation.id,
                "working_directory": str(resolved),
            },
        )
        return session

    def get_session(self, channel_id: str) -> ChannelSession | None:
        return self._registry.get(channel_id)

    def has_session(self, channel_id: str) -> bool:
        return channel_id in self._registry

    async def send_message(self, channel_id: str, text: str) -> str:
        """Forward a message to the channel's conversation and return the reply.

        Raises:
            NoSessionError: If the channel has no session, or it was deleted
                while a vanished conversation was being recreated.
            SessionBusyError: If a message is already in flight for the channel.
            BackendUnavailableError: If the conversation had to be recreated
                and recreation failed.
            ConversationLostError: If the recreated conversation is not found
                either.
            AssistantClientError: Any other client failure, unchanged.
        """
        session = self._registry.get(channel_id)
        if session is None:
            raise NoSessionError(channel_id)
        if session.is_processing:
            raise SessionBusyError(channel_id)

        # Guard is set before the first await; the event loop is single-threaded
        session.is_processing = True
        try:
            try:
                reply = await self._client.send_to_conversation(
                    session.conversation_id, text
                )
            except AssistantNotFoundError:
                await self._recreate_conversation(session)
                try:
                    reply = await self._client.send_to_conversation(
                        session.conversation_id, text
                    )
                except AssistantNotFoundError as e:
                    logger.error(
                        "conversation_lost",
                        extra={
                            "channel.id": channel_id,
                            "conversation.id": session.conversation_id,
                        },
                    )
                    raise ConversationLostError(
                        "Conversation disappeared again right after being recreated",
                        channel_id,
                    ) from e

            session.last_activity_at = datetime.now(UTC)
            session.message_count += 1
            return reply
        finally:
            session.is_processing = False

    async def _recreate_conversation(self, session: ChannelSession) -> None:
        """Swap a vanished conversation for a new one, in place."""
        stale_id = session.conversation_id
        logger.warning(
            "conversation_not_found",
            extra={"channel.id": session.channel_id, "conversation.id": stale_id},
        )
        if self._registry.get(session.channel_id) is not session:
            raise NoSessionError(session.channel_id)

        try:
            conversation = await self._client.create_conversation(
                self._title_for(session.channel_name)
            )
        except AssistantClientError as e:
            # The stale id is unreachable, so the session must not outlive it
            if self._registry.get(session.channel_id) is session:
                self._registry.remove(session.channel_id)
            logger.error(
                "conversation_recreate_failed",
                extra={"channel.id": session.channel_id, "error.message": str(e)},
            )
            raise BackendUnavailableError(
                f"Could not recreate the conversation: {e}", session.channel_id
            ) from e

        # The channel may have been deleted or reset while we waited
        if self._registry.get(session.channel_id) is not session:
            logger.info(
                "conversation_recreate_orphaned",
                extra={
                    "channel.id": session.channel_id,
                    "conversation.id": conversation.id,
                },
            )
            await self._delete_remote(conversation.id)
            raise NoSessionError(session.channel_id)

        session.conversation_id = conversation.id
        logger.info(
            "conversation_recreated",
            extra={
                "channel.id": session.channel_id,
                "conversation.stale_id": stale_id,
                "conversation.id": conversation.id,
            },
        )

    async def delete_session(self, channel_id: str) -> bool:
        """Delete a channel's session.

        The local entry is always removed, even if the server refuses the
        delete.

        Returns:
            False if the channel had no session.
        """
        session = self._registry.get(channel_id)
        if session is None:
            return False

        await self._delete_remote(session.conversation_id)
        self._registry.remove(channel_id)
        logger.info(
            "session_deleted",
            extra={"channel.id": channel_id, "conversation.id": session.conversation_id},
        )
        return True

    async def _delete_remote(self, conversation_id: str) -> None:
        try:
            await self._client.delete_conversation(conversation_id)
        except AssistantClientError as e:
            logger.warning(
                "conversation_delete_failed",
                extra={"conversation.id": conversation_id, "error.message": str(e)},
            )

    def list_sessions(self) -> list[ChannelSession]:
        return list(self._registry)

    def get_stats(self) -> SessionStats:
        return self._registry.stats()

    async def is_server_available(self) -> bool:
        return await self._client.health_check()

    async def wait_for_server(
        self, max_attempts: int = 10, interval: float = 2.0
    ) -> bool:
        return await self._client.wait_for_server(max_attempts, interval)


def _compile_prefix_pattern(prefixes: Sequence[str]) -> re.Pattern[str]:
    # Longest first so "opencode" wins over "oc"
    alternatives = "|".join(
        re.escape(p) for p in sorted(prefixes, key=len, reverse=True)
    )
    return re.compile(rf"^(?:{alternatives})(?:[-_\s]+|$)", re.IGNORECASE)
