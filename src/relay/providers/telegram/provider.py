"""Telegram provider using aiogram."""

from __future__ import annotations

import logging
import re

from aiogram import Bot, Dispatcher, F
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.types import Chat, ChatMemberUpdated
from aiogram.types import Message as TelegramMessage

from relay.providers.base import (
    ChannelEvent,
    ChannelEventHandler,
    IncomingMessage,
    MessageHandler,
    OutgoingMessage,
    Provider,
)

logger = logging.getLogger(__name__)

LOG_PREVIEW_MAX_LEN = 180

BRIDGE_COMMANDS = frozenset({"reset", "status"})

_PRESENT_STATUSES = frozenset({"creator", "administrator", "member", "restricted"})
_ABSENT_STATUSES = frozenset({"left", "kicked"})

_COMMAND_RE = re.compile(r"^/(?P<name>[A-Za-z0-9_]+)(?:@(?P<bot>\S+))?(?:\s|$)")

HELP_TEXT = (
    "**Relay** forwards this chat to the assistant.\n\n"
    "- Send any message to talk to it\n"
    "- /reset starts a fresh conversation\n"
    "- /status shows the current session\n"
)


def _get_parse_mode(mode: str | None) -> ParseMode:
    """Convert a parse mode string to ParseMode enum."""
    if not mode:
        return ParseMode.MARKDOWN
    normalized = mode.upper().replace("-", "_")
    try:
        return ParseMode[normalized]
    except KeyError:
        logger.warning("unknown_parse_mode", extra={"telegram.parse_mode": mode})
        return ParseMode.MARKDOWN


def _truncate(text: str, max_len: int = LOG_PREVIEW_MAX_LEN) -> str:
    """Truncate text for logging (first line only, max length)."""
    first_line, *rest = text.split("\n", 1)
    truncated = len(first_line) > max_len or bool(rest)
    return first_line[:max_len] + "..." if truncated else first_line


def _status_value(status: object) -> str:
    """Plain string for a ChatMemberStatus enum or literal."""
    return str(getattr(status, "value", status))


def parse_command(text: str, bot_username: str | None = None) -> str | None:
    """Return the bridge command name in text, or None.

    Commands addressed to another bot (``/reset@otherbot``) are ignored.
    """
    match = _COMMAND_RE.match(text.strip())
    if not match:
        return None
    name = match.group("name").lower()
    target = match.group("bot")
    if target and bot_username and target.lower() != bot_username.lower():
        return None
    return name if name in BRIDGE_COMMANDS else None


def chat_display_name(chat: Chat) -> str:
    """Human-readable chat name used as the channel name."""
    if chat.title:
        return chat.title
    if chat.username:
        return chat.username
    names = [n for n in (chat.first_name, chat.last_name) if n]
    return " ".join(names) if names else str(chat.id)


class TelegramProvider(Provider):
    """Telegram provider using aiogram 3.x."""

    def __init__(
        self,
        bot_token: str,
        allowed_users: list[str] | None = None,
        allowed_chats: list[str] | None = None,
    ):
        self._token = bot_token
        self._allowed_users = set(allowed_users or [])
        self._allowed_chats = set(allowed_chats or [])

        self._bot = Bot(
            token=bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN),
        )
        self._dp = Dispatcher()
        self._handler: MessageHandler | None = None
        self._event_handler: ChannelEventHandler | None = None
        self._running = False
        self._bot_username: str | None = None

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def bot(self) -> Bot:
        return self._bot

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dp

    @property
    def bot_username(self) -> str | None:
        return self._bot_username

    def set_event_handler(self, handler: ChannelEventHandler) -> None:
        self._event_handler = handler

    def _is_user_allowed(self, user_id: int, username: str | None) -> bool:
        if not self._allowed_users:
            return True
        return str(user_id) in self._allowed_users or (
            username is not None and f"@{username}" in self._allowed_users
        )

    def _is_chat_allowed(self, chat_id: int) -> bool:
        if not self._allowed_chats:
            return True
        return str(chat_id) in self._allowed_chats

    def _strip_mention(self, text: str) -> str:
        if not self._bot_username:
            return text
        pattern = rf"@{re.escape(self._bot_username)}\b"
        return re.sub(pattern, "", text, flags=re.IGNORECASE).strip()

    def _should_process_message(self, message: TelegramMessage) -> bool:
        """Check allowlists and log the decision for every incoming message."""
        skip_reason: str | None = None
        user = message.from_user

        if user is None or user.is_bot:
            skip_reason = "no_user_or_bot"
        elif not self._is_chat_allowed(message.chat.id):
            skip_reason = "chat_not_allowed"
        elif not self._is_user_allowed(user.id, user.username):
            skip_reason = "user_not_allowed"

        logger.info(
            "incoming_message",
            extra={
                "external_id": str(message.message_id),
                "chat_id": str(message.chat.id),
                "user_id": str(user.id) if user else None,
                "chat_type": message.chat.type,
                "was_processed": skip_reason is None,
                "skip_reason": skip_reason,
                "input.preview": _truncate(message.text or ""),
            },
        )
        return skip_reason is None

    def _to_incoming_message(
        self, message: TelegramMessage, text: str
    ) -> IncomingMessage:
        """Convert a Telegram message to an IncomingMessage."""
        user = message.from_user
        metadata: dict[str, str] = {"chat_type": message.chat.type}
        if message.message_thread_id is not None:
            metadata["thread_id"] = str(message.message_thread_id)

        return IncomingMessage(
            id=str(message.message_id),
            chat_id=str(message.chat.id),
            user_id=str(user.id) if user else "",
            text=text,
            chat_name=chat_display_name(message.chat),
            username=user.username if user else None,
            display_name=user.full_name if user else None,
            command=parse_command(text, self._bot_username),
            metadata=metadata,
            timestamp=message.date,
        )

    def _to_channel_event(self, update: ChatMemberUpdated) -> ChannelEvent | None:
        """Map a change of the bot's own membership to a ChannelEvent."""
        old_status = _status_value(update.old_chat_member.status)
        new_status = _status_value(update.new_chat_member.status)
        kind = None
        if old_status in _ABSENT_STATUSES and new_status in _PRESENT_STATUSES:
            kind = "joined"
        elif old_status in _PRESENT_STATUSES and new_status in _ABSENT_STATUSES:
            kind = "removed"
        if kind is None:
            return None
        return ChannelEvent(
            chat_id=str(update.chat.id),
            chat_name=chat_display_name(update.chat),
            kind=kind,
        )

    async def start(self, handler: MessageHandler) -> None:
        """Start the Telegram bot."""
        self._handler = handler
        self._setup_handlers()

        try:
            bot_info = await self._bot.get_me()
            self._bot_username = bot_info.username
            logger.info(
                "bot_username_resolved",
                extra={"telegram.bot_username": self._bot_username},
            )
        except Exception as e:
            logger.warning("bot_info_failed", extra={"error.message": str(e)})

        self._running = True

        logger.info("telegram_bot_starting")
        await self._bot.delete_webhook(drop_pending_updates=False)
        # Let the app handle SIGINT/SIGTERM
        await self._dp.start_polling(
            self._bot,
            handle_signals=False,
            close_bot_session=False,
            allowed_updates=["message", "my_chat_member"],
        )

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        if not self._running:
            return
        self._running = False

        try:
            await self._dp.stop_polling()
        except Exception as e:
            logger.debug(f"Error stopping polling: {e}")

        try:
            await self._bot.session.close()
        except Exception as e:
            logger.debug(f"Error closing bot session: {e}")

        logger.info("telegram_bot_stopped")

    def _setup_handlers(self) -> None:
        """Set up handlers on the dispatcher."""

        @self._dp.message(Command("start", "help"))
        async def handle_help(message: TelegramMessage) -> None:
            if not self._should_process_message(message):
                return
            await message.answer(HELP_TEXT)

        @self._dp.message(F.text)
        async def handle_message(message: TelegramMessage) -> None:
            if not message.text or not self._should_process_message(message):
                return

            is_group = message.chat.type in ("group", "supergroup")
            text = self._strip_mention(message.text) if is_group else message.text
            if not text:
                return

            if self._handler:
                try:
                    await self._handler(self._to_incoming_message(message, text))
                except Exception:
                    logger.exception("Error handling message")

        @self._dp.my_chat_member()
        async def handle_membership(update: ChatMemberUpdated) -> None:
            if not self._is_chat_allowed(update.chat.id):
                return
            event = self._to_channel_event(update)
            if event is None or self._event_handler is None:
                return
            logger.info(
                "channel_event",
                extra={"chat_id": event.chat_id, "event.kind": event.kind},
            )
            try:
                await self._event_handler(event)
            except Exception:
                logger.exception("Error handling channel event")

    async def send(self, message: OutgoingMessage) -> str:
        """Send a single message with plain-text fallback on parse errors."""
        parse_mode = _get_parse_mode(message.parse_mode)
        chat_id = int(message.chat_id)
        reply_to = (
            int(message.reply_to_message_id) if message.reply_to_message_id else None
        )

        try:
            sent = await self._bot.send_message(
                chat_id=chat_id,
                text=message.text,
                reply_to_message_id=reply_to,
                parse_mode=parse_mode,
            )
        except TelegramBadRequest as e:
            error_msg = str(e).lower()
            if "can't parse" in error_msg:
                logger.debug(f"Markdown parsing failed, sending as plain text: {e}")
                sent = await self._bot.send_message(
                    chat_id=chat_id,
                    text=message.text,
                    reply_to_message_id=reply_to,
                    parse_mode=None,
                )
            elif (
                "message to be replied not found" in error_msg and reply_to is not None
            ):
                logger.debug(f"Reply target not found, sending without reply: {e}")
                sent = await self._bot.send_message(
                    chat_id=chat_id,
                    text=message.text,
                    parse_mode=parse_mode,
                )
            else:
                raise

        logger.debug(
            "Sent message to chat %s: %s", message.chat_id, _truncate(message.text)
        )
        return str(sent.message_id)

    async def send_typing(self, chat_id: str) -> None:
        try:
            await self._bot.send_chat_action(chat_id=int(chat_id), action="typing")
        except Exception as e:
            logger.debug(f"Failed to send typing action: {e}")
