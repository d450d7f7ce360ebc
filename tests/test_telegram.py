"""Tests for the Telegram provider.

Covers:
- Command parsing and chat naming
- User/chat allowlists and mention stripping
- Membership updates -> channel events
- Send fallbacks for markdown and missing reply targets
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.enums import ChatMemberStatus, ParseMode
from aiogram.exceptions import TelegramBadRequest

from relay.providers.base import OutgoingMessage
from relay.providers.telegram.provider import (
    TelegramProvider,
    _get_parse_mode,
    _truncate,
    chat_display_name,
    parse_command,
)


@pytest.fixture
def provider():
    """Create a Telegram provider with mock bot."""
    with patch("relay.providers.telegram.provider.Bot"):
        provider = TelegramProvider(
            bot_token="test_token",
            allowed_users=["@alice", "42"],
        )
        provider._bot_username = "relaybot"
        yield provider


def make_chat(chat_id=-100123, title=None, username=None, first=None, last=None):
    chat = MagicMock()
    chat.id = chat_id
    chat.title = title
    chat.username = username
    chat.first_name = first
    chat.last_name = last
    chat.type = "supergroup" if title else "private"
    return chat


def make_bad_request(text: str) -> TelegramBadRequest:
    return TelegramBadRequest(method=MagicMock(), message=text)


class TestParseCommand:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("/reset", "reset"),
            ("/status", "status"),
            ("/RESET", "reset"),
            ("/reset@relaybot", "reset"),
            ("/reset now please", "reset"),
            ("/reset@otherbot", None),
            ("/deploy", None),
            ("reset", None),
            ("please /reset", None),
            ("/resetting", None),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_command(text, "relaybot") == expected

    def test_any_target_without_known_username(self):
        assert parse_command("/status@whatever") == "status"


class TestChatDisplayName:
    def test_group_title(self):
        assert chat_display_name(make_chat(title="proj-api")) == "proj-api"

    def test_username(self):
        assert chat_display_name(make_chat(username="alice")) == "alice"

    def test_full_name(self):
        assert chat_display_name(make_chat(first="Ada", last="Lovelace")) == "Ada Lovelace"

    def test_falls_back_to_id(self):
        assert chat_display_name(make_chat(chat_id=7)) == "7"


class TestAuthorization:
    def test_allowed_by_username(self, provider):
        assert provider._is_user_allowed(1, "alice")

    def test_allowed_by_id(self, provider):
        assert provider._is_user_allowed(42, None)

    def test_denied(self, provider):
        assert not provider._is_user_allowed(7, "mallory")

    def test_empty_allowlist_allows_everyone(self):
        with patch("relay.providers.telegram.provider.Bot"):
            open_provider = TelegramProvider(bot_token="t")
        assert open_provider._is_user_allowed(7, None)
        assert open_provider._is_chat_allowed(-1)

    def test_chat_allowlist(self):
        with patch("relay.providers.telegram.provider.Bot"):
            scoped = TelegramProvider(bot_token="t", allowed_chats=["-100123"])
        assert scoped._is_chat_allowed(-100123)
        assert not scoped._is_chat_allowed(-100999)

    def test_bot_messages_skipped(self, provider):
        message = MagicMock()
        message.from_user.is_bot = True
        message.text = "hi"
        assert not provider._should_process_message(message)

    def test_user_message_processed(self, provider):
        message = MagicMock()
        message.from_user.is_bot = False
        message.from_user.id = 1
        message.from_user.username = "alice"
        message.chat.id = -100123
        message.text = "hi"
        assert provider._should_process_message(message)


class TestMessageConversion:
    def test_to_incoming_message(self, provider):
        message = MagicMock()
        message.message_id = 123
        message.chat = make_chat(title="proj-api")
        message.from_user.id = 789
        message.from_user.username = "alice"
        message.from_user.full_name = "Alice A"
        message.message_thread_id = None

        incoming = provider._to_incoming_message(message, "Hello")

        assert incoming.id == "123"
        assert incoming.chat_id == "-100123"
        assert incoming.user_id == "789"
        assert incoming.chat_name == "proj-api"
        assert incoming.username == "alice"
        assert incoming.display_name == "Alice A"
        assert incoming.command is None
        assert incoming.metadata == {"chat_type": "supergroup"}

    def test_command_detected(self, provider):
        message = MagicMock()
        message.chat = make_chat(title="proj-api")
        message.message_thread_id = 5

        incoming = provider._to_incoming_message(message, "/reset@relaybot")

        assert incoming.command == "reset"
        assert incoming.is_command
        assert incoming.metadata["thread_id"] == "5"

    def test_strip_mention(self, provider):
        assert provider._strip_mention("@RelayBot fix the tests") == "fix the tests"
        assert provider._strip_mention("ask @relaybotx") == "ask @relaybotx"


class TestChannelEvents:
    def _update(self, old, new):
        update = MagicMock()
        update.chat = make_chat(title="oc-web")
        update.old_chat_member.status = old
        update.new_chat_member.status = new
        return update

    def test_joined(self, provider):
        event = provider._to_channel_event(
            self._update(ChatMemberStatus.LEFT, ChatMemberStatus.MEMBER)
        )
        assert event is not None
        assert event.kind == "joined"
        assert event.chat_id == "-100123"
        assert event.chat_name == "oc-web"

    def test_removed(self, provider):
        event = provider._to_channel_event(
            self._update(ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.KICKED)
        )
        assert event is not None
        assert event.kind == "removed"

    def test_promotion_is_ignored(self, provider):
        update = self._update(ChatMemberStatus.MEMBER, ChatMemberStatus.ADMINISTRATOR)
        assert provider._to_channel_event(update) is None

    def test_plain_strings_accepted(self, provider):
        event = provider._to_channel_event(self._update("kicked", "member"))
        assert event is not None
        assert event.kind == "joined"


class TestSend:
    @pytest.mark.asyncio
    async def test_sends_markdown_reply(self, provider):
        provider._bot.send_message = AsyncMock(return_value=MagicMock(message_id=555))

        message_id = await provider.send(
            OutgoingMessage(chat_id="-100123", text="*hi*", reply_to_message_id="10")
        )

        assert message_id == "555"
        provider._bot.send_message.assert_awaited_once_with(
            chat_id=-100123,
            text="*hi*",
            reply_to_message_id=10,
            parse_mode=ParseMode.MARKDOWN,
        )

    @pytest.mark.asyncio
    async def test_parse_error_falls_back_to_plain_text(self, provider):
        provider._bot.send_message = AsyncMock(
            side_effect=[
                make_bad_request("Bad Request: can't parse entities"),
                MagicMock(message_id=7),
            ]
        )

        assert await provider.send(OutgoingMessage(chat_id="1", text="a_b")) == "7"

        second = provider._bot.send_message.await_args_list[1]
        assert second.kwargs["parse_mode"] is None

    @pytest.mark.asyncio
    async def test_missing_reply_target_sends_without_reply(self, provider):
        provider._bot.send_message = AsyncMock(
            side_effect=[
                make_bad_request("Bad Request: message to be replied not found"),
                MagicMock(message_id=8),
            ]
        )

        await provider.send(
            OutgoingMessage(chat_id="1", text="x", reply_to_message_id="99")
        )

        second = provider._bot.send_message.await_args_list[1]
        assert "reply_to_message_id" not in second.kwargs

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, provider):
        provider._bot.send_message = AsyncMock(
            side_effect=make_bad_request("Bad Request: chat not found")
        )

        with pytest.raises(TelegramBadRequest):
            await provider.send(OutgoingMessage(chat_id="1", text="x"))

    @pytest.mark.asyncio
    async def test_typing_errors_are_ignored(self, provider):
        provider._bot.send_chat_action = AsyncMock(side_effect=RuntimeError("flood"))
        await provider.send_typing("1")


class TestHelpers:
    def test_parse_mode(self):
        assert _get_parse_mode(None) == ParseMode.MARKDOWN
        assert _get_parse_mode("markdown-v2") == ParseMode.MARKDOWN_V2
        assert _get_parse_mode("html") == ParseMode.HTML
        assert _get_parse_mode("bogus") == ParseMode.MARKDOWN

    def test_truncate(self):
        assert _truncate("short") == "short"
        assert _truncate("line one\nline two") == "line one..."
        assert _truncate("x" * 300, 10) == "x" * 10 + "..."
