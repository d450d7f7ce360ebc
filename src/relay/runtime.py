"""Runtime composition helpers for CLI entrypoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from relay.assistant.client import AssistantClient
from relay.bridge import Bridge
from relay.providers.telegram import TelegramProvider
from relay.sessions import SessionManager, SessionRegistry

if TYPE_CHECKING:
    from relay.config import AssistantConfig, RelayConfig


@dataclass(slots=True)
class BridgeRuntime:
    """Materialized bridge wiring."""

    client: AssistantClient
    session_manager: SessionManager
    provider: TelegramProvider
    bridge: Bridge

    async def close(self) -> None:
        await self.bridge.stop()
        await self.client.close()


def build_assistant_client(config: AssistantConfig) -> AssistantClient:
    return AssistantClient(
        base_url=config.base_url,
        timeout=config.timeout,
        health_timeout=config.health_timeout,
        agent=config.agent,
        system_prompt=config.system_prompt,
    )


def build_bridge_runtime(config: RelayConfig) -> BridgeRuntime:
    """Create the client, session manager, provider and bridge from config.

    Raises:
        ConfigError: If no Telegram bot token is configured.
    """
    token = config.require_bot_token()

    client = build_assistant_client(config.assistant)
    session_manager = SessionManager(
        client,
        registry=SessionRegistry(),
        default_working_directory=config.sessions.default_working_directory,
        channel_prefixes=config.sessions.channel_prefixes,
        title_template=config.sessions.title_template,
    )
    telegram = config.telegram
    provider = TelegramProvider(
        bot_token=token.get_secret_value(),
        allowed_users=telegram.allowed_users if telegram else None,
        allowed_chats=telegram.allowed_chats if telegram else None,
    )
    bridge = Bridge(provider, session_manager, max_length=config.chunking.max_length)
    return BridgeRuntime(
        client=client,
        session_manager=session_manager,
        provider=provider,
        bridge=bridge,
    )
