"""Configuration models using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator

from relay.assistant.client import (
    DEFAULT_BASE_URL,
    DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_TIMEOUT,
)
from relay.chunker import SAFE_LIMIT, TELEGRAM_MESSAGE_LIMIT
from relay.sessions.manager import DEFAULT_CHANNEL_PREFIXES, DEFAULT_TITLE_TEMPLATE


class TelegramConfig(BaseModel):
    """Configuration for Telegram provider."""

    bot_token: SecretStr | None = None
    # Usernames (with @) or numeric ids; empty = everyone
    allowed_users: list[str] = []
    allowed_chats: list[str] = []


class AssistantConfig(BaseModel):
    """Configuration for the assistant server connection."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    agent: str | None = None
    system_prompt: str | None = None
    # Startup wait for the server
    wait_attempts: int = 10
    wait_interval: float = 2.0

    @field_validator("timeout", "health_timeout", "wait_interval")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class SessionsConfig(BaseModel):
    """Configuration for channel sessions."""

    default_working_directory: Path = Field(default_factory=Path.home)
    channel_prefixes: list[str] = list(DEFAULT_CHANNEL_PREFIXES)
    title_template: str = DEFAULT_TITLE_TEMPLATE

    @field_validator("default_working_directory")
    @classmethod
    def _expand(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("title_template")
    @classmethod
    def _has_name(cls, value: str) -> str:
        if "{name}" not in value:
            raise ValueError("title_template must contain {name}")
        return value


class ChunkingConfig(BaseModel):
    """Configuration for outbound message chunking."""

    max_length: int = SAFE_LIMIT

    @field_validator("max_length")
    @classmethod
    def _within_platform_limit(cls, value: int) -> int:
        if not 0 < value <= TELEGRAM_MESSAGE_LIMIT:
            raise ValueError(
                f"max_length must be between 1 and {TELEGRAM_MESSAGE_LIMIT}"
            )
        return value


class SentryConfig(BaseModel):
    """Configuration for Sentry error reporting."""

    dsn: SecretStr | None = None
    environment: str = "production"
    release: str | None = None
    traces_sample_rate: float = 0.0
    send_default_pii: bool = False
    debug: bool = False


class ConfigError(Exception):
    """Configuration error."""

    pass


class RelayConfig(BaseModel):
    """Root configuration model."""

    telegram: TelegramConfig | None = None
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    sentry: SentryConfig | None = None

    def require_bot_token(self) -> SecretStr:
        """Get the Telegram bot token.

        Raises:
            ConfigError: If no token is configured.
        """
        if self.telegram is None or self.telegram.bot_token is None:
            raise ConfigError(
                "No Telegram bot token configured. "
                "Set [telegram].bot_token or TELEGRAM_BOT_TOKEN"
            )
        return self.telegram.bot_token
