"""Configuration module."""

from relay.config.loader import find_config_path, get_default_config, load_config
from relay.config.models import (
    AssistantConfig,
    ChunkingConfig,
    ConfigError,
    RelayConfig,
    SentryConfig,
    SessionsConfig,
    TelegramConfig,
)
from relay.config.paths import get_config_path, get_logs_path, get_relay_home

__all__ = [
    "AssistantConfig",
    "ChunkingConfig",
    "ConfigError",
    "RelayConfig",
    "SentryConfig",
    "SessionsConfig",
    "TelegramConfig",
    "find_config_path",
    "get_config_path",
    "get_default_config",
    "get_logs_path",
    "get_relay_home",
    "load_config",
]
