"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from relay.config.models import RelayConfig
from relay.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.relay/config.toml (or RELAY_HOME)
        Path("/etc/relay/config.toml"),  # System-wide
    ]


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    """Get a config section, creating it if missing."""
    section = config.get(key)
    if section is None:
        section = {}
        config[key] = section
    return section


def _set_from_env(
    config: dict[str, Any],
    parent_key: str,
    key: str,
    env_var: str,
    secret: bool = False,
) -> None:
    """Set a value from environment if not already set in config."""
    value = os.environ.get(env_var)
    if not value:
        return
    section = _section(config, parent_key)
    if section.get(key) is None:
        section[key] = SecretStr(value) if secret else value


def _resolve_env(config: dict[str, Any]) -> dict[str, Any]:
    """Fill unset values from environment variables."""
    mappings = [
        ("telegram", "bot_token", "TELEGRAM_BOT_TOKEN", True),
        ("assistant", "base_url", "OPENCODE_SERVER_URL", False),
        ("sessions", "default_working_directory", "OPENCODE_DEFAULT_PROJECT_PATH", False),
        ("sentry", "dsn", "SENTRY_DSN", True),
    ]
    for parent_key, key, env_var, secret in mappings:
        _set_from_env(config, parent_key, key, env_var, secret=secret)
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> RelayConfig:
    """Load configuration from TOML file and environment.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to environment-only configuration.

    Returns:
        Validated RelayConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If config file is invalid.
    """
    raw_config: dict[str, Any] = {}

    config_path = find_config_path(path)
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    raw_config = _resolve_env(raw_config)

    return RelayConfig.model_validate(raw_config)


def get_default_config() -> RelayConfig:
    """Get a default configuration for development/testing."""
    return RelayConfig()
