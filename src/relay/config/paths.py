"""Centralized path management for Relay.

All local state (config, logs) lives under a single base directory.
The base directory can be overridden with the RELAY_HOME environment variable.

Default locations:
- Linux/macOS: ~/.relay
- Windows: %USERPROFILE%\\.relay
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "RELAY_HOME"


@lru_cache(maxsize=1)
def get_relay_home() -> Path:
    """Get the base directory for all Relay data.

    Resolution order:
    1. RELAY_HOME environment variable (if set)
    2. Platform default (~/.relay)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".relay"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_relay_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the JSONL log directory."""
    return get_relay_home() / "logs"
