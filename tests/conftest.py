"""Shared test fixtures and factories."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from relay.assistant.client import AssistantClient
from relay.assistant.types import Conversation
from relay.config.paths import get_relay_home
from relay.sessions import SessionManager, SessionRegistry

RELAY_ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "OPENCODE_SERVER_URL",
    "OPENCODE_DEFAULT_PROJECT_PATH",
    "SENTRY_DSN",
    "RELAY_LOG_LEVEL",
    "RELAY_HOME",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's environment out of config resolution."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_relay_home.cache_clear()
    yield
    get_relay_home.cache_clear()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[telegram]
bot_token = "123456789:test-token-abcdefghijklmnopqrstuvwxyz"
allowed_users = ["@alice"]

[assistant]
base_url = "http://localhost:4096"
timeout = 120

[sessions]
default_working_directory = "/srv/dev"

[chunking]
max_length = 3500
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


# =============================================================================
# Assistant / Session Fixtures
# =============================================================================


class ConversationFactory:
    """Hands out sequential conversation ids."""

    def __init__(self) -> None:
        self.created: list[str] = []

    def __call__(self, title: str) -> Conversation:
        conversation_id = f"conv-{len(self.created) + 1}"
        self.created.append(conversation_id)
        return Conversation(id=conversation_id, title=title)


@pytest.fixture
def mock_client() -> MagicMock:
    """Assistant client double with sequential conversation ids."""
    client = MagicMock(spec=AssistantClient)
    client.create_conversation = AsyncMock(side_effect=ConversationFactory())
    client.send_to_conversation = AsyncMock(return_value="Hello from the assistant")
    client.delete_conversation = AsyncMock(return_value=None)
    client.health_check = AsyncMock(return_value=True)
    client.wait_for_server = AsyncMock(return_value=True)
    return client


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def session_manager(mock_client, registry, tmp_path: Path) -> SessionManager:
    return SessionManager(
        mock_client,
        registry=registry,
        default_working_directory=tmp_path / "dev",
    )


@pytest.fixture
def mock_provider() -> MagicMock:
    """Chat provider double that records sends."""
    provider = MagicMock()
    provider.name = "telegram"
    provider.send = AsyncMock(side_effect=lambda msg: f"sent-{id(msg)}")
    provider.send_typing = AsyncMock()
    provider.start = AsyncMock()
    provider.stop = AsyncMock()
    return provider
