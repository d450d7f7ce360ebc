"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from relay.chunker import SAFE_LIMIT
from relay.config import (
    AssistantConfig,
    ChunkingConfig,
    ConfigError,
    RelayConfig,
    SessionsConfig,
    TelegramConfig,
    find_config_path,
    get_config_path,
    get_default_config,
    get_logs_path,
    get_relay_home,
    load_config,
)
from relay.config.loader import _resolve_env
from relay.config.paths import ENV_VAR


class TestTelegramConfig:
    """Tests for TelegramConfig model."""

    def test_defaults(self):
        config = TelegramConfig()
        assert config.bot_token is None
        assert config.allowed_users == []
        assert config.allowed_chats == []

    def test_token_is_secret(self):
        config = TelegramConfig(bot_token="123:abc")
        assert isinstance(config.bot_token, SecretStr)
        assert "123:abc" not in repr(config)


class TestAssistantConfig:
    """Tests for AssistantConfig model."""

    def test_defaults(self):
        config = AssistantConfig()
        assert config.base_url == "http://localhost:4096"
        assert config.timeout == 600
        assert config.health_timeout == 5
        assert config.agent is None
        assert config.wait_attempts == 10

    @pytest.mark.parametrize("field", ["timeout", "health_timeout", "wait_interval"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            AssistantConfig(**{field: 0})


class TestSessionsConfig:
    """Tests for SessionsConfig model."""

    def test_defaults(self):
        config = SessionsConfig()
        assert config.default_working_directory == Path.home()
        assert config.channel_prefixes == ["opencode", "oc", "project", "proj"]
        assert config.title_template == "Telegram: #{name}"

    def test_expands_user(self):
        config = SessionsConfig(default_working_directory="~/Dev")
        assert config.default_working_directory == Path.home() / "Dev"

    def test_title_template_needs_name(self):
        with pytest.raises(ValidationError):
            SessionsConfig(title_template="Telegram chat")


class TestChunkingConfig:
    """Tests for ChunkingConfig model."""

    def test_default_is_safe_limit(self):
        assert ChunkingConfig().max_length == SAFE_LIMIT

    @pytest.mark.parametrize("value", [0, -5, 5000])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(ValidationError):
            ChunkingConfig(max_length=value)


class TestRelayConfig:
    """Tests for the root config."""

    def test_default_config(self):
        config = get_default_config()
        assert config.telegram is None
        assert config.sentry is None
        assert config.assistant.base_url == "http://localhost:4096"

    def test_require_bot_token_missing(self):
        with pytest.raises(ConfigError):
            RelayConfig().require_bot_token()

    def test_require_bot_token(self):
        config = RelayConfig(telegram=TelegramConfig(bot_token="123:abc"))
        assert config.require_bot_token().get_secret_value() == "123:abc"


class TestLoadConfig:
    """Tests for load_config()."""

    def test_loads_file(self, config_file):
        config = load_config(config_file)

        assert config.telegram is not None
        assert config.telegram.bot_token.get_secret_value().startswith("123456789:")
        assert config.telegram.allowed_users == ["@alice"]
        assert config.assistant.timeout == 120
        assert config.sessions.default_working_directory == Path("/srv/dev")
        assert config.chunking.max_length == 3500

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_env_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(ENV_VAR, str(tmp_path / "home"))
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "999:env-token")
        monkeypatch.setenv("OPENCODE_SERVER_URL", "http://10.0.0.2:4096")
        monkeypatch.setenv("OPENCODE_DEFAULT_PROJECT_PATH", "/work")

        config = load_config()

        assert config.require_bot_token().get_secret_value() == "999:env-token"
        assert config.assistant.base_url == "http://10.0.0.2:4096"
        assert config.sessions.default_working_directory == Path("/work")
        assert config.sentry is None

    def test_file_wins_over_env(self, config_file, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "999:env-token")
        config = load_config(config_file)
        assert config.require_bot_token().get_secret_value().startswith("123456789:")

    def test_env_fills_gaps(self, config_file, monkeypatch):
        monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")
        config = load_config(config_file)
        assert config.sentry is not None
        assert config.sentry.dsn.get_secret_value() == "https://key@sentry.example/1"

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[chunking]\nmax_length = 99999\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestResolveEnv:
    def test_no_env_creates_no_sections(self):
        assert _resolve_env({}) == {}

    def test_secret_values_wrapped(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "1:x")
        resolved = _resolve_env({})
        assert isinstance(resolved["telegram"]["bot_token"], SecretStr)


class TestPaths:
    def test_default_home(self):
        assert get_relay_home() == Path.home() / ".relay"

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_relay_home.cache_clear()

        home = tmp_path.resolve()
        assert get_relay_home() == home
        assert get_config_path() == home / "config.toml"
        assert get_logs_path() == home / "logs"

    def test_find_config_in_home(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        home = tmp_path / "home"
        home.mkdir()
        (home / "config.toml").write_text("")
        monkeypatch.setenv(ENV_VAR, str(home))
        get_relay_home.cache_clear()

        assert find_config_path() == home.resolve() / "config.toml"

    def test_cwd_config_preferred(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.toml").write_text("")
        assert find_config_path() == Path("config.toml")
