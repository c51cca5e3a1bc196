"""Unit tests for RunConfig and YAML profile loading."""

import logging

import pytest
import structlog

from agentrelay.application.config import RunConfig, load_profile, load_run_config
from agentrelay.core.domain.errors import ConfigurationError
from agentrelay.infrastructure.persistence.file_session import FileSession
from agentrelay.infrastructure.persistence.memory_session import InMemorySession


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "configs"
    directory.mkdir()
    return directory


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("AGENTRELAY_MAX_TURNS", "AGENTRELAY_TOOL_TIMEOUT", "AGENTRELAY_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    root_level = logging.getLogger().level
    yield
    logging.getLogger().setLevel(root_level)
    structlog.reset_defaults()


class TestRunConfig:
    def test_defaults(self):
        config = RunConfig()

        assert config.max_turns is None
        assert config.session is None
        assert config.hooks == []
        assert config.context == {}

    @pytest.mark.parametrize("kwargs", [{"max_turns": 0}, {"tool_timeout": 0}, {"tool_timeout": -1.0}])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            RunConfig(**kwargs)


class TestLoadProfile:
    def test_missing_profile(self, config_dir):
        with pytest.raises(FileNotFoundError):
            load_profile("nope", config_dir)

    def test_non_mapping_profile(self, config_dir):
        (config_dir / "bad.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_profile("bad", config_dir)

    def test_empty_profile_is_empty_mapping(self, config_dir):
        (config_dir / "empty.yaml").write_text("")

        assert load_profile("empty", config_dir) == {}


class TestLoadRunConfig:
    def test_memory_session_profile(self, config_dir):
        (config_dir / "test.yaml").write_text(
            "max_turns: 4\n"
            "tool_timeout: 2.5\n"
            "logging:\n"
            "  level: info\n"
            "session:\n"
            "  type: memory\n"
            "  id: test-session\n"
        )

        config = load_run_config("test", config_dir)

        assert config.max_turns == 4
        assert config.tool_timeout == 2.5
        assert config.log_level == "INFO"
        assert isinstance(config.session, InMemorySession)
        assert config.session.session_id == "test-session"

    def test_file_session_profile(self, config_dir, tmp_path):
        sessions_dir = tmp_path / "sessions"
        (config_dir / "dev.yaml").write_text(
            f"session:\n  type: file\n  work_dir: {sessions_dir}\n  id: default\n"
        )

        config = load_run_config("dev", config_dir, session_id="override")

        assert isinstance(config.session, FileSession)
        assert config.session.session_id == "override"
        assert config.session.path == sessions_dir / "override.jsonl"

    def test_env_overrides_profile(self, config_dir, monkeypatch):
        (config_dir / "dev.yaml").write_text("max_turns: 4\n")
        monkeypatch.setenv("AGENTRELAY_MAX_TURNS", "7")
        monkeypatch.setenv("AGENTRELAY_TOOL_TIMEOUT", "1.5")
        monkeypatch.setenv("AGENTRELAY_LOG_LEVEL", "debug")

        config = load_run_config("dev", config_dir)

        assert config.max_turns == 7
        assert config.tool_timeout == 1.5
        assert config.log_level == "DEBUG"
        assert config.session is None

    def test_invalid_env_value(self, config_dir, monkeypatch):
        (config_dir / "dev.yaml").write_text("{}\n")
        monkeypatch.setenv("AGENTRELAY_MAX_TURNS", "many")

        with pytest.raises(ConfigurationError):
            load_run_config("dev", config_dir)

    def test_session_requires_id(self, config_dir):
        (config_dir / "dev.yaml").write_text("session:\n  type: memory\n")

        with pytest.raises(ConfigurationError):
            load_run_config("dev", config_dir)

    def test_unknown_session_type(self, config_dir):
        (config_dir / "dev.yaml").write_text("session:\n  type: redis\n  id: x\n")

        with pytest.raises(ConfigurationError):
            load_run_config("dev", config_dir)

    def test_profile_logging_level_is_applied(self, config_dir):
        (config_dir / "dev.yaml").write_text("logging:\n  level: debug\n")

        config = load_run_config("dev", config_dir)

        assert config.log_level == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG
        assert structlog.get_config()["wrapper_class"] is structlog.make_filtering_bound_logger(
            logging.DEBUG
        )

    def test_env_logging_level_is_applied(self, config_dir, monkeypatch):
        (config_dir / "dev.yaml").write_text("logging:\n  level: DEBUG\n")
        monkeypatch.setenv("AGENTRELAY_LOG_LEVEL", "error")

        load_run_config("dev", config_dir)

        assert logging.getLogger().level == logging.ERROR

    def test_unknown_logging_level(self, config_dir, monkeypatch):
        (config_dir / "dev.yaml").write_text("{}\n")
        monkeypatch.setenv("AGENTRELAY_LOG_LEVEL", "loud")

        with pytest.raises(ConfigurationError):
            load_run_config("dev", config_dir)

    def test_null_logging_section_uses_default(self, config_dir):
        (config_dir / "dev.yaml").write_text("logging:\nmax_turns: 3\n")

        config = load_run_config("dev", config_dir)

        assert config.log_level == "WARNING"
        assert config.max_turns == 3
