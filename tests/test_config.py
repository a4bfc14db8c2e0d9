"""
Tests for configuration loading and YAML overlays.
"""

import pytest

from react_orchestrator.config import Config, LangfuseConfig
from react_orchestrator.config_loader import apply_config_file, load_config_data, resolve_env_vars
from react_orchestrator.models.agent import AgentConfig


class TestEnvInterpolation:
    """Tests for ${VAR} and ${VAR:-default} resolution."""

    def test_set_variable(self, monkeypatch):
        monkeypatch.setenv("RO_TEST_HOST", "example.org")

        assert resolve_env_vars("http://${RO_TEST_HOST}/v1") == "http://example.org/v1"

    def test_default_value(self, monkeypatch):
        monkeypatch.delenv("RO_TEST_MISSING", raising=False)

        assert resolve_env_vars("${RO_TEST_MISSING:-fallback}") == "fallback"
        assert resolve_env_vars("${RO_TEST_MISSING}") == ""


class TestConfigFile:
    """Tests for overlaying a YAML file onto the environment config."""

    def test_overlay_sections(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RO_TEST_MODEL", "qwen-plus")
        path = tmp_path / "config.yaml"
        path.write_text(
            "llm:\n"
            "  model: ${RO_TEST_MODEL}\n"
            "  temperature: 0.2\n"
            "agent:\n"
            "  max_iterations: '8'\n"
            "  pause_after_each_step: 'true'\n"
            "log_level: DEBUG\n"
        )

        config = apply_config_file(Config(), str(path))

        assert config.llm.model == "qwen-plus"
        assert config.llm.temperature == 0.2
        assert config.agent.max_iterations == 8
        assert config.agent.pause_after_each_step is True
        assert config.log_level == "DEBUG"

    def test_untouched_values_kept(self, tmp_path):
        base = Config()
        path = tmp_path / "config.yaml"
        path.write_text("agent:\n  language: english\n")

        config = apply_config_file(base, str(path))

        assert config.agent.language == "english"
        assert config.llm == base.llm
        assert config.agent.history_window == base.agent.history_window

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("agent:\n  colour: blue\nextras:\n  a: 1\n")

        config = apply_config_file(Config(), str(path))

        assert not hasattr(config.agent, "colour")

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("agent:\n  max_iterations: many\n")

        with pytest.raises(ValueError, match="agent.max_iterations"):
            apply_config_file(Config(), str(path))

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("llm: gpt\n")

        with pytest.raises(ValueError, match="must be a mapping"):
            apply_config_file(Config(), str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_data(str(tmp_path / "absent.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config_data(str(path)) == {}


class TestLangfuseConfig:
    def test_enabled_requires_both_keys(self):
        assert LangfuseConfig(public_key="pk", secret_key="sk").enabled
        assert not LangfuseConfig(public_key="pk", secret_key="").enabled


class TestAgentConfig:
    """Tests for per-run settings."""

    def test_merged_ignores_none(self):
        base = AgentConfig(model="m", language="english")

        merged = base.merged({"model": None, "language": "chinese"})

        assert merged.model == "m"
        assert merged.language == "chinese"
        assert base.language == "english"

    def test_merged_without_overrides_returns_self(self):
        base = AgentConfig()

        assert base.merged(None) is base

    @pytest.mark.parametrize(
        "overrides",
        [{"temperature": 3}, {"max_iterations": 0}, {"language": "french"}],
    )
    def test_merged_validates(self, overrides):
        with pytest.raises(ValueError):
            AgentConfig().merged(overrides)


class TestHistoryLimits:
    """Tests for the event history caps."""

    def test_caps_from_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_CONVERSATIONS_PER_SESSION", "5")
        monkeypatch.setenv("MAX_EVENTS_PER_CONVERSATION", "50")
        monkeypatch.setenv("MAX_HISTORY_SESSIONS", "7")

        agent = Config().agent

        assert agent.max_conversations_per_session == 5
        assert agent.max_events_per_conversation == 50
        assert agent.max_history_sessions == 7
