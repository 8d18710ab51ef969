"""Tests for settings, Claude config discovery and JSON logging."""

import json
import logging
import sys
from pathlib import Path

import pytest

from session_host.config import load_claude_config, load_settings
from session_host.logging_config import SERVER_LOGGERS, JSONFormatter, build_logging_config

ENV_VARS = [
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "WORKING_DIRECTORY",
    "AGENT_RUNTIME",
    "CODEX_PATH",
    "CODEX_MODEL",
    "OPENAI_API_KEY",
    "CLAUDE_CONFIG_PATH",
    "RESUME_THREAD_ID",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from the caller's environment and home directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self, clean_env, tmp_path):
        settings = load_settings()

        assert settings.host == "localhost"
        assert settings.port == 9000
        assert settings.agent_runtime == "codex"
        assert settings.codex_path == "codex"
        assert Path(settings.working_directory).resolve() == tmp_path.resolve()
        assert settings.resume_thread_id is None

    def test_reads_environment(self, clean_env):
        """Test environment overrides."""
        clean_env.setenv("PORT", "8123")
        clean_env.setenv("AGENT_RUNTIME", "Anthropic")
        clean_env.setenv("WORKING_DIRECTORY", "/srv/project")
        clean_env.setenv("RESUME_THREAD_ID", "thread-7")
        clean_env.setenv("CODEX_MODEL", "")

        settings = load_settings()

        assert settings.port == 8123
        assert settings.agent_runtime == "anthropic"
        assert settings.working_directory == "/srv/project"
        assert settings.resume_thread_id == "thread-7"
        assert settings.codex_model is None

    def test_invalid_port(self, clean_env):
        clean_env.setenv("PORT", "http")
        with pytest.raises(ValueError, match="PORT"):
            load_settings()

    def test_invalid_runtime(self, clean_env):
        clean_env.setenv("AGENT_RUNTIME", "gemini")
        with pytest.raises(ValueError, match="AGENT_RUNTIME"):
            load_settings()


class TestLoadClaudeConfig:
    """Tests for load_claude_config()."""

    def test_explicit_path(self, clean_env, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"mcpServers": {"a": {"command": "x"}}}))

        assert load_claude_config(path) == {"mcpServers": {"a": {"command": "x"}}}

    def test_project_config(self, clean_env, tmp_path):
        """Test ./.claude/config.json is found from the working directory."""
        (tmp_path / ".claude").mkdir()
        (tmp_path / ".claude" / "config.json").write_text('{"plugins": {}}')

        assert load_claude_config() == {"plugins": {}}

    def test_env_path_before_project(self, clean_env, tmp_path):
        """Test CLAUDE_CONFIG_PATH takes priority over the project file."""
        (tmp_path / ".claude").mkdir()
        (tmp_path / ".claude" / "config.json").write_text('{"source": "project"}')
        env_file = tmp_path / "env.json"
        env_file.write_text('{"source": "env"}')
        clean_env.setenv("CLAUDE_CONFIG_PATH", str(env_file))

        assert load_claude_config() == {"source": "env"}

    def test_invalid_file_skipped(self, clean_env, tmp_path):
        """Test that unreadable JSON falls through to the next candidate."""
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        (tmp_path / ".claude").mkdir()
        (tmp_path / ".claude" / "config.json").write_text('{"source": "project"}')

        assert load_claude_config(broken) == {"source": "project"}

    def test_none_found(self, clean_env):
        assert load_claude_config() == {}


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_formats_record(self):
        record = logging.LogRecord(
            name="session_host.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Subscriber %s added",
            args=("abc",),
            exc_info=None,
        )
        record.context = {"count": 2}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "session_host.test"
        assert data["message"] == "Subscriber abc added"
        assert data["context"] == {"count": 2}

    def test_exception_included(self):
        try:
            raise ValueError("bad frame")
        except ValueError:
            record = logging.LogRecord(
                "session_host.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad frame" in data["exception"]
        assert "context" not in data


class TestBuildLoggingConfig:
    """Tests for build_logging_config()."""

    def test_root_and_server_loggers(self, tmp_path):
        config = build_logging_config("debug", str(tmp_path / "app.log"))

        assert config["root"]["level"] == "DEBUG"
        assert config["root"]["handlers"] == ["file", "console"]
        assert config["handlers"]["file"]["filename"] == str(tmp_path / "app.log")
        for name in SERVER_LOGGERS:
            assert config["loggers"][name]["propagate"] is True
