"""Project-level configuration and path helpers."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

AGENT_RUNTIMES = ("codex", "anthropic")

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Process settings resolved from the environment."""

    host: str = "localhost"
    port: int = 9000
    log_level: str = "INFO"
    working_directory: str = field(default_factory=os.getcwd)
    agent_runtime: str = "codex"
    codex_path: str = "codex"
    codex_model: str | None = None
    codex_sandbox_mode: str | None = None
    codex_approval_policy: str | None = None
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    claude_config_path: str | None = None
    resume_thread_id: str | None = None


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    port_value = os.getenv("PORT", "9000")
    try:
        port = int(port_value)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {port_value!r}")

    agent_runtime = os.getenv("AGENT_RUNTIME", "codex").lower()
    if agent_runtime not in AGENT_RUNTIMES:
        raise ValueError(
            f"AGENT_RUNTIME must be one of {', '.join(AGENT_RUNTIMES)}, got {agent_runtime!r}"
        )

    return Settings(
        host=os.getenv("HOST", "localhost"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        working_directory=os.getenv("WORKING_DIRECTORY") or os.getcwd(),
        agent_runtime=agent_runtime,
        codex_path=os.getenv("CODEX_PATH", "codex"),
        codex_model=os.getenv("CODEX_MODEL") or None,
        codex_sandbox_mode=os.getenv("CODEX_SANDBOX_MODE") or None,
        codex_approval_policy=os.getenv("CODEX_APPROVAL_POLICY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022"),
        claude_config_path=os.getenv("CLAUDE_CONFIG_PATH") or None,
        resume_thread_id=os.getenv("RESUME_THREAD_ID") or None,
    )


def claude_config_candidates(config_path: PathLike | None = None) -> list[Path]:
    """Config file search order, first match wins."""
    candidates = [
        config_path,
        os.getenv("CLAUDE_CONFIG_PATH"),
        Path.cwd() / ".claude" / "config.json",
        Path.home() / ".claude" / "config.json",
    ]
    return [Path(p) for p in candidates if p]


def load_claude_config(config_path: PathLike | None = None) -> dict[str, Any]:
    """Load .claude/config.json (MCP servers and plugins); {} when none found."""
    for path in claude_config_candidates(config_path):
        if not path.is_file():
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load Claude config from %s: %s", path, e)
            continue
        if not isinstance(config, dict):
            logger.warning("Ignoring Claude config at %s: not a JSON object", path)
            continue
        logger.info("Loaded Claude config from %s", path)
        return config

    logger.info("No Claude config found, using defaults")
    return {}
