"""Translate .claude/config.json declarations into Codex configuration."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..logging_config import get_logger

logger = get_logger(__name__)

CODEX_PROVIDER_TOML = """\
model_provider = "openai-api"

[model_providers.openai-api]
name = "OpenAI (API key from env)"
base_url = "https://api.openai.com/v1"
wire_api = "responses"
env_key = "OPENAI_API_KEY"
requires_openai_auth = false
"""


def default_plugins_file() -> Path:
    return Path.home() / ".claude" / "plugins" / "installed_plugins.json"


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base.

    Nested dicts merge; lists and scalars from override replace base values.
    """
    result = dict(base)
    for key, value in override.items():
        existing = result.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            result[key] = deep_merge(existing, value)
        else:
            result[key] = value
    return result


def mcp_overrides(claude_config: dict) -> dict:
    """Convert mcpServers entries into Codex mcp_servers tables."""
    servers = claude_config.get("mcpServers") or {}
    if not servers:
        return {}

    mcp_servers = {}
    for name, server in servers.items():
        command = server.get("command")
        if not command:
            logger.warning("Skipping MCP server %s: no command", name)
            continue
        entry: dict[str, Any] = {"command": command}
        if server.get("args"):
            entry["args"] = list(server["args"])
        if server.get("env"):
            entry["env"] = dict(server["env"])
        mcp_servers[name] = entry

    if not mcp_servers:
        return {}

    logger.info("MCP servers configured: %s", sorted(mcp_servers))
    return {"mcp_servers": mcp_servers}


def _load_installed_plugins(plugins_file: Path) -> dict:
    if not plugins_file.is_file():
        return {}
    try:
        with open(plugins_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to load %s: %s", plugins_file, e)
        return {}
    return data.get("plugins") or {}


def _parse_timestamp(value: str | None) -> datetime:
    """Naive UTC datetime; datetime.min when missing or malformed."""
    try:
        parsed = datetime.fromisoformat((value or "").replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _resolve_install_path(name: str, plugin: dict, installed: dict) -> str | None:
    if plugin.get("installPath"):
        return plugin["installPath"]

    # Registry keys may be "name@marketplace"
    key = next(
        (k for k in installed if k == name or k.startswith(f"{name}@")), None
    )
    entries = installed.get(key) if key else None
    if not entries:
        return None

    latest = max(entries, key=lambda e: _parse_timestamp(e.get("lastUpdated")))
    return latest.get("installPath")


def find_skill_files(install_path: Path) -> list[Path]:
    """SKILL.md at the install root and under skills/<name>/."""
    if not install_path.is_dir():
        return []

    skill_files = []
    top_level = install_path / "SKILL.md"
    if top_level.is_file():
        skill_files.append(top_level)

    skills_dir = install_path / "skills"
    if skills_dir.is_dir():
        for entry in sorted(skills_dir.iterdir()):
            skill_md = entry / "SKILL.md"
            if entry.is_dir() and skill_md.is_file():
                skill_files.append(skill_md)

    return skill_files


def skill_overrides(claude_config: dict, plugins_file: Path | None = None) -> dict:
    """Resolve enabled plugins to Codex skills.config entries."""
    plugins = claude_config.get("plugins") or {}
    enabled = [name for name, plugin in plugins.items() if plugin.get("enabled")]
    if not enabled:
        return {}

    logger.info("Enabled plugins: %s", enabled)
    installed = _load_installed_plugins(plugins_file or default_plugins_file())

    entries = []
    for name in enabled:
        install_path = _resolve_install_path(name, plugins[name], installed)
        if not install_path:
            logger.warning("Could not resolve install path for plugin: %s", name)
            continue

        skill_files = find_skill_files(Path(install_path))
        if not skill_files:
            logger.warning("No SKILL.md found for plugin %s at %s", name, install_path)
            continue

        for skill_file in skill_files:
            entries.append({"path": str(skill_file), "enabled": True})
            logger.info("Configured skill: %s", skill_file)

    if not entries:
        return {}
    return {"skills": {"config": entries}}


def build_codex_config(
    base: dict | None,
    claude_config: dict | None,
    plugins_file: Path | None = None,
) -> dict:
    """Layer MCP and skill overrides on top of the base Codex config."""
    claude_config = claude_config or {}
    result = base or {}
    result = deep_merge(result, mcp_overrides(claude_config))
    result = deep_merge(result, skill_overrides(claude_config, plugins_file))
    return result


def ensure_codex_home_config(
    api_key: str | None, codex_home: Path | None = None
) -> Path | None:
    """Write ~/.codex/config.toml reading the key from OPENAI_API_KEY.

    The Codex binary does not pick up OPENAI_API_KEY on its own. An existing
    config file is never overwritten. Returns the path written, if any.
    """
    if not api_key:
        logger.warning("OPENAI_API_KEY is not set; codex will not be able to authenticate")
        return None

    codex_home = codex_home or Path.home() / ".codex"
    config_path = codex_home / "config.toml"
    if config_path.exists():
        return None

    try:
        codex_home.mkdir(parents=True, exist_ok=True)
        config_path.write_text(CODEX_PROVIDER_TOML, encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to create codex config %s: %s", config_path, e)
        return None

    logger.info("Created codex config at %s", config_path)
    return config_path
