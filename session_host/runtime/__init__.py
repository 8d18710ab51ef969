"""Agent runtime module."""

from .anthropic_runtime import AnthropicRuntime, AnthropicThread
from .base import IAgentRuntime, IAgentThread
from .codex import CodexExecError, CodexRuntime, CodexThread
from .codex_config import build_codex_config, deep_merge, ensure_codex_home_config

__all__ = [
    "IAgentRuntime",
    "IAgentThread",
    "CodexRuntime",
    "CodexThread",
    "CodexExecError",
    "AnthropicRuntime",
    "AnthropicThread",
    "build_codex_config",
    "deep_merge",
    "ensure_codex_home_config",
]
