"""Agent module."""

from .router import AgentEventRouter, IAgentEventRouter

__all__ = ["AgentEventRouter", "IAgentEventRouter"]
