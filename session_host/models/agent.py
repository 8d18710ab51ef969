"""Agent status models."""

from dataclasses import dataclass
from typing import Literal

AgentStatusValue = Literal["stable", "running"]


@dataclass
class AgentStatus:
    """Externally visible agent status."""

    status: AgentStatusValue = "stable"
    thread_id: str | None = None
