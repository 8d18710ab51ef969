"""Transcript data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Role = Literal["user", "assistant", "agent", "tool_result"]
ToolStatus = Literal["success", "error"]
Direction = Literal["head", "tail"]


@dataclass(frozen=True)
class Message:
    """A single transcript entry. Never mutated after append."""

    id: int
    role: Role
    content: str
    time: datetime
    status: ToolStatus | None = None
    tool_use_id: str | None = None
    parent_tool_use_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        """API representation; optional fields are omitted when unset."""
        data = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "time": self.time.isoformat(),
        }
        if self.status is not None:
            data["status"] = self.status
        if self.tool_use_id is not None:
            data["toolUseId"] = self.tool_use_id
        if self.parent_tool_use_id is not None:
            data["parentToolUseId"] = self.parent_tool_use_id
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ActiveTool:
    """A tool invocation currently running in the agent runtime."""

    id: str
    name: str  # command text or tool descriptor
    start_time: datetime
    status: Literal["running"] = "running"


@dataclass
class PaginationParams:
    """Transcript query parameters.

    Modes are exclusive: around/context, after, before, or limit/direction.
    Callers validate combinations; the store applies them in that precedence.
    """

    limit: int | None = None
    direction: Direction | None = None
    around: int | None = None
    context: int | None = None
    after: int | None = None
    before: int | None = None


@dataclass
class MessagesPage:
    """Result of a transcript query."""

    messages: list[Message] = field(default_factory=list)
    total: int = 0
    has_more: bool = False  # advisory: True when any filtering occurred

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "total": self.total,
            "hasMore": self.has_more,
        }
