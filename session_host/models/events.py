"""Runtime lifecycle events and broadcast events."""

import json
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass
class BroadcastEvent:
    """A structured event fanned out to live subscribers. Never stored."""

    type: str
    data: Any = None

    def to_sse(self) -> str:
        """Format as a named server-sent event frame."""
        return f"event: {self.type}\ndata: {json.dumps(self.data, default=str)}\n\n"


# ---------------------------------------------------------------------------
# Thread items
# ---------------------------------------------------------------------------


@dataclass
class AgentMessageItem:
    """Final text response from the agent."""

    id: str | None
    text: str


@dataclass
class ReasoningItem:
    """Reasoning summary text."""

    id: str | None
    text: str


@dataclass
class CommandExecutionItem:
    """A shell command run by the agent."""

    id: str | None
    command: str
    aggregated_output: str = ""
    exit_code: int | None = None
    status: str = "in_progress"  # in_progress | completed | failed


@dataclass
class FileUpdateChange:
    path: str
    kind: str  # add | update | delete


@dataclass
class FileChangeItem:
    """A set of file edits applied by the agent."""

    id: str | None
    changes: list[FileUpdateChange] = field(default_factory=list)
    status: str = "completed"


@dataclass
class TodoEntry:
    text: str
    completed: bool = False


@dataclass
class TodoListItem:
    """The agent's running plan."""

    id: str | None
    items: list[TodoEntry] = field(default_factory=list)


@dataclass
class UnknownItem:
    """Any item kind this host does not interpret."""

    id: str | None
    type: str
    raw: dict = field(default_factory=dict)


ThreadItem = Union[
    AgentMessageItem,
    ReasoningItem,
    CommandExecutionItem,
    FileChangeItem,
    TodoListItem,
    UnknownItem,
]


# ---------------------------------------------------------------------------
# Thread events
# ---------------------------------------------------------------------------


@dataclass
class Usage:
    """Token usage reported at turn completion."""

    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "cached_input_tokens": self.cached_input_tokens,
            "output_tokens": self.output_tokens,
        }


@dataclass
class ThreadStarted:
    thread_id: str


@dataclass
class TurnStarted:
    pass


@dataclass
class TurnCompleted:
    usage: Usage = field(default_factory=Usage)


@dataclass
class TurnFailed:
    message: str


@dataclass
class ItemStarted:
    item: ThreadItem


@dataclass
class ItemUpdated:
    item: ThreadItem


@dataclass
class ItemCompleted:
    item: ThreadItem


@dataclass
class ThreadError:
    """Unrecoverable error reported by the runtime outside of a turn result."""

    message: str


@dataclass
class UnknownEvent:
    type: str
    raw: dict = field(default_factory=dict)


ThreadEvent = Union[
    ThreadStarted,
    TurnStarted,
    TurnCompleted,
    TurnFailed,
    ItemStarted,
    ItemUpdated,
    ItemCompleted,
    ThreadError,
    UnknownEvent,
]


def parse_thread_item(data: dict) -> ThreadItem:
    """Build a ThreadItem from the runtime's JSON item object."""
    item_id = data.get("id")
    item_type = data.get("type", "")

    if item_type == "agent_message":
        return AgentMessageItem(id=item_id, text=data.get("text", ""))
    if item_type == "reasoning":
        return ReasoningItem(id=item_id, text=data.get("text", ""))
    if item_type == "command_execution":
        return CommandExecutionItem(
            id=item_id,
            command=data.get("command", ""),
            aggregated_output=data.get("aggregated_output", ""),
            exit_code=data.get("exit_code"),
            status=data.get("status", "in_progress"),
        )
    if item_type == "file_change":
        return FileChangeItem(
            id=item_id,
            changes=[
                FileUpdateChange(path=c.get("path", ""), kind=c.get("kind", ""))
                for c in data.get("changes") or []
            ],
            status=data.get("status", "completed"),
        )
    if item_type == "todo_list":
        return TodoListItem(
            id=item_id,
            items=[
                TodoEntry(text=t.get("text", ""), completed=bool(t.get("completed")))
                for t in data.get("items") or []
            ],
        )
    return UnknownItem(id=item_id, type=item_type, raw=data)


def parse_thread_event(data: dict) -> ThreadEvent:
    """Build a ThreadEvent from one JSON event object emitted by the runtime."""
    event_type = data.get("type", "")

    if event_type == "thread.started":
        return ThreadStarted(thread_id=data.get("thread_id", ""))
    if event_type == "turn.started":
        return TurnStarted()
    if event_type == "turn.completed":
        usage = data.get("usage") or {}
        return TurnCompleted(
            usage=Usage(
                input_tokens=usage.get("input_tokens", 0),
                cached_input_tokens=usage.get("cached_input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0),
            )
        )
    if event_type == "turn.failed":
        error = data.get("error") or {}
        if isinstance(error, dict):
            return TurnFailed(message=error.get("message", ""))
        return TurnFailed(message=str(error))
    if event_type in ("item.started", "item.updated", "item.completed"):
        item = parse_thread_item(data.get("item") or {})
        if event_type == "item.started":
            return ItemStarted(item=item)
        if event_type == "item.updated":
            return ItemUpdated(item=item)
        return ItemCompleted(item=item)
    if event_type == "error":
        return ThreadError(message=data.get("message", ""))
    return UnknownEvent(type=event_type, raw=data)
