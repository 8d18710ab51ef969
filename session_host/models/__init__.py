"""Core data models for the session host."""

from .agent import AgentStatus
from .events import (
    AgentMessageItem,
    BroadcastEvent,
    CommandExecutionItem,
    FileChangeItem,
    FileUpdateChange,
    ItemCompleted,
    ItemStarted,
    ItemUpdated,
    ReasoningItem,
    ThreadError,
    ThreadEvent,
    ThreadItem,
    ThreadStarted,
    TodoEntry,
    TodoListItem,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
    UnknownEvent,
    UnknownItem,
    Usage,
    parse_thread_event,
    parse_thread_item,
)
from .messages import ActiveTool, Message, MessagesPage, PaginationParams

__all__ = [
    # Transcript
    "Message",
    "ActiveTool",
    "PaginationParams",
    "MessagesPage",
    # Agent
    "AgentStatus",
    # Broadcast
    "BroadcastEvent",
    # Runtime events
    "ThreadEvent",
    "ThreadStarted",
    "TurnStarted",
    "TurnCompleted",
    "TurnFailed",
    "ItemStarted",
    "ItemUpdated",
    "ItemCompleted",
    "ThreadError",
    "UnknownEvent",
    "Usage",
    "parse_thread_event",
    # Runtime items
    "ThreadItem",
    "AgentMessageItem",
    "ReasoningItem",
    "CommandExecutionItem",
    "FileChangeItem",
    "FileUpdateChange",
    "TodoListItem",
    "TodoEntry",
    "UnknownItem",
    "parse_thread_item",
]
