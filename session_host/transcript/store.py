"""In-memory transcript store."""

import threading
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import ActiveTool, Message, MessagesPage, PaginationParams

logger = get_logger(__name__)

DEFAULT_AROUND_CONTEXT = 10


class ITranscriptStore(Protocol):
    """Ordered message log plus the set of in-flight tool invocations."""

    def append(
        self,
        role: str,
        content: str,
        *,
        status: str | None = None,
        tool_use_id: str | None = None,
        parent_tool_use_id: str | None = None,
        error: str | None = None,
    ) -> Message:
        """Assign the next id and the current time, store and return the Message."""
        ...

    def query(self, params: PaginationParams) -> MessagesPage:
        """Return a paginated view of the transcript."""
        ...

    def all_messages(self) -> list[Message]:
        """Snapshot of the whole transcript."""
        ...

    def count(self) -> int:
        """Total number of stored messages."""
        ...

    def clear(self) -> None:
        """Drop all messages and restart ids at 0."""
        ...

    # Active tools
    def add_active_tool(self, tool_id: str, name: str) -> ActiveTool:
        """Insert or overwrite a running tool entry."""
        ...

    def remove_active_tool(self, tool_id: str) -> None:
        """Remove a running tool entry; absent ids are ignored."""
        ...

    def list_active_tools(self) -> list[ActiveTool]:
        """Snapshot of running tools."""
        ...


class TranscriptStore:
    """Process-lifetime transcript.

    Every operation holds the lock for its whole duration, so readers always
    see a complete snapshot and never a half-applied append.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._messages: list[Message] = []
        self._next_id = 0
        self._active_tools: dict[str, ActiveTool] = {}

    def append(
        self,
        role: str,
        content: str,
        *,
        status: str | None = None,
        tool_use_id: str | None = None,
        parent_tool_use_id: str | None = None,
        error: str | None = None,
    ) -> Message:
        """Assign the next id and the current time, store and return the Message."""
        with self._lock:
            message = Message(
                id=self._next_id,
                role=role,
                content=content,
                time=datetime.now(timezone.utc),
                status=status,
                tool_use_id=tool_use_id,
                parent_tool_use_id=parent_tool_use_id,
                error=error,
            )
            self._next_id += 1
            self._messages.append(message)

        logger.debug("Added message %s (%s)", message.id, message.role)
        return message

    def query(self, params: PaginationParams) -> MessagesPage:
        """Return a paginated view of the transcript.

        Precedence when several modes are given: around, after, before, limit.
        """
        with self._lock:
            messages = self._messages.copy()
        total = len(messages)

        if params.around is not None:
            context = (
                params.context if params.context is not None else DEFAULT_AROUND_CONTEXT
            )
            index = next(
                (i for i, m in enumerate(messages) if m.id == params.around), None
            )
            # Unknown ids leave the view unfiltered
            if index is not None:
                start = max(0, index - context)
                messages = messages[start : index + context + 1]
        elif params.after is not None:
            messages = [m for m in messages if m.id > params.after]
            if params.limit is not None:
                messages = messages[: params.limit]
        elif params.before is not None:
            messages = [m for m in messages if m.id < params.before]
            if params.limit is not None:
                messages = messages[-params.limit :] if params.limit else []
        elif params.limit is not None:
            if (params.direction or "tail") == "tail":
                messages = messages[-params.limit :] if params.limit else []
            else:
                messages = messages[: params.limit]

        return MessagesPage(
            messages=messages,
            total=total,
            has_more=len(messages) < total,
        )

    def all_messages(self) -> list[Message]:
        """Snapshot of the whole transcript."""
        with self._lock:
            return self._messages.copy()

    def count(self) -> int:
        """Total number of stored messages."""
        with self._lock:
            return len(self._messages)

    def clear(self) -> None:
        """Drop all messages and restart ids at 0."""
        with self._lock:
            self._messages = []
            self._next_id = 0
        logger.info("Cleared all messages")

    # Active tools
    def add_active_tool(self, tool_id: str, name: str) -> ActiveTool:
        """Insert or overwrite a running tool entry."""
        tool = ActiveTool(id=tool_id, name=name, start_time=datetime.now(timezone.utc))
        with self._lock:
            self._active_tools[tool_id] = tool
        logger.debug("Added active tool: %s (%s)", name, tool_id)
        return tool

    def remove_active_tool(self, tool_id: str) -> None:
        """Remove a running tool entry; absent ids are ignored."""
        with self._lock:
            removed = self._active_tools.pop(tool_id, None)
        if removed:
            logger.debug("Removed active tool: %s", tool_id)

    def list_active_tools(self) -> list[ActiveTool]:
        """Snapshot of running tools."""
        with self._lock:
            return list(self._active_tools.values())

    def clear_active_tools(self) -> None:
        """Forget every running tool."""
        with self._lock:
            self._active_tools.clear()
