"""Agent runtime abstraction."""

from typing import AsyncIterator, Protocol

from ..models import ThreadEvent


class IAgentThread(Protocol):
    """A runtime conversation handle reusable across turns."""

    @property
    def id(self) -> str | None:
        """Runtime thread id; None until the runtime reports it."""
        ...

    def run_streamed(self, content: str) -> AsyncIterator[ThreadEvent]:
        """Execute one turn and yield its lifecycle events in arrival order."""
        ...


class IAgentRuntime(Protocol):
    """Black-box conversational agent runtime."""

    def start_thread(self, working_directory: str | None = None) -> IAgentThread:
        """Create a new conversation thread."""
        ...

    def resume_thread(self, thread_id: str) -> IAgentThread:
        """Reattach to an existing conversation thread."""
        ...
