"""AgentEventRouter implementation."""

import asyncio
import uuid
from contextlib import aclosing
from typing import Protocol

from ..broadcast import IBroadcastHub
from ..logging_config import get_logger
from ..models import (
    AgentMessageItem,
    AgentStatus,
    BroadcastEvent,
    CommandExecutionItem,
    FileChangeItem,
    ItemCompleted,
    ItemStarted,
    ItemUpdated,
    ThreadError,
    ThreadEvent,
    ThreadStarted,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
)
from ..runtime import IAgentRuntime, IAgentThread
from ..transcript import ITranscriptStore

logger = get_logger(__name__)

FILE_CHANGE_KINDS = {
    "add": "created",
    "update": "modified",
    "delete": "deleted",
}


class IAgentEventRouter(Protocol):
    """Drives one conversation: runtime events in, transcript and broadcasts out."""

    def submit(self, content: str) -> bool:
        """Accept a user message and start a turn; False when already running."""
        ...

    async def send_message(self, content: str) -> None:
        """Run one turn to completion against the runtime."""
        ...

    def stop(self) -> None:
        """Force status back to stable."""
        ...

    def get_status(self) -> AgentStatus:
        """Current status snapshot."""
        ...


class AgentEventRouter:
    """Translates runtime lifecycle events into transcript appends and broadcasts.

    Runs on a single event loop: submit() checks and sets the running status
    without awaiting, so two submissions can never both be accepted. The
    store and the hub are updated one after the other, not atomically, so a
    reader may see a message slightly before or after its broadcast.
    """

    def __init__(
        self,
        runtime: IAgentRuntime,
        store: ITranscriptStore,
        hub: IBroadcastHub,
        working_directory: str | None = None,
    ):
        self._runtime = runtime
        self._store = store
        self._hub = hub
        self._working_directory = working_directory

        self._thread: IAgentThread | None = None
        self._status = AgentStatus()
        self._turn_task: asyncio.Task | None = None

    # Thread management
    def start_thread(self, working_directory: str | None = None) -> IAgentThread:
        """Start a new runtime thread and make it current."""
        self._thread = self._runtime.start_thread(
            working_directory or self._working_directory
        )
        self._status = AgentStatus(status="stable", thread_id=self._thread.id)
        logger.info("Started thread: %s", self._thread.id or "<pending>")
        return self._thread

    def resume_thread(self, thread_id: str) -> IAgentThread:
        """Reattach to a known thread. The local transcript is left untouched."""
        self._thread = self._runtime.resume_thread(thread_id)
        self._status = AgentStatus(status="stable", thread_id=thread_id)
        logger.info("Resumed thread: %s", thread_id)
        return self._thread

    def get_status(self) -> AgentStatus:
        """Current status snapshot."""
        return AgentStatus(status=self._status.status, thread_id=self._status.thread_id)

    @property
    def is_running(self) -> bool:
        return self._status.status == "running"

    # Turn submission
    def submit(self, content: str) -> bool:
        """Accept a user message and start a turn; False when already running."""
        if self.is_running:
            logger.warning("Rejected message: agent is busy")
            return False

        self._set_status("running")
        message = self._store.append("user", content)
        self._hub.publish(
            BroadcastEvent(
                type="message",
                data={"id": message.id, "role": "user", "content": content},
            )
        )
        self._turn_task = asyncio.create_task(self._run_turn(content, self._turn_task))
        return True

    async def send_message(self, content: str) -> None:
        """Run one turn to completion against the runtime.

        Stops reading the stream after a terminal event so nothing from this
        turn is processed once another turn may have been accepted.
        """
        if self._thread is None:
            self._thread = self._runtime.start_thread(self._working_directory)
            self._status.thread_id = self._thread.id
            logger.info("Started thread for first turn")

        self._set_status("running")
        async with aclosing(self._thread.run_streamed(content)) as events:
            async for event in events:
                if not self._owns_turn():
                    logger.debug("Dropping event from superseded turn")
                    break
                if self.handle_event(event):
                    break

    async def _run_turn(
        self, content: str, previous: asyncio.Task | None = None
    ) -> None:
        try:
            if previous is not None and not previous.done():
                # A stopped turn may still be shutting down its runtime process
                await asyncio.wait([previous])
            await self.send_message(content)
        except asyncio.CancelledError:
            logger.info("Turn cancelled")
            raise
        except Exception as e:
            logger.error(f"Error processing message: {e}", exc_info=True)
            if self._owns_turn():
                self._hub.publish(BroadcastEvent(type="error", data={"message": str(e)}))
        finally:
            # Covers streams that end without a terminal event. A stopped turn
            # still unwinding must not touch the status of a newer one.
            if self._owns_turn():
                self._set_status("stable")

    def _owns_turn(self) -> bool:
        """True unless a newer submitted turn has replaced the calling task."""
        task = self._turn_task
        return task is None or task.done() or task is asyncio.current_task()

    def stop(self) -> None:
        """Force status back to stable and abandon the in-flight turn.

        The runtime offers no cooperative cancellation; this only guarantees
        that no further events of the abandoned turn are processed. Tools the
        turn left running are reported as ended with an error.
        """
        if self._turn_task and not self._turn_task.done():
            self._turn_task.cancel()
            self._release_active_tools()
        self._set_status("stable")
        logger.info("Agent stopped")

    def _release_active_tools(self) -> None:
        for tool in self._store.list_active_tools():
            self._store.remove_active_tool(tool.id)
            self._hub.publish(
                BroadcastEvent(type="tool_end", data={"id": tool.id, "status": "error"})
            )

    async def join(self) -> None:
        """Wait for the in-flight turn task, if any."""
        task = self._turn_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def shutdown(self) -> None:
        """Stop and wait for the turn task to unwind."""
        self.stop()
        await self.join()

    # Event handling
    def handle_event(self, event: ThreadEvent) -> bool:
        """Apply one runtime event. Returns True when the turn is finished."""
        logger.debug("Thread event: %s", type(event).__name__)

        if isinstance(event, ThreadStarted):
            self._status.thread_id = event.thread_id
            logger.info("Thread started: %s", event.thread_id)
        elif isinstance(event, TurnStarted):
            logger.debug("Turn started")
        elif isinstance(event, TurnCompleted):
            usage = event.usage.to_dict()
            logger.info("Turn completed", extra={"context": {"usage": usage}})
            self._set_status("stable")
            self._hub.publish(BroadcastEvent(type="turn_completed", data={"usage": usage}))
            return True
        elif isinstance(event, TurnFailed):
            logger.error("Turn failed: %s", event.message)
            self._set_status("stable")
            self._hub.publish(
                BroadcastEvent(type="turn_failed", data={"error": {"message": event.message}})
            )
            return True
        elif isinstance(event, ThreadError):
            logger.error("Thread error: %s", event.message)
            self._set_status("stable")
            self._hub.publish(BroadcastEvent(type="error", data={"message": event.message}))
            return True
        elif isinstance(event, ItemStarted):
            self._handle_item_started(event)
        elif isinstance(event, ItemUpdated):
            logger.debug("Item updated: %s", type(event.item).__name__)
        elif isinstance(event, ItemCompleted):
            self._handle_item_completed(event)
        else:
            logger.debug("Ignoring event: %s", event)
        return False

    def _handle_item_started(self, event: ItemStarted) -> None:
        item = event.item
        if isinstance(item, CommandExecutionItem):
            tool_id = item.id or f"cmd-{uuid.uuid4().hex[:12]}"
            self._store.add_active_tool(tool_id, item.command)
            self._hub.publish(
                BroadcastEvent(type="tool_start", data={"id": tool_id, "name": item.command})
            )

    def _handle_item_completed(self, event: ItemCompleted) -> None:
        item = event.item

        if isinstance(item, AgentMessageItem):
            message = self._store.append("assistant", item.text)
            self._hub.publish(
                BroadcastEvent(
                    type="message",
                    data={"id": message.id, "role": "assistant", "content": item.text},
                )
            )
        elif isinstance(item, CommandExecutionItem):
            status = (
                "success"
                if item.exit_code == 0 or item.status == "completed"
                else "error"
            )
            if item.id:
                self._store.remove_active_tool(item.id)
                self._hub.publish(
                    BroadcastEvent(type="tool_end", data={"id": item.id, "status": status})
                )

            exit_text = f" (exit code: {item.exit_code})" if item.exit_code is not None else ""
            self._store.append(
                "tool_result",
                f"Command {item.command} {item.status}{exit_text}",
                status=status,
                tool_use_id=item.id,
            )
        elif isinstance(item, FileChangeItem):
            changes = ", ".join(
                f"{FILE_CHANGE_KINDS.get(c.kind, c.kind)} {c.path}" for c in item.changes
            )
            self._store.append(
                "tool_result",
                f"File changes: {changes}",
                status="success",
                tool_use_id=item.id,
            )
        else:
            # Reasoning and todo lists are left to higher layers
            logger.debug("Item completed: %s", type(item).__name__)

    def _set_status(self, status: str) -> None:
        if self._status.status == status:
            return
        self._status.status = status
        self._hub.publish(BroadcastEvent(type="status_change", data={"status": status}))
