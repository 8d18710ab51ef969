"""Tests for AgentEventRouter."""

import asyncio

import pytest

from session_host.models import (
    AgentMessageItem,
    CommandExecutionItem,
    FileChangeItem,
    FileUpdateChange,
    ItemCompleted,
    ItemStarted,
    ItemUpdated,
    PaginationParams,
    ReasoningItem,
    ThreadError,
    ThreadStarted,
    TodoEntry,
    TodoListItem,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
    UnknownEvent,
    Usage,
)


def roles(store) -> list[str]:
    return [m.role for m in store.all_messages()]


class TestRouterSubmit:
    """Tests for AgentEventRouter.submit()."""

    @pytest.mark.asyncio
    async def test_submit_records_user_message(self, router, store, subscriber):
        """Test that an accepted submission is appended and broadcast."""
        assert router.submit("Hello") is True

        assert roles(store) == ["user"]
        assert router.get_status().status == "running"
        assert subscriber.events()[:2] == [
            ("status_change", {"status": "running"}),
            ("message", {"id": 0, "role": "user", "content": "Hello"}),
        ]

        await router.join()
        assert router.get_status().status == "stable"

    @pytest.mark.asyncio
    async def test_submit_forwards_content(self, router, runtime):
        """Test that the runtime receives the user content."""
        router.submit("Run the tests")
        await router.join()

        assert runtime.inputs == ["Run the tests"]

    @pytest.mark.asyncio
    async def test_first_turn_starts_thread(self, router, runtime):
        """Test that a thread is started lazily in the working directory."""
        router.submit("one")
        await router.join()
        router.submit("two")
        await router.join()

        assert runtime.started == ["/work"]

    @pytest.mark.asyncio
    async def test_busy_submission_rejected(self, router, runtime, store, subscriber):
        """Test that a second submission while running changes nothing."""
        gate = asyncio.Event()
        runtime.queue(
            TurnStarted(),
            ItemStarted(item=CommandExecutionItem(id="c1", command="sleep 5")),
            gate,
            TurnCompleted(),
        )
        router.submit("first")
        await asyncio.sleep(0.01)
        frames_before = len(subscriber.frames)

        assert router.submit("second") is False
        assert roles(store) == ["user"]
        assert [t.id for t in store.list_active_tools()] == ["c1"]
        assert len(subscriber.frames) == frames_before

        gate.set()
        await router.join()
        assert runtime.inputs == ["first"]


class TestRouterTurnLifecycle:
    """Tests for turn-level events."""

    @pytest.mark.asyncio
    async def test_turn_completed_publishes_usage(self, router, runtime, subscriber):
        """Test completion: back to stable plus a usage summary."""
        runtime.queue(
            TurnStarted(),
            TurnCompleted(usage=Usage(input_tokens=10, cached_input_tokens=2, output_tokens=5)),
        )
        router.submit("hi")
        await router.join()

        assert subscriber.events()[-2:] == [
            ("status_change", {"status": "stable"}),
            (
                "turn_completed",
                {"usage": {"input_tokens": 10, "cached_input_tokens": 2, "output_tokens": 5}},
            ),
        ]

    @pytest.mark.asyncio
    async def test_turn_failed(self, router, runtime, store, subscriber):
        """Test failure: stable, error broadcast, no transcript entry."""
        runtime.queue(TurnStarted(), TurnFailed(message="model overloaded"))
        router.submit("hi")
        await router.join()

        assert router.get_status().status == "stable"
        assert ("turn_failed", {"error": {"message": "model overloaded"}}) in subscriber.events()
        assert roles(store) == ["user"]

    @pytest.mark.asyncio
    async def test_thread_error(self, router, runtime, store, subscriber):
        """Test a top-level runtime error event."""
        runtime.queue(ThreadError(message="stream disconnected"))
        router.submit("hi")
        await router.join()

        assert router.get_status().status == "stable"
        assert ("error", {"message": "stream disconnected"}) in subscriber.events()
        assert roles(store) == ["user"]

    @pytest.mark.asyncio
    async def test_runtime_exception_recovers(self, router, runtime, store, subscriber):
        """Test that an exception from the runtime is contained."""
        runtime.queue(TurnStarted(), RuntimeError("codex exited with code 1"))
        router.submit("hi")
        await router.join()

        assert router.get_status().status == "stable"
        assert ("error", {"message": "codex exited with code 1"}) in subscriber.events()
        assert roles(store) == ["user"]

    @pytest.mark.asyncio
    async def test_stream_end_without_terminal_event(self, router, runtime, subscriber):
        """Test that an exhausted stream still returns to stable."""
        runtime.queue(TurnStarted())
        router.submit("hi")
        await router.join()

        assert router.get_status().status == "stable"
        assert subscriber.events()[-1] == ("status_change", {"status": "stable"})

    @pytest.mark.asyncio
    async def test_events_after_terminal_are_not_processed(self, router, runtime, store):
        """Test that the stream is abandoned after turn completion."""
        runtime.queue(
            TurnCompleted(),
            ItemCompleted(item=AgentMessageItem(id="m1", text="late")),
        )
        router.submit("hi")
        await router.join()

        assert roles(store) == ["user"]

    @pytest.mark.asyncio
    async def test_thread_started_records_id(self, router, runtime):
        """Test that the runtime's thread id is exposed in status."""
        runtime.queue(ThreadStarted(thread_id="thread-42"), TurnCompleted())
        router.submit("hi")
        await router.join()

        assert router.get_status().thread_id == "thread-42"

    @pytest.mark.asyncio
    async def test_single_status_change_per_transition(self, router, subscriber):
        """Test that running and stable are each announced once."""
        router.submit("hi")
        await router.join()

        statuses = [d["status"] for t, d in subscriber.events() if t == "status_change"]
        assert statuses == ["running", "stable"]


class TestRouterItems:
    """Tests for item events."""

    @pytest.mark.asyncio
    async def test_agent_message(self, router, runtime, store, subscriber):
        """Test that agent text becomes an assistant message."""
        runtime.queue(
            ItemCompleted(item=AgentMessageItem(id="m1", text="Done.")),
            TurnCompleted(),
        )
        router.submit("hi")
        await router.join()

        messages = store.all_messages()
        assert [(m.role, m.content) for m in messages] == [
            ("user", "hi"),
            ("assistant", "Done."),
        ]
        assert ("message", {"id": 1, "role": "assistant", "content": "Done."}) in subscriber.events()

    @pytest.mark.asyncio
    async def test_tool_lifecycle_success(self, router, runtime, store, subscriber):
        """Test a command that exits 0."""
        runtime.queue(
            ItemStarted(item=CommandExecutionItem(id="c1", command="ls")),
            ItemCompleted(
                item=CommandExecutionItem(id="c1", command="ls", exit_code=0, status="completed")
            ),
            TurnCompleted(),
        )
        router.submit("list files")
        await router.join()

        assert store.list_active_tools() == []
        results = [m for m in store.all_messages() if m.role == "tool_result"]
        assert len(results) == 1
        assert results[0].status == "success"
        assert results[0].tool_use_id == "c1"
        assert results[0].content == "Command ls completed (exit code: 0)"

        events = subscriber.events()
        assert ("tool_start", {"id": "c1", "name": "ls"}) in events
        assert ("tool_end", {"id": "c1", "status": "success"}) in events

    @pytest.mark.asyncio
    async def test_tool_lifecycle_error(self, router, runtime, store, subscriber):
        """Test a command with a nonzero exit code."""
        runtime.queue(
            ItemStarted(item=CommandExecutionItem(id="c2", command="false")),
            ItemCompleted(
                item=CommandExecutionItem(id="c2", command="false", exit_code=1, status="failed")
            ),
            TurnCompleted(),
        )
        router.submit("fail")
        await router.join()

        result = store.all_messages()[-1]
        assert result.status == "error"
        assert result.content == "Command false failed (exit code: 1)"
        assert ("tool_end", {"id": "c2", "status": "error"}) in subscriber.events()

    @pytest.mark.asyncio
    async def test_tool_without_exit_code(self, router, runtime, store):
        """Test summary text when no exit code is reported."""
        runtime.queue(
            ItemCompleted(item=CommandExecutionItem(id="c3", command="pwd", status="completed")),
            TurnCompleted(),
        )
        router.submit("where")
        await router.join()

        result = store.all_messages()[-1]
        assert result.content == "Command pwd completed"
        assert result.status == "success"

    @pytest.mark.asyncio
    async def test_active_tool_visible_mid_turn(self, router, runtime, store):
        """Test that a started command is listed until it completes."""
        gate = asyncio.Event()
        runtime.queue(
            ItemStarted(item=CommandExecutionItem(id="c1", command="make")),
            gate,
            ItemCompleted(
                item=CommandExecutionItem(id="c1", command="make", exit_code=0, status="completed")
            ),
            TurnCompleted(),
        )
        router.submit("build")
        await asyncio.sleep(0.01)

        assert [(t.id, t.name) for t in store.list_active_tools()] == [("c1", "make")]

        gate.set()
        await router.join()
        assert store.list_active_tools() == []

    @pytest.mark.asyncio
    async def test_tool_without_id_gets_generated_id(self, router, runtime, store, subscriber):
        """Test fallback id for a command the runtime did not identify."""
        runtime.queue(
            ItemStarted(item=CommandExecutionItem(id=None, command="echo hi")),
            TurnCompleted(),
        )
        router.submit("echo")
        await router.join()

        tools = store.list_active_tools()
        assert len(tools) == 1
        assert tools[0].id.startswith("cmd-")
        assert ("tool_start", {"id": tools[0].id, "name": "echo hi"}) in subscriber.events()

    @pytest.mark.asyncio
    async def test_file_change(self, router, runtime, store):
        """Test that file edits are summarized as a successful tool result."""
        runtime.queue(
            ItemCompleted(
                item=FileChangeItem(
                    id="f1",
                    changes=[
                        FileUpdateChange(path="a.py", kind="add"),
                        FileUpdateChange(path="b.py", kind="update"),
                        FileUpdateChange(path="c.py", kind="delete"),
                    ],
                )
            ),
            TurnCompleted(),
        )
        router.submit("edit")
        await router.join()

        result = store.all_messages()[-1]
        assert result.role == "tool_result"
        assert result.status == "success"
        assert result.content == "File changes: created a.py, modified b.py, deleted c.py"

    @pytest.mark.asyncio
    async def test_informational_items_ignored(self, router, runtime, store, subscriber):
        """Test that reasoning, plans and unknown events leave no trace."""
        runtime.queue(
            TurnStarted(),
            ItemCompleted(item=ReasoningItem(id="r1", text="thinking")),
            ItemUpdated(item=TodoListItem(id="t1", items=[TodoEntry(text="step 1")])),
            ItemCompleted(item=TodoListItem(id="t1", items=[TodoEntry(text="step 1", completed=True)])),
            UnknownEvent(type="thread.compacted"),
            TurnCompleted(),
        )
        router.submit("plan")
        await router.join()

        assert roles(store) == ["user"]
        assert subscriber.event_types() == [
            "status_change",
            "message",
            "status_change",
            "turn_completed",
        ]


class TestRouterStopAndResume:
    """Tests for stop() and resume_thread()."""

    @pytest.mark.asyncio
    async def test_stop_forces_stable(self, router, runtime, subscriber):
        """Test that stop overrides status and abandons the turn."""
        gate = asyncio.Event()
        runtime.queue(TurnStarted(), gate, ItemCompleted(item=AgentMessageItem(id="m", text="x")))
        router.submit("long task")
        await asyncio.sleep(0.01)

        router.stop()
        assert router.get_status().status == "stable"

        gate.set()
        await router.join()
        assert subscriber.events()[-1] == ("status_change", {"status": "stable"})

    @pytest.mark.asyncio
    async def test_stop_when_idle(self, router, subscriber):
        """Test that stopping an idle agent publishes nothing."""
        router.stop()
        assert router.get_status().status == "stable"
        assert subscriber.events() == []

    @pytest.mark.asyncio
    async def test_submit_after_stop(self, router, runtime):
        """Test that a new turn is accepted once stopped."""
        gate = asyncio.Event()
        runtime.queue(TurnStarted(), gate, TurnCompleted())
        router.submit("first")
        await asyncio.sleep(0.01)
        router.stop()
        await router.join()

        assert router.submit("second") is True
        await router.join()
        assert runtime.inputs == ["first", "second"]

    @pytest.mark.asyncio
    async def test_resubmit_while_stopped_turn_unwinds(self, router, runtime, subscriber):
        """Test the busy gate holds while a stopped turn is still shutting down."""
        runtime.cleanup_delay = 0.05
        runtime.queue(TurnStarted(), asyncio.Event())
        second_gate = asyncio.Event()
        runtime.queue(TurnStarted(), second_gate, TurnCompleted())

        router.submit("first")
        await asyncio.sleep(0.01)
        router.stop()
        await asyncio.sleep(0.01)
        assert router.submit("second") is True

        await asyncio.sleep(0.1)

        assert router.get_status().status == "running"
        assert router.submit("third") is False
        assert runtime.inputs == ["first", "second"]
        assert runtime.max_active == 1

        second_gate.set()
        await router.join()
        assert router.get_status().status == "stable"
        statuses = [d["status"] for t, d in subscriber.events() if t == "status_change"]
        assert statuses == ["running", "stable", "running", "stable"]

    @pytest.mark.asyncio
    async def test_stop_releases_active_tools(self, router, runtime, store, subscriber):
        """Test that tools of an abandoned turn stop being listed."""
        runtime.queue(
            TurnStarted(),
            ItemStarted(item=CommandExecutionItem(id="c1", command="sleep 60")),
            asyncio.Event(),
        )
        router.submit("run it")
        await asyncio.sleep(0.01)
        assert [t.id for t in store.list_active_tools()] == ["c1"]

        router.stop()
        await router.join()

        assert store.list_active_tools() == []
        assert ("tool_end", {"id": "c1", "status": "error"}) in subscriber.events()

    @pytest.mark.asyncio
    async def test_resume_thread(self, router, runtime, store):
        """Test reattaching to a thread without touching the transcript."""
        store.append("user", "earlier")

        router.resume_thread("thread-7")

        status = router.get_status()
        assert status.status == "stable"
        assert status.thread_id == "thread-7"
        assert store.query(PaginationParams()).total == 1

        router.submit("continue")
        await router.join()
        assert runtime.resumed == ["thread-7"]
        assert runtime.started == []
