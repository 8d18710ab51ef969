"""Pytest configuration and fixtures."""

import asyncio
import json
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from session_host.models import ThreadStarted, TurnCompleted, TurnStarted  # noqa: E402


class RecordingTransport:
    """Subscriber transport that keeps every frame; can be told to fail."""

    def __init__(self):
        self.frames: list[str] = []
        self.fail = False
        self.closed = False
        self._callbacks = []

    def send(self, frame: str) -> None:
        if self.fail:
            raise ConnectionResetError("broken pipe")
        self.frames.append(frame)

    def on_close(self, callback) -> None:
        self._callbacks.append(callback)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for callback in self._callbacks:
            callback()

    def events(self) -> list[tuple[str, object]]:
        """Named events received so far, as (type, data) pairs."""
        parsed = []
        for frame in self.frames:
            if not frame.startswith("event: "):
                continue
            event_line, data_line = frame.strip().split("\n")
            parsed.append(
                (event_line[len("event: "):], json.loads(data_line[len("data: "):]))
            )
        return parsed

    def event_types(self) -> list[str]:
        return [event_type for event_type, _ in self.events()]


class ScriptedThread:
    """Thread whose turns replay scripts queued on the runtime.

    A script step is a ThreadEvent to yield, an asyncio.Event to wait on, or
    an Exception to raise.
    """

    def __init__(self, runtime: "ScriptedRuntime", thread_id: str | None = None):
        self._runtime = runtime
        self._id = thread_id

    @property
    def id(self) -> str | None:
        return self._id

    async def run_streamed(self, content: str):
        self._runtime.inputs.append(content)
        if self._runtime.scripts:
            script = self._runtime.scripts.pop(0)
        else:
            script = [TurnStarted(), TurnCompleted()]

        self._runtime.active += 1
        self._runtime.max_active = max(self._runtime.max_active, self._runtime.active)
        try:
            for step in script:
                if isinstance(step, asyncio.Event):
                    await step.wait()
                    continue
                if isinstance(step, Exception):
                    raise step
                if isinstance(step, ThreadStarted):
                    self._id = step.thread_id
                yield step
        finally:
            # Like a subprocess that takes a moment to exit after kill()
            if self._runtime.cleanup_delay:
                await asyncio.sleep(self._runtime.cleanup_delay)
            self._runtime.active -= 1


class ScriptedRuntime:
    """In-process stand-in for the agent runtime."""

    def __init__(self):
        self.scripts: list[list] = []
        self.inputs: list[str] = []
        self.started: list[str | None] = []
        self.resumed: list[str] = []
        self.cleanup_delay = 0.0
        self.active = 0
        self.max_active = 0

    def queue(self, *steps) -> None:
        self.scripts.append(list(steps))

    def start_thread(self, working_directory: str | None = None) -> ScriptedThread:
        self.started.append(working_directory)
        return ScriptedThread(self)

    def resume_thread(self, thread_id: str) -> ScriptedThread:
        self.resumed.append(thread_id)
        return ScriptedThread(self, thread_id)


@pytest.fixture
def store():
    """Create an empty transcript store."""
    from session_host.transcript import TranscriptStore

    return TranscriptStore()


@pytest.fixture
def hub():
    """Create a broadcast hub with no subscribers."""
    from session_host.broadcast import BroadcastHub

    return BroadcastHub()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def runtime():
    return ScriptedRuntime()


@pytest.fixture
def subscriber(hub):
    """A recording subscriber already registered on the hub."""
    t = RecordingTransport()
    hub.subscribe("observer", t)
    return t


@pytest_asyncio.fixture
async def router(runtime, store, hub):
    """Create AgentEventRouter over the scripted runtime."""
    from session_host.agent import AgentEventRouter

    r = AgentEventRouter(
        runtime=runtime, store=store, hub=hub, working_directory="/work"
    )
    yield r
    await r.shutdown()


@pytest_asyncio.fixture
async def application(runtime):
    """Create and start an Application around the scripted runtime."""
    from session_host.app import Application
    from session_host.config import Settings

    app = Application(settings=Settings(working_directory="/work"), runtime=runtime)
    await app.start()
    yield app
    await app.stop()
