"""Codex CLI runtime: one `codex exec` subprocess per turn."""

import asyncio
import json
import os
import re
from typing import Any, AsyncIterator

from ..logging_config import get_logger
from ..models import ThreadEvent, ThreadStarted, parse_thread_event

logger = get_logger(__name__)

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")

# stdout lines can carry large aggregated command output
STREAM_LIMIT = 16 * 1024 * 1024


class CodexExecError(RuntimeError):
    """The codex process failed or produced output that is not JSON."""


def _toml_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else json.dumps(key)


def to_toml_value(value: Any) -> str:
    """Render a Python value as an inline TOML value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(to_toml_value(v) for v in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(
            f"{_toml_key(str(k))} = {to_toml_value(v)}" for k, v in value.items()
        )
        return "{" + items + "}"
    raise TypeError(f"Unsupported config value type: {type(value).__name__}")


def flatten_config(config: dict, prefix: str = "") -> list[tuple[str, str]]:
    """Flatten nested tables into (dotted.key, toml_value) pairs for --config."""
    pairs = []
    for key, value in config.items():
        path = f"{prefix}.{_toml_key(key)}" if prefix else _toml_key(key)
        if isinstance(value, dict) and value:
            pairs.extend(flatten_config(value, path))
        else:
            pairs.append((path, to_toml_value(value)))
    return pairs


class CodexRuntime:
    """Runs the Codex CLI in JSON streaming mode."""

    def __init__(
        self,
        executable: str = "codex",
        api_key: str | None = None,
        config: dict | None = None,
        model: str | None = None,
        sandbox_mode: str | None = None,
        approval_policy: str | None = None,
        working_directory: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self._executable = executable
        self._api_key = api_key
        self._config = config or {}
        self._model = model
        self._sandbox_mode = sandbox_mode
        self._approval_policy = approval_policy
        self._working_directory = working_directory
        self._env = env

    def start_thread(self, working_directory: str | None = None) -> "CodexThread":
        """Create a new conversation thread."""
        return CodexThread(self, None, working_directory or self._working_directory)

    def resume_thread(self, thread_id: str) -> "CodexThread":
        """Reattach to an existing conversation thread."""
        return CodexThread(self, thread_id, self._working_directory)

    def build_args(
        self, thread_id: str | None, working_directory: str | None
    ) -> list[str]:
        """Command line for one turn."""
        args = [self._executable, "exec", "--experimental-json"]
        if self._model:
            args += ["--model", self._model]
        if self._sandbox_mode:
            args += ["--sandbox", self._sandbox_mode]
        if working_directory:
            args += ["--cd", working_directory]
        args.append("--skip-git-repo-check")

        overrides = dict(self._config)
        if self._approval_policy:
            overrides["approval_policy"] = self._approval_policy
        for key, value in flatten_config(overrides):
            args += ["--config", f"{key}={value}"]

        if thread_id:
            args += ["resume", thread_id]
        return args

    def build_env(self) -> dict[str, str]:
        env = dict(self._env if self._env is not None else os.environ)
        if self._api_key:
            env["CODEX_API_KEY"] = self._api_key
        return env


class CodexThread:
    """A Codex conversation; the id is learned from thread.started."""

    def __init__(
        self,
        runtime: CodexRuntime,
        thread_id: str | None,
        working_directory: str | None,
    ):
        self._runtime = runtime
        self._id = thread_id
        self._working_directory = working_directory

    @property
    def id(self) -> str | None:
        return self._id

    async def run_streamed(self, content: str) -> AsyncIterator[ThreadEvent]:
        """Execute one turn and yield its lifecycle events in arrival order."""
        args = self._runtime.build_args(self._id, self._working_directory)
        logger.debug("Spawning codex: %s", args[:3])

        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._runtime.build_env(),
            limit=STREAM_LIMIT,
        )
        # Drained concurrently so a chatty stderr cannot stall stdout
        stderr_task = asyncio.create_task(proc.stderr.read())

        try:
            proc.stdin.write(content.encode("utf-8"))
            await proc.stdin.drain()
            proc.stdin.close()

            async for raw_line in proc.stdout:
                line = raw_line.decode("utf-8").strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except ValueError as e:
                    raise CodexExecError(f"Failed to parse codex event: {line[:200]}") from e

                event = parse_thread_event(data)
                if isinstance(event, ThreadStarted):
                    self._id = event.thread_id
                yield event

            returncode = await proc.wait()
            stderr = await stderr_task
            if returncode != 0:
                detail = stderr.decode("utf-8", errors="replace").strip()
                raise CodexExecError(f"codex exited with code {returncode}: {detail}")
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            if not stderr_task.done():
                stderr_task.cancel()
