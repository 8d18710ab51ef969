"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .agent import AgentEventRouter
from .broadcast import BroadcastHub
from .config import Settings, load_claude_config
from .logging_config import get_logger
from .runtime import (
    AnthropicRuntime,
    CodexRuntime,
    IAgentRuntime,
    build_codex_config,
    ensure_codex_home_config,
)
from .transcript import TranscriptStore

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Stop the agent and clear the transcript."""
        ...


def create_runtime(settings: Settings) -> IAgentRuntime:
    """Build the configured agent runtime."""
    if settings.agent_runtime == "anthropic":
        return AnthropicRuntime(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
        )

    ensure_codex_home_config(settings.openai_api_key)
    claude_config = load_claude_config(settings.claude_config_path)
    return CodexRuntime(
        executable=settings.codex_path,
        api_key=settings.openai_api_key,
        config=build_codex_config({}, claude_config),
        model=settings.codex_model,
        sandbox_mode=settings.codex_sandbox_mode,
        approval_policy=settings.codex_approval_policy,
        working_directory=settings.working_directory,
    )


class Application:
    """Owns the transcript store, broadcast hub, runtime and event router."""

    def __init__(
        self,
        settings: Settings | None = None,
        runtime: IAgentRuntime | None = None,
    ):
        self._settings = settings or Settings()
        self._runtime_override = runtime

        # Components (will be initialized in start())
        self._store: TranscriptStore | None = None
        self._hub: BroadcastHub | None = None
        self._runtime: IAgentRuntime | None = None
        self._router: AgentEventRouter | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        if self._router is not None:
            return
        logger.info("Starting application")

        # 1. TranscriptStore (no dependencies)
        self._store = TranscriptStore()

        # 2. BroadcastHub (no dependencies)
        self._hub = BroadcastHub()

        # 3. Runtime (external)
        self._runtime = self._runtime_override or create_runtime(self._settings)
        logger.info("Agent runtime initialized: %s", type(self._runtime).__name__)

        # 4. AgentEventRouter (depends on all of the above)
        self._router = AgentEventRouter(
            runtime=self._runtime,
            store=self._store,
            hub=self._hub,
            working_directory=self._settings.working_directory,
        )
        if self._settings.resume_thread_id:
            self._router.resume_thread(self._settings.resume_thread_id)

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._router:
            await self._router.shutdown()
        if self._hub:
            self._hub.close_all()
            logger.info("Subscribers closed")
        self._router = None
        self._runtime = None
        self._hub = None
        self._store = None
        logger.info("Application stopped")

    async def reset(self) -> None:
        """Stop the agent and clear the transcript."""
        if self._router:
            await self._router.shutdown()
        if self._store:
            self._store.clear()
            self._store.clear_active_tools()
            logger.info("Transcript cleared")

    @property
    def store(self) -> TranscriptStore:
        """Get transcript store instance."""
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def hub(self) -> BroadcastHub:
        """Get broadcast hub instance."""
        if not self._hub:
            raise RuntimeError("Application not started")
        return self._hub

    @property
    def router(self) -> AgentEventRouter:
        """Get agent event router instance."""
        if not self._router:
            raise RuntimeError("Application not started")
        return self._router
