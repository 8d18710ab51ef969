"""Session host: HTTP facade, transcript and live fanout for an agent runtime."""

from .agent import AgentEventRouter, IAgentEventRouter
from .app import Application, IApplication
from .broadcast import BroadcastHub, IBroadcastHub, QueueTransport
from .models import (
    ActiveTool,
    AgentStatus,
    BroadcastEvent,
    Message,
    MessagesPage,
    PaginationParams,
)
from .runtime import AnthropicRuntime, CodexRuntime, IAgentRuntime, IAgentThread
from .transcript import ITranscriptStore, TranscriptStore

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Message",
    "ActiveTool",
    "PaginationParams",
    "MessagesPage",
    "AgentStatus",
    "BroadcastEvent",
    # Components
    "ITranscriptStore",
    "TranscriptStore",
    "IBroadcastHub",
    "BroadcastHub",
    "QueueTransport",
    "IAgentEventRouter",
    "AgentEventRouter",
    "IAgentRuntime",
    "IAgentThread",
    "CodexRuntime",
    "AnthropicRuntime",
]
