"""agentrelay - multi-agent run engine with tools, handoffs and guardrails."""

from agentrelay.application.config import RunConfig, load_run_config
from agentrelay.application.runner import Runner, StreamedRun
from agentrelay.core.domain.agent import AgentBuilder, AgentDefinition, Handoff, ModelSettings
from agentrelay.core.domain.errors import (
    Cancelled,
    ConfigurationError,
    ErrorKind,
    GuardrailDenied,
    MaxTurnsExceeded,
    ModelCallFailed,
    RunError,
    UnknownHandoffTarget,
)
from agentrelay.core.domain.events import (
    AgentUpdatedEvent,
    RawResponseEvent,
    RunCompletedEvent,
    RunFailedEvent,
    RunItemEvent,
    StreamEvent,
    transcript_from_events,
)
from agentrelay.core.domain.guardrails import (
    FunctionGuardrail,
    GuardrailContext,
    GuardrailStage,
    GuardrailVerdict,
    guardrail,
)
from agentrelay.core.domain.handoffs import keep_last, remove_tool_items, user_messages_only
from agentrelay.core.domain.items import (
    AssistantMessage,
    ConversationItem,
    HandoffMarker,
    ToolCallItem,
    ToolResultItem,
    UserMessage,
)
from agentrelay.core.domain.models import (
    CancellationToken,
    HandoffSignal,
    ModelRequest,
    ModelResponse,
    RunResult,
    RunStatus,
    TextDelta,
    ToolCallDelta,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)
from agentrelay.core.interfaces.hooks import AgentHooks, RunHooks
from agentrelay.infrastructure.persistence.file_session import FileSession
from agentrelay.infrastructure.persistence.memory_session import InMemorySession
from agentrelay.infrastructure.tools.function_tool import FunctionTool, function_tool

__version__ = "0.1.0"

__all__ = [
    "AgentBuilder",
    "AgentDefinition",
    "AgentHooks",
    "AgentUpdatedEvent",
    "AssistantMessage",
    "CancellationToken",
    "Cancelled",
    "ConfigurationError",
    "ConversationItem",
    "ErrorKind",
    "FileSession",
    "FunctionGuardrail",
    "FunctionTool",
    "GuardrailContext",
    "GuardrailDenied",
    "GuardrailStage",
    "GuardrailVerdict",
    "Handoff",
    "HandoffMarker",
    "HandoffSignal",
    "InMemorySession",
    "MaxTurnsExceeded",
    "ModelCallFailed",
    "ModelRequest",
    "ModelResponse",
    "ModelSettings",
    "RawResponseEvent",
    "RunCompletedEvent",
    "RunConfig",
    "RunError",
    "RunFailedEvent",
    "RunHooks",
    "RunItemEvent",
    "RunResult",
    "RunStatus",
    "Runner",
    "StreamEvent",
    "StreamedRun",
    "TextDelta",
    "ToolCallDelta",
    "ToolCallItem",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolResultItem",
    "UnknownHandoffTarget",
    "Usage",
    "UserMessage",
    "function_tool",
    "guardrail",
    "keep_last",
    "load_run_config",
    "remove_tool_items",
    "transcript_from_events",
    "user_messages_only",
]
