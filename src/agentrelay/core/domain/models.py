"""
Core Domain Models

Data models shared by the turn engine, the tool dispatcher and the run
driver: tool call requests and results, model requests and responses,
usage accounting, the mutable per-run context and the immutable run result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from agentrelay.core.domain.errors import RunError
from agentrelay.core.domain.items import ConversationItem

if TYPE_CHECKING:
    from agentrelay.core.domain.agent import AgentDefinition, ModelSettings
    from agentrelay.core.interfaces.session import SessionProtocol


class ToolOutcome(str, Enum):
    """Outcome of a single tool invocation."""

    SUCCESS = "success"
    ERROR = "error"


class RunStatus(str, Enum):
    """Terminal status of a run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ToolCallRequest:
    """
    A tool invocation requested by the model.

    Attributes:
        call_id: Identifier unique within one turn, used to correlate results
        name: Name of the tool (or handoff tool) to invoke
        arguments: Argument payload, either a dict or a raw JSON string
    """

    call_id: str
    name: str
    arguments: dict[str, Any] | str = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCallResult:
    """
    Outcome of one tool call, correlated to its request by ``call_id``.

    Attributes:
        call_id: Identifier of the originating ToolCallRequest
        name: Tool name
        outcome: success or error
        output: Tool output (after tool_output guardrails) on success
        error: Human-readable error description on failure
    """

    call_id: str
    name: str
    outcome: ToolOutcome
    output: Any = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome is ToolOutcome.SUCCESS

    @classmethod
    def ok(cls, request: ToolCallRequest, output: Any) -> ToolCallResult:
        return cls(request.call_id, request.name, ToolOutcome.SUCCESS, output=output)

    @classmethod
    def failed(cls, request: ToolCallRequest, error: str) -> ToolCallResult:
        return cls(request.call_id, request.name, ToolOutcome.ERROR, error=error)


@dataclass(frozen=True)
class HandoffSignal:
    """Request from the model to transfer control to another agent."""

    target: str
    call_id: str | None = None


@dataclass
class Usage:
    """Token and request counters accumulated over a run."""

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def record_response(self, reported: Usage) -> None:
        """Count one model request and add the tokens it reported."""
        self.requests += 1
        self.input_tokens += reported.input_tokens
        self.output_tokens += reported.output_tokens
        self.total_tokens += reported.total_tokens

    def add(self, other: Usage) -> None:
        self.requests += other.requests
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens

    def copy(self) -> Usage:
        return Usage(
            requests=self.requests,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
        )


@dataclass(frozen=True)
class ToolDefinition:
    """Schema of one callable tool as presented to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True)
class ModelRequest:
    """Everything the model provider needs for one call."""

    agent_name: str
    instructions: str
    conversation: tuple[ConversationItem, ...]
    model: str
    settings: ModelSettings
    tools: tuple[ToolDefinition, ...] = ()


@dataclass(frozen=True)
class ModelResponse:
    """
    Structured response from one model call.

    Exactly one of message, tool_calls or handoff is expected to drive the
    turn; when several are present the engine gives priority to handoff,
    then tool calls, then message.
    """

    message: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    handoff: HandoffSignal | None = None
    usage: Usage = field(default_factory=Usage)


@dataclass(frozen=True)
class TextDelta:
    """Partial assistant text from a streaming model call."""

    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    """Partial tool call data from a streaming model call."""

    index: int
    call_id: str | None = None
    name: str | None = None
    arguments: str = ""


class CancellationToken:
    """Run-level cancellation signal observed at engine checkpoints."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class RunContext:
    """
    Mutable state of one in-flight run.

    Owned exclusively by the turn engine. ``transcript`` is the full,
    append-only record of the run (session history first); ``working`` is
    the conversation view sent to the model, which a handoff history filter
    may narrow.
    """

    agent: AgentDefinition
    transcript: list[ConversationItem] = field(default_factory=list)
    working: list[ConversationItem] = field(default_factory=list)
    history_length: int = 0
    turn: int = 0
    usage: Usage = field(default_factory=Usage)
    session: SessionProtocol | None = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    user_context: dict[str, Any] = field(default_factory=dict)

    def append(self, item: ConversationItem) -> None:
        """Append an item to both the transcript and the working conversation."""
        self.transcript.append(item)
        self.working.append(item)

    @property
    def new_items(self) -> list[ConversationItem]:
        """Items produced by this run, excluding loaded session history."""
        return self.transcript[self.history_length :]


@dataclass(frozen=True)
class RunResult:
    """
    Terminal outcome of a run.

    Attributes:
        status: completed, failed or cancelled
        final_output: Final answer text (None unless completed)
        transcript: Session history followed by every item of this run
        new_items: Items produced by this run only
        usage: Usage accumulated up to termination
        last_agent: Name of the agent active at termination
        turns: Number of completed model-call cycles
        error: Terminal error for failed or cancelled runs
    """

    status: RunStatus
    final_output: str | None
    transcript: tuple[ConversationItem, ...]
    new_items: tuple[ConversationItem, ...]
    usage: Usage
    last_agent: str
    turns: int
    error: RunError | None = None

    @property
    def is_success(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def raise_for_error(self) -> None:
        """Re-raise the terminal error, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "final_output": self.final_output,
            "transcript": [item.to_dict() for item in self.transcript],
            "new_items": [item.to_dict() for item in self.new_items],
            "usage": {
                "requests": self.usage.requests,
                "input_tokens": self.usage.input_tokens,
                "output_tokens": self.usage.output_tokens,
                "total_tokens": self.usage.total_tokens,
            },
            "last_agent": self.last_agent,
            "turns": self.turns,
            "error": self.error.to_dict() if self.error else None,
        }
