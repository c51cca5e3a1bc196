"""
Lifecycle Hooks

Callbacks fired by the turn engine. Subclass and override the methods of
interest; every default is a no-op. Exceptions raised by a hook propagate
out of the run.

RunHooks are registered on a RunConfig and see every agent of the run.
AgentHooks are registered on an AgentDefinition and only fire while that
agent is active.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agentrelay.core.domain.agent import AgentDefinition
    from agentrelay.core.domain.models import (
        ModelRequest,
        ModelResponse,
        RunContext,
        ToolCallRequest,
        ToolCallResult,
    )


class RunHooks:
    """Hooks observing a whole run."""

    async def on_agent_start(self, context: "RunContext", agent: "AgentDefinition") -> None:
        """Called when an agent becomes active (run start or handoff)."""

    async def on_agent_end(
        self, context: "RunContext", agent: "AgentDefinition", output: Any
    ) -> None:
        """Called when an agent produced the final output."""

    async def on_llm_start(
        self, context: "RunContext", agent: "AgentDefinition", request: "ModelRequest"
    ) -> None:
        """Called before each model call."""

    async def on_llm_end(
        self, context: "RunContext", agent: "AgentDefinition", response: "ModelResponse"
    ) -> None:
        """Called after each successful model call."""

    async def on_tool_start(
        self, context: "RunContext", agent: "AgentDefinition", call: "ToolCallRequest"
    ) -> None:
        """Called before a tool body runs."""

    async def on_tool_end(
        self, context: "RunContext", agent: "AgentDefinition", result: "ToolCallResult"
    ) -> None:
        """Called after a tool call settled, whatever its outcome."""

    async def on_handoff(
        self,
        context: "RunContext",
        from_agent: "AgentDefinition",
        to_agent: "AgentDefinition",
    ) -> None:
        """Called after control moved from one agent to another."""


class AgentHooks(RunHooks):
    """Hooks scoped to a single agent definition."""
