"""
Tool Dispatcher

Resolves the tool calls of one model turn against the active agent,
applies tool guardrails, invokes the tools and collects their results.

Every failure mode of a single call (unknown tool, unparsable arguments,
guardrail denial, tool fault, timeout) becomes an error-outcome
ToolCallResult that is fed back to the model. Nothing here ends the run.

Calls of one batch run concurrently and are joined with a wait-all barrier:
a slow or failing call never cancels its siblings, and results come back in
input order regardless of completion order.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

import structlog

from agentrelay.core.domain.agent import AgentDefinition
from agentrelay.core.domain.guardrails import GuardrailContext, GuardrailStage, evaluate
from agentrelay.core.domain.models import RunContext, ToolCallRequest, ToolCallResult
from agentrelay.core.interfaces.hooks import RunHooks


class ToolDispatcher:
    """
    Executes batches of tool calls for the turn engine.

    Args:
        hooks: Run-level lifecycle hooks fired around each invocation
        tool_timeout: Optional per-call timeout in seconds
    """

    def __init__(
        self,
        hooks: Sequence[RunHooks] = (),
        tool_timeout: float | None = None,
    ):
        self.hooks = tuple(hooks)
        self.tool_timeout = tool_timeout
        self.logger = structlog.get_logger().bind(component="tool_dispatcher")

    async def dispatch(
        self,
        calls: Sequence[ToolCallRequest],
        agent: AgentDefinition,
        context: RunContext,
    ) -> list[ToolCallResult]:
        """
        Execute a batch of tool calls.

        Args:
            calls: Tool call requests of one turn, in model order
            agent: Active agent whose tools and guardrails apply
            context: Run context (read-only here, passed to hooks)

        Returns:
            One ToolCallResult per request, in the same order as ``calls``.
        """
        seen: set[str] = set()
        duplicates: set[int] = set()
        for index, call in enumerate(calls):
            if call.call_id in seen:
                duplicates.add(index)
            seen.add(call.call_id)

        async def run(index: int, call: ToolCallRequest) -> ToolCallResult:
            if index in duplicates:
                self.logger.warning(
                    "tool_call.duplicate_id", tool=call.name, call_id=call.call_id
                )
                return ToolCallResult.failed(call, f"Duplicate call id: {call.call_id}")
            return await self._settle(call, agent, context)

        if agent.parallel_tool_calls and len(calls) > 1:
            # Hooks may raise; let the whole batch settle before propagating
            settled = await asyncio.gather(
                *(run(index, call) for index, call in enumerate(calls)),
                return_exceptions=True,
            )
            for outcome in settled:
                if isinstance(outcome, BaseException):
                    raise outcome
            return list(settled)

        return [await run(index, call) for index, call in enumerate(calls)]

    async def _settle(
        self,
        call: ToolCallRequest,
        agent: AgentDefinition,
        context: RunContext,
    ) -> ToolCallResult:
        """Run one call to completion; never raises except on cancellation."""
        hooks = (*self.hooks, *agent.hooks)
        for hook in hooks:
            await hook.on_tool_start(context, agent, call)

        try:
            result = await self._execute(call, agent, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "tool.exception",
                tool=call.name,
                call_id=call.call_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = ToolCallResult.failed(call, f"{type(e).__name__}: {e}")

        for hook in hooks:
            await hook.on_tool_end(context, agent, result)
        return result

    async def _execute(
        self,
        call: ToolCallRequest,
        agent: AgentDefinition,
        context: RunContext,
    ) -> ToolCallResult:
        tool = agent.get_tool(call.name)
        if tool is None:
            self.logger.warning("tool.not_found", tool=call.name, agent=agent.name)
            return ToolCallResult.failed(call, f"Unknown tool: {call.name}")

        try:
            arguments = self._parse_arguments(call.arguments)
        except ValueError as e:
            self.logger.warning(
                "tool.args_parse_failed", tool=call.name, raw_args=call.arguments
            )
            return ToolCallResult.failed(call, f"Invalid arguments: {e}")

        guard_context = GuardrailContext(
            stage=GuardrailStage.TOOL_INPUT,
            agent_name=agent.name,
            tool_name=call.name,
            user_context=context.user_context,
        )
        verdict = await evaluate(
            GuardrailStage.TOOL_INPUT, arguments, agent.tool_input_guardrails, guard_context
        )
        if verdict.denied:
            return ToolCallResult.failed(call, f"Tool input denied: {verdict.reason}")
        arguments = verdict.content

        self.logger.info("tool.execute", tool=call.name, args_keys=list(arguments.keys()))
        invocation = tool.execute(**arguments)
        if self.tool_timeout is not None:
            try:
                output = await asyncio.wait_for(invocation, timeout=self.tool_timeout)
            except asyncio.TimeoutError:
                self.logger.warning(
                    "tool.timeout", tool=call.name, timeout=self.tool_timeout
                )
                return ToolCallResult.failed(
                    call, f"Tool timed out after {self.tool_timeout}s"
                )
        else:
            output = await invocation

        guard_context = GuardrailContext(
            stage=GuardrailStage.TOOL_OUTPUT,
            agent_name=agent.name,
            tool_name=call.name,
            user_context=context.user_context,
        )
        verdict = await evaluate(
            GuardrailStage.TOOL_OUTPUT, output, agent.tool_output_guardrails, guard_context
        )
        if verdict.denied:
            return ToolCallResult.failed(call, f"Tool output denied: {verdict.reason}")

        self.logger.info("tool.complete", tool=call.name, call_id=call.call_id)
        return ToolCallResult.ok(call, verdict.content)

    @staticmethod
    def _parse_arguments(raw: dict[str, Any] | str | None) -> dict[str, Any]:
        """
        Normalize a raw argument payload into keyword arguments.

        Raises:
            ValueError: If the payload is not a JSON object
        """
        if raw is None or raw == "":
            return {}
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"not valid JSON ({e.msg})") from e
        if not isinstance(raw, dict):
            raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
        return dict(raw)
