"""
Turn Engine

The state machine that drives one run:

    Init -> AwaitingModel -> Interpreting -> Success
                                          -> Error
                                          -> Dispatching -> AwaitingModel
                                          -> HandingOff  -> AwaitingModel

A turn is one model call plus the side effect of its response. Responses
are interpreted with the priority handoff > tool calls > message. Every
turn that does not terminate consumes one unit of the turn budget, and the
budget is checked right after, before the next model call, so a run that
runs out still reports the tool results it gathered.

The engine is used by both run modes. In streaming mode it calls the
provider's ``stream()`` and reports progress through an event sink; the
control flow is identical.
"""

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from agentrelay.core.domain.agent import AgentDefinition
from agentrelay.core.domain.dispatcher import ToolDispatcher
from agentrelay.core.domain.errors import (
    Cancelled,
    GuardrailDenied,
    MaxTurnsExceeded,
    ModelCallFailed,
    RunError,
)
from agentrelay.core.domain.events import (
    AgentUpdatedEvent,
    RawResponseEvent,
    RunCompletedEvent,
    RunFailedEvent,
    RunItemEvent,
    RunItemEventName,
    StreamEvent,
)
from agentrelay.core.domain.guardrails import GuardrailContext, GuardrailStage, evaluate
from agentrelay.core.domain.handoffs import HandoffResolver
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
    RunContext,
    RunResult,
    RunStatus,
)
from agentrelay.core.interfaces.hooks import RunHooks
from agentrelay.core.interfaces.llm import ModelProviderProtocol
from agentrelay.core.interfaces.session import SessionProtocol

DEFAULT_MAX_TURNS = 10

EventSink = Callable[[StreamEvent], None]


def _discard(event: StreamEvent) -> None:
    pass


class TurnEngine:
    """
    Drives a run from input to a terminal RunResult.

    Args:
        model_provider: Model collaborator
        max_turns: Run-wide turn limit; None defers to the active agent's
            ``max_turns`` and then to DEFAULT_MAX_TURNS
        hooks: Run-level lifecycle hooks
        tool_timeout: Per tool call timeout in seconds
        emit: Event sink; when given, the engine runs in streaming mode
        dispatcher: Tool dispatcher override
        resolver: Handoff resolver override
    """

    def __init__(
        self,
        model_provider: ModelProviderProtocol,
        max_turns: int | None = None,
        hooks: Sequence[RunHooks] = (),
        tool_timeout: float | None = None,
        emit: EventSink | None = None,
        dispatcher: ToolDispatcher | None = None,
        resolver: HandoffResolver | None = None,
    ):
        self.model_provider = model_provider
        self.max_turns = max_turns
        self.hooks = tuple(hooks)
        self.streaming = emit is not None
        self._emit = emit or _discard
        self.dispatcher = dispatcher or ToolDispatcher(hooks=self.hooks, tool_timeout=tool_timeout)
        self.resolver = resolver or HandoffResolver()
        self.logger = structlog.get_logger().bind(component="turn_engine")

    async def run(
        self,
        agent: AgentDefinition,
        input: str,
        session: SessionProtocol | None = None,
        cancellation: CancellationToken | None = None,
        user_context: dict[str, Any] | None = None,
    ) -> RunResult:
        """
        Execute a run to a terminal state.

        Terminal errors are returned inside the RunResult, never raised.
        Exceptions raised by hooks or by the session collaborator propagate.

        Args:
            agent: Starting agent
            input: User input
            session: Optional session providing history and receiving the
                run's items on success
            cancellation: Optional cancellation token
            user_context: Values available to instruction templates and
                guardrails

        Returns:
            RunResult describing success or the terminal error
        """
        context = RunContext(
            agent=agent,
            session=session,
            cancellation=cancellation or CancellationToken(),
            user_context=dict(user_context or {}),
        )
        self.logger.info(
            "run.started",
            agent=agent.name,
            streaming=self.streaming,
            session_id=session.session_id if session else None,
            input=input[:100],
        )

        try:
            output = await self._drive(context, input)
        except RunError as e:
            return self._finish_with_error(context, e)

        if session is not None:
            await session.add_items(list(context.new_items))
            self.logger.debug(
                "session.appended",
                session_id=session.session_id,
                items=len(context.new_items),
            )

        result = self._build_result(context, RunStatus.COMPLETED, final_output=output)
        self.logger.info(
            "run.completed",
            agent=context.agent.name,
            turns=context.turn,
            requests=context.usage.requests,
            total_tokens=context.usage.total_tokens,
        )
        self._emit(RunCompletedEvent(result))
        return result

    async def _drive(self, context: RunContext, input: str) -> str:
        """Run the state machine; returns the final output or raises RunError."""
        starting_agent = context.agent

        # Init: the model is never called for a denied input
        verdict = await evaluate(
            GuardrailStage.INPUT,
            input,
            starting_agent.input_guardrails,
            self._guard_context(GuardrailStage.INPUT, context),
        )
        if verdict.denied:
            raise GuardrailDenied(
                GuardrailStage.INPUT.value,
                verdict.reason,
                verdict.guardrail,
                verdict.fault,
                content=input,
            )

        if context.session is not None:
            history = await context.session.get_items()
            context.transcript.extend(history)
            context.working.extend(history)
            context.history_length = len(history)
            self.logger.debug(
                "session.loaded",
                session_id=context.session.session_id,
                items=len(history),
            )

        self._append(context, UserMessage(content=verdict.content))
        await self._fire("on_agent_start", context, starting_agent)

        while True:
            agent = context.agent
            self._checkpoint(context, "before_model_call")

            request = ModelRequest(
                agent_name=agent.name,
                instructions=agent.render_instructions(context),
                conversation=tuple(context.working),
                model=agent.model,
                settings=agent.model_settings,
                tools=agent.tool_definitions(),
            )
            self.logger.info("turn.started", agent=agent.name, turn=context.turn + 1)
            await self._fire("on_llm_start", context, agent, request)
            response = await self._call_model(request, agent)
            context.usage.record_response(response.usage)
            await self._fire("on_llm_end", context, agent, response)

            signal = self._handoff_signal(response, agent)
            if signal is not None:
                await self._hand_off(context, signal)
                self._consume_turn(context)
                continue

            if response.tool_calls:
                await self._run_tools(context, response)
                self._consume_turn(context)
                continue

            # Final message; the cycle completed even if the output is denied
            context.turn += 1
            content = response.message or ""
            verdict = await evaluate(
                GuardrailStage.OUTPUT,
                content,
                agent.output_guardrails,
                self._guard_context(GuardrailStage.OUTPUT, context),
            )
            if verdict.denied:
                raise GuardrailDenied(
                    GuardrailStage.OUTPUT.value,
                    verdict.reason,
                    verdict.guardrail,
                    verdict.fault,
                    content=content,
                )

            self._append(context, AssistantMessage(content=verdict.content, agent=agent.name))
            await self._fire("on_agent_end", context, agent, verdict.content)
            return verdict.content

    async def _call_model(
        self, request: ModelRequest, agent: AgentDefinition
    ) -> ModelResponse:
        try:
            if not self.streaming:
                return await self.model_provider.complete(request)

            response: ModelResponse | None = None
            async for event in self.model_provider.stream(request):
                if isinstance(event, ModelResponse):
                    response = event
                else:
                    self._emit(RawResponseEvent(delta=event, agent=agent.name))
            if response is None:
                raise RuntimeError("Model stream ended without a final response")
            return response
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "model.call.failed",
                agent=agent.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ModelCallFailed(e) from e

    def _handoff_signal(
        self, response: ModelResponse, agent: AgentDefinition
    ) -> HandoffSignal | None:
        if response.handoff is not None:
            return response.handoff
        for call in response.tool_calls:
            if agent.is_handoff_tool(call.name):
                return HandoffSignal(target=call.name, call_id=call.call_id)
        return None

    async def _run_tools(self, context: RunContext, response: ModelResponse) -> None:
        agent = context.agent
        calls = response.tool_calls
        self.logger.info(
            "tool_calls.received",
            agent=agent.name,
            turn=context.turn + 1,
            count=len(calls),
            tools=[call.name for call in calls],
        )
        self._checkpoint(context, "before_tool_dispatch")

        # Text next to tool calls is history, not output
        if response.message:
            self._append(context, AssistantMessage(content=response.message, agent=agent.name))
        for call in calls:
            self._append(
                context,
                ToolCallItem(
                    call_id=call.call_id,
                    name=call.name,
                    arguments=call.arguments,
                    agent=agent.name,
                ),
            )

        results = await self.dispatcher.dispatch(calls, agent, context)

        for result in results:
            if not result.success:
                self.logger.warning(
                    "tool.failed", tool=result.name, call_id=result.call_id, error=result.error
                )
            self._append(
                context,
                ToolResultItem(
                    call_id=result.call_id,
                    name=result.name,
                    success=result.success,
                    output=result.output,
                    error=result.error,
                ),
            )

    async def _hand_off(self, context: RunContext, signal: HandoffSignal) -> None:
        source = context.agent
        new_context = self.resolver.resolve(signal, source, context.working)
        target = new_context.agent

        marker = HandoffMarker(
            from_agent=source.name, to_agent=target.name, call_id=signal.call_id
        )
        context.transcript.append(marker)
        context.working = [*new_context.conversation, marker]
        self._emit(RunItemEvent(RunItemEventName.HANDOFF_OCCURRED, marker))

        context.agent = target
        self._emit(AgentUpdatedEvent(new_agent=target))
        self.logger.info(
            "handoff.performed",
            from_agent=source.name,
            to_agent=target.name,
            turn=context.turn + 1,
        )

        for hook in (*self.hooks, *source.hooks):
            await hook.on_handoff(context, source, target)
        await self._fire("on_agent_start", context, target)

    def _consume_turn(self, context: RunContext) -> None:
        context.turn += 1
        limit = self._turn_limit(context)
        if context.turn >= limit:
            self.logger.warning(
                "run.max_turns_exceeded", agent=context.agent.name, limit=limit
            )
            raise MaxTurnsExceeded(limit)

    def _turn_limit(self, context: RunContext) -> int:
        if self.max_turns is not None:
            return self.max_turns
        if context.agent.max_turns is not None:
            return context.agent.max_turns
        return DEFAULT_MAX_TURNS

    def _checkpoint(self, context: RunContext, where: str) -> None:
        if context.cancellation.cancelled:
            self.logger.info("run.cancel_observed", checkpoint=where, turn=context.turn)
            raise Cancelled()

    def _append(self, context: RunContext, item: ConversationItem) -> None:
        context.append(item)
        self._emit(RunItemEvent(RunItemEventName.for_item(item), item))

    async def _fire(self, method: str, context: RunContext, agent: AgentDefinition, *args: Any) -> None:
        for hook in (*self.hooks, *agent.hooks):
            await getattr(hook, method)(context, agent, *args)

    def _guard_context(self, stage: GuardrailStage, context: RunContext) -> GuardrailContext:
        return GuardrailContext(
            stage=stage, agent_name=context.agent.name, user_context=context.user_context
        )

    def _finish_with_error(self, context: RunContext, error: RunError) -> RunResult:
        status = RunStatus.CANCELLED if isinstance(error, Cancelled) else RunStatus.FAILED
        result = self._build_result(context, status, error=error)
        self.logger.error(
            "run.failed",
            agent=context.agent.name,
            error_kind=error.kind.value,
            error=str(error),
            turns=context.turn,
        )
        self._emit(RunFailedEvent(result))
        return result

    def _build_result(
        self,
        context: RunContext,
        status: RunStatus,
        final_output: str | None = None,
        error: RunError | None = None,
    ) -> RunResult:
        return RunResult(
            status=status,
            final_output=final_output,
            transcript=tuple(context.transcript),
            new_items=tuple(context.new_items),
            usage=context.usage.copy(),
            last_agent=context.agent.name,
            turns=context.turn,
            error=error,
        )
