"""
Application Layer - Run Driver

Public entry point for executing agents. Both modes drive the same
TurnEngine:

- Runner.run(): awaits the run and returns the RunResult
- Runner.run_streamed(): starts the run in a background task and returns a
  StreamedRun whose events can be consumed as an async iterator while the
  engine keeps going at its own pace

Events are buffered in an unbounded queue, so a slow consumer never causes
events to be dropped or reordered.
"""

import asyncio
from collections.abc import AsyncIterator

import structlog

from agentrelay.application.config import RunConfig
from agentrelay.core.domain.agent import AgentDefinition
from agentrelay.core.domain.events import StreamEvent
from agentrelay.core.domain.models import CancellationToken, RunResult
from agentrelay.core.domain.turn_engine import TurnEngine
from agentrelay.core.interfaces.llm import ModelProviderProtocol

logger = structlog.get_logger()

_END_OF_STREAM = object()


class Runner:
    """
    Runs agents against a model provider.

    Args:
        model_provider: Model collaborator used for every run

    Example:
        >>> runner = Runner(provider)
        >>> result = await runner.run(agent, "Hello!")
        >>> print(result.final_output)
    """

    def __init__(self, model_provider: ModelProviderProtocol):
        self.model_provider = model_provider
        self.logger = logger.bind(component="runner")

    async def run(
        self,
        agent: AgentDefinition,
        input: str,
        config: RunConfig | None = None,
    ) -> RunResult:
        """
        Run an agent until it produces a final answer or a terminal error.

        Args:
            agent: Starting agent
            input: User input (must not be blank)
            config: Run configuration

        Returns:
            RunResult; terminal errors are carried in ``result.error``

        Raises:
            ValueError: If the input is blank
        """
        config = config or RunConfig()
        self._validate_input(input)
        engine = self._create_engine(config)
        return await engine.run(
            agent,
            input,
            session=config.session,
            cancellation=config.cancellation,
            user_context=config.context,
        )

    def run_streamed(
        self,
        agent: AgentDefinition,
        input: str,
        config: RunConfig | None = None,
    ) -> "StreamedRun":
        """
        Start a streamed run. Must be called from a running event loop.

        Args:
            agent: Starting agent
            input: User input (must not be blank)
            config: Run configuration

        Returns:
            StreamedRun handle for consuming events and the final result

        Raises:
            ValueError: If the input is blank
        """
        config = config or RunConfig()
        self._validate_input(input)
        asyncio.get_running_loop()
        cancellation = config.cancellation or CancellationToken()
        streamed = StreamedRun(cancellation)
        engine = self._create_engine(config, emit=streamed._push)
        streamed._start(
            engine.run(
                agent,
                input,
                session=config.session,
                cancellation=cancellation,
                user_context=config.context,
            )
        )
        self.logger.debug("run.streamed.started", agent=agent.name)
        return streamed

    def _create_engine(self, config: RunConfig, emit=None) -> TurnEngine:
        return TurnEngine(
            self.model_provider,
            max_turns=config.max_turns,
            hooks=config.hooks,
            tool_timeout=config.tool_timeout,
            emit=emit,
        )

    @staticmethod
    def _validate_input(input: str) -> None:
        if not isinstance(input, str) or not input.strip():
            raise ValueError("Run input must be a non-empty string")


class StreamedRun:
    """
    Handle on a run executing in the background.

    The event sequence is lazy, finite and single-use. A run that reaches a
    terminal state ends with a RunCompletedEvent or a RunFailedEvent. If a
    hook or the session raises, the stream ends without either event and
    the exception is re-raised by stream_events() and wait().
    """

    def __init__(self, cancellation: CancellationToken):
        self._cancellation = cancellation
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._result: RunResult | None = None
        self._consumed = False

    def _push(self, event: StreamEvent) -> None:
        self._queue.put_nowait(event)

    def _start(self, run) -> None:
        self._task = asyncio.get_running_loop().create_task(self._drive(run))

    async def _drive(self, run) -> None:
        try:
            self._result = await run
        finally:
            self._queue.put_nowait(_END_OF_STREAM)

    async def stream_events(self) -> AsyncIterator[StreamEvent]:
        """
        Yield events in the order the engine produced them.

        The last event is a RunCompletedEvent or a RunFailedEvent, unless a
        hook or the session raised; that exception is re-raised here after
        the events emitted before it.

        Raises:
            RuntimeError: If the events were already consumed
            Exception: Whatever a hook or the session raised inside the run
        """
        if self._consumed:
            raise RuntimeError("Stream events can only be consumed once")
        self._consumed = True

        while True:
            event = await self._queue.get()
            if event is _END_OF_STREAM:
                break
            yield event

        # Surface unexpected failures of the background task
        await self._task

    async def wait(self) -> RunResult:
        """Drain any remaining events and return the final result."""
        if not self._consumed:
            async for _ in self.stream_events():
                pass
        else:
            await self._task
        return self.result

    def cancel(self) -> None:
        """Request cancellation; observed before the next model call or tool dispatch."""
        self._cancellation.cancel()

    @property
    def is_complete(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def result(self) -> RunResult:
        if self._result is None:
            raise RuntimeError("Run has not completed yet")
        return self._result
