"""Shared fixtures: a deterministic scripted model provider and simple tools."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from agentrelay.core.domain.models import (
    ModelRequest,
    ModelResponse,
    TextDelta,
    ToolCallDelta,
    ToolCallRequest,
    Usage,
)
from agentrelay.infrastructure.tools.function_tool import FunctionTool


class ScriptedModelProvider:
    """
    Model provider replaying a fixed script.

    Each script entry is a ModelResponse, an exception instance to raise, or
    a callable ``(request) -> ModelResponse``. When ``repeat_last`` is set,
    the last entry is replayed once the script is exhausted.
    """

    def __init__(self, script: list[Any], repeat_last: bool = False):
        self.script = list(script)
        self.repeat_last = repeat_last
        self.requests: list[ModelRequest] = []
        self._position = 0

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def _next(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        if self._position < len(self.script):
            entry = self.script[self._position]
            self._position += 1
        elif self.repeat_last and self.script:
            entry = self.script[-1]
        else:
            raise AssertionError("Model script exhausted")

        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return entry(request)
        return entry

    async def complete(self, request: ModelRequest) -> ModelResponse:
        return self._next(request)

    async def stream(self, request: ModelRequest):
        response = self._next(request)
        if response.message:
            words = response.message.split(" ")
            for index, word in enumerate(words):
                yield TextDelta(word if index == 0 else f" {word}")
        for index, call in enumerate(response.tool_calls):
            arguments = (
                call.arguments if isinstance(call.arguments, str) else json.dumps(call.arguments)
            )
            yield ToolCallDelta(index=index, call_id=call.call_id, name=call.name)
            yield ToolCallDelta(index=index, arguments=arguments)
        yield response


def message(text: str, tokens: int = 0) -> ModelResponse:
    return ModelResponse(
        message=text,
        usage=Usage(input_tokens=tokens, output_tokens=tokens, total_tokens=2 * tokens),
    )


def tool_calls(*calls: tuple[str, str, dict], text: str | None = None) -> ModelResponse:
    return ModelResponse(
        message=text,
        tool_calls=tuple(
            ToolCallRequest(call_id=call_id, name=name, arguments=args)
            for call_id, name, args in calls
        ),
    )


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedModelProvider]:
    """Factory fixture for ScriptedModelProvider."""
    return ScriptedModelProvider


@pytest.fixture
def echo_tool() -> FunctionTool:
    async def echo(text: str) -> str:
        """Echo the given text."""
        return f"echo: {text}"

    return FunctionTool(echo)


@pytest.fixture
def failing_tool() -> FunctionTool:
    async def explode(reason: str = "boom") -> str:
        """Always fails."""
        raise RuntimeError(reason)

    return FunctionTool(explode)
