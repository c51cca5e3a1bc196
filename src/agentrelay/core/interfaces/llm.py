"""
Model Provider Protocol

The runner never speaks a model wire format. Providers translate a
ModelRequest into their API and return a ModelResponse, or stream deltas
that end with the complete ModelResponse.
"""

from collections.abc import AsyncIterator
from typing import Protocol, Union

from agentrelay.core.domain.models import (
    ModelRequest,
    ModelResponse,
    TextDelta,
    ToolCallDelta,
)

ModelStreamEvent = Union[TextDelta, ToolCallDelta, ModelResponse]


class ModelProviderProtocol(Protocol):
    """Capability interface for model providers."""

    async def complete(self, request: ModelRequest) -> ModelResponse:
        """Run one model call and return the structured response."""
        ...

    def stream(self, request: ModelRequest) -> AsyncIterator[ModelStreamEvent]:
        """
        Run one model call in streaming mode.

        Yields TextDelta and ToolCallDelta fragments in arrival order; the
        last yielded element must be the complete ModelResponse.
        """
        ...
