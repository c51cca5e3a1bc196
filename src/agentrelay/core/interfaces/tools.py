"""
Tool Protocol

Uniform invocation contract for tools. Tool bodies are arbitrary user code;
argument validation against ``parameters_schema`` belongs to the tool.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolProtocol(Protocol):
    """Capability interface every registered tool implements."""

    @property
    def name(self) -> str:
        """Unique tool name within an agent."""
        ...

    @property
    def description(self) -> str:
        """Description shown to the model."""
        ...

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the keyword arguments accepted by execute()."""
        ...

    async def execute(self, **kwargs: Any) -> Any:
        """
        Run the tool.

        Raises:
            Exception: Any fault; the dispatcher converts it into an
                error-outcome result for the model to see.
        """
        ...
