"""
Guardrail Protocol

Guardrails inspect content at one stage of a run and allow it, rewrite it
or deny it.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentrelay.core.domain.guardrails import GuardrailContext, GuardrailVerdict


@runtime_checkable
class GuardrailProtocol(Protocol):
    """Capability interface for guardrails."""

    @property
    def name(self) -> str:
        ...

    async def check(self, content: Any, context: "GuardrailContext") -> "GuardrailVerdict":
        ...
