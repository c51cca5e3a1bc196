"""
Guardrail Gate

Evaluates the guardrails registered for one stage against a piece of
content. Evaluation is fail-fast: the first deny ends the chain and no later
guardrail runs. A replacement becomes the content seen by the next
guardrail. A guardrail that raises is a deny, never an allow.
"""

import asyncio
import inspect
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog

from agentrelay.core.interfaces.guardrails import GuardrailProtocol

logger = structlog.get_logger().bind(component="guardrail_gate")

FAULT_PREFIX = "guardrail fault"


class GuardrailStage(str, Enum):
    """Point of a run at which guardrails are evaluated."""

    INPUT = "input"
    OUTPUT = "output"
    TOOL_INPUT = "tool_input"
    TOOL_OUTPUT = "tool_output"


class VerdictType(str, Enum):
    ALLOW = "allow"
    REPLACE = "replace"
    DENY = "deny"


@dataclass(frozen=True)
class GuardrailVerdict:
    """
    Result of a guardrail check.

    For a combined verdict returned by evaluate(), ``content`` holds the
    content that proceeds (the last replacement, or the original).
    """

    type: VerdictType
    content: Any = None
    reason: str | None = None
    guardrail: str | None = None
    fault: bool = False

    @classmethod
    def allow(cls) -> "GuardrailVerdict":
        return cls(VerdictType.ALLOW)

    @classmethod
    def replace(cls, content: Any) -> "GuardrailVerdict":
        return cls(VerdictType.REPLACE, content=content)

    @classmethod
    def deny(cls, reason: str) -> "GuardrailVerdict":
        return cls(VerdictType.DENY, reason=reason)

    @property
    def denied(self) -> bool:
        return self.type is VerdictType.DENY


@dataclass(frozen=True)
class GuardrailContext:
    """What a guardrail knows about where it is being evaluated."""

    stage: GuardrailStage
    agent_name: str
    tool_name: str | None = None
    user_context: dict[str, Any] = field(default_factory=dict)


class FunctionGuardrail:
    """
    Guardrail backed by a plain function.

    The function receives ``(content, context)`` and may be sync or async.
    It returns a GuardrailVerdict; ``True`` or ``None`` mean allow and
    ``False`` means deny.
    """

    def __init__(self, func: Callable[..., Any], name: str | None = None):
        self._func = func
        self._name = name or getattr(func, "__name__", "guardrail")

    @property
    def name(self) -> str:
        return self._name

    async def check(self, content: Any, context: GuardrailContext) -> GuardrailVerdict:
        if inspect.iscoroutinefunction(self._func):
            result = await self._func(content, context)
        else:
            result = self._func(content, context)
            if inspect.isawaitable(result):
                result = await result

        if isinstance(result, GuardrailVerdict):
            return result
        if result is None or result is True:
            return GuardrailVerdict.allow()
        if result is False:
            return GuardrailVerdict.deny(f"rejected by {self._name}")
        raise TypeError(
            f"Guardrail {self._name} returned unsupported value {type(result).__name__}"
        )


def guardrail(func: Callable[..., Any] | None = None, *, name: str | None = None):
    """
    Decorator turning a function into a FunctionGuardrail.

    Example:
        >>> @guardrail
        ... def no_secrets(content, context):
        ...     if "password" in content:
        ...         return GuardrailVerdict.deny("contains a password")
    """
    if func is None:
        return lambda f: FunctionGuardrail(f, name=name)
    return FunctionGuardrail(func, name=name)


async def evaluate(
    stage: GuardrailStage,
    content: Any,
    guardrails: Sequence[GuardrailProtocol],
    context: GuardrailContext,
) -> GuardrailVerdict:
    """
    Run a guardrail chain for one stage.

    Args:
        stage: Stage being evaluated
        content: Content to check
        guardrails: Guardrails in registration order
        context: Evaluation context handed to each guardrail

    Returns:
        A deny verdict from the first denying (or faulting) guardrail, or an
        allow/replace verdict whose ``content`` is the content that proceeds.
    """
    candidate = content
    replaced = False

    for rail in guardrails:
        try:
            verdict = await rail.check(candidate, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "guardrail.fault",
                stage=stage.value,
                guardrail=rail.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return GuardrailVerdict(
                VerdictType.DENY,
                reason=f"{FAULT_PREFIX}: {type(e).__name__}: {e}",
                guardrail=rail.name,
                fault=True,
            )

        if not isinstance(verdict, GuardrailVerdict):
            logger.warning(
                "guardrail.fault",
                stage=stage.value,
                guardrail=rail.name,
                error="unsupported verdict",
                error_type=type(verdict).__name__,
            )
            return GuardrailVerdict(
                VerdictType.DENY,
                reason=f"{FAULT_PREFIX}: unsupported verdict {type(verdict).__name__}",
                guardrail=rail.name,
                fault=True,
            )

        if verdict.denied:
            logger.info(
                "guardrail.denied",
                stage=stage.value,
                guardrail=rail.name,
                reason=verdict.reason,
            )
            return GuardrailVerdict(
                VerdictType.DENY,
                reason=verdict.reason or "denied",
                guardrail=rail.name,
            )

        if verdict.type is VerdictType.REPLACE:
            candidate = verdict.content
            replaced = True

    if replaced:
        return GuardrailVerdict(VerdictType.REPLACE, content=candidate)
    return GuardrailVerdict(VerdictType.ALLOW, content=candidate)
