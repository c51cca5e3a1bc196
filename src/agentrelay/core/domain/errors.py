"""
Run Errors

Terminal error classification for agent runs. Every error that ends a run
is a RunError subclass with a stable ``kind`` so callers can branch on it
(e.g. resume with a human decision after MaxTurnsExceeded).

Tool faults and unknown tool names are NOT run errors: they become
error-outcome ToolCallResults that are fed back to the model.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Kind of terminal run error."""

    GUARDRAIL_DENIED = "guardrail_denied"
    MAX_TURNS_EXCEEDED = "max_turns_exceeded"
    UNKNOWN_HANDOFF_TARGET = "unknown_handoff_target"
    MODEL_CALL_FAILED = "model_call_failed"
    CANCELLED = "cancelled"


class ConfigurationError(ValueError):
    """Invalid agent definition or run configuration."""


class RunError(Exception):
    """Base class for errors that terminate a run."""

    kind: ErrorKind

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logging and event payloads."""
        return {"kind": self.kind.value, "message": str(self)}


class GuardrailDenied(RunError):
    """A guardrail rejected content at the given stage."""

    kind = ErrorKind.GUARDRAIL_DENIED

    def __init__(
        self,
        stage: str,
        reason: str,
        guardrail: str | None = None,
        fault: bool = False,
        content: Any = None,
    ):
        self.stage = stage
        self.reason = reason
        self.guardrail = guardrail
        self.fault = fault
        # Rejected content, kept for diagnosis
        self.content = content
        super().__init__(f"{stage} guardrail denied: {reason}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            stage=self.stage,
            reason=self.reason,
            guardrail=self.guardrail,
            fault=self.fault,
            content=self.content,
        )
        return data


class MaxTurnsExceeded(RunError):
    """The run used up its turn budget without a final answer."""

    kind = ErrorKind.MAX_TURNS_EXCEEDED

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max turns exceeded: {limit}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["limit"] = self.limit
        return data


class UnknownHandoffTarget(RunError):
    """The model requested a handoff to an agent that is not registered."""

    kind = ErrorKind.UNKNOWN_HANDOFF_TARGET

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown handoff target: {name}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["name"] = self.name
        return data


class ModelCallFailed(RunError):
    """The model provider raised while serving a request."""

    kind = ErrorKind.MODEL_CALL_FAILED

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Model call failed: {type(cause).__name__}: {cause}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["cause"] = type(self.cause).__name__
        return data


class Cancelled(RunError):
    """The run was cancelled by the caller."""

    kind = ErrorKind.CANCELLED

    def __init__(self) -> None:
        super().__init__("Run cancelled")
