"""
Conversation Items

The conversation is an ordered sequence of immutable items. Insertion order
is the prompt history, so items are never edited once appended.

Item kinds:
- user_message: input from the caller
- assistant_message: text produced by the model
- tool_call: a tool invocation requested by the model
- tool_result: the outcome of a tool invocation
- handoff: marker recording a transfer of control between agents
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ItemKind(str, Enum):
    """Discriminator for conversation items."""

    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    HANDOFF = "handoff"


@dataclass(frozen=True)
class UserMessage:
    content: str
    kind: ItemKind = field(default=ItemKind.USER_MESSAGE, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "content": self.content}


@dataclass(frozen=True)
class AssistantMessage:
    content: str
    agent: str
    kind: ItemKind = field(default=ItemKind.ASSISTANT_MESSAGE, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "content": self.content, "agent": self.agent}


@dataclass(frozen=True)
class ToolCallItem:
    """A tool call as recorded in the transcript."""

    call_id: str
    name: str
    arguments: Any
    agent: str
    kind: ItemKind = field(default=ItemKind.TOOL_CALL, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "call_id": self.call_id,
            "name": self.name,
            "arguments": self.arguments,
            "agent": self.agent,
        }


@dataclass(frozen=True)
class ToolResultItem:
    """A tool outcome as recorded in the transcript."""

    call_id: str
    name: str
    success: bool
    output: Any = None
    error: str | None = None
    kind: ItemKind = field(default=ItemKind.TOOL_RESULT, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "call_id": self.call_id,
            "name": self.name,
            "success": self.success,
            "output": self.output,
            "error": self.error,
        }


@dataclass(frozen=True)
class HandoffMarker:
    """Audit marker appended when control moves to another agent."""

    from_agent: str
    to_agent: str
    call_id: str | None = None
    kind: ItemKind = field(default=ItemKind.HANDOFF, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "from_agent": self.from_agent,
            "to_agent": self.to_agent,
            "call_id": self.call_id,
        }


ConversationItem = Union[
    UserMessage, AssistantMessage, ToolCallItem, ToolResultItem, HandoffMarker
]


def item_from_dict(data: dict[str, Any]) -> ConversationItem:
    """
    Rebuild a conversation item from its dict form.

    Args:
        data: Dict produced by ``item.to_dict()``

    Returns:
        The matching ConversationItem

    Raises:
        ValueError: If the kind is missing or unknown
    """
    try:
        kind = ItemKind(data.get("kind"))
    except ValueError:
        raise ValueError(f"Unknown conversation item kind: {data.get('kind')!r}") from None

    if kind is ItemKind.USER_MESSAGE:
        return UserMessage(content=data["content"])
    if kind is ItemKind.ASSISTANT_MESSAGE:
        return AssistantMessage(content=data["content"], agent=data["agent"])
    if kind is ItemKind.TOOL_CALL:
        return ToolCallItem(
            call_id=data["call_id"],
            name=data["name"],
            arguments=data.get("arguments"),
            agent=data["agent"],
        )
    if kind is ItemKind.TOOL_RESULT:
        return ToolResultItem(
            call_id=data["call_id"],
            name=data["name"],
            success=data["success"],
            output=data.get("output"),
            error=data.get("error"),
        )
    if kind is ItemKind.HANDOFF:
        return HandoffMarker(
            from_agent=data["from_agent"],
            to_agent=data["to_agent"],
            call_id=data.get("call_id"),
        )
    raise ValueError(f"Unhandled conversation item kind: {kind}")
