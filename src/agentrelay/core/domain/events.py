"""
Stream Events

Events surfaced by a streamed run, in strict chronological order:

- RawResponseEvent: a text or tool-argument fragment from the model
- RunItemEvent: an item was appended to the transcript
- AgentUpdatedEvent: a handoff switched the active agent
- RunCompletedEvent / RunFailedEvent: always the last event

Every transcript item is announced by exactly one RunItemEvent, so the
transcript can be rebuilt from the event sequence alone.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from agentrelay.core.domain.items import ConversationItem, ItemKind
from agentrelay.core.domain.models import RunResult, TextDelta, ToolCallDelta

if TYPE_CHECKING:
    from agentrelay.core.domain.agent import AgentDefinition


class EventType(str, Enum):
    RAW_RESPONSE = "raw_response"
    RUN_ITEM = "run_item"
    AGENT_UPDATED = "agent_updated"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"


class RunItemEventName(str, Enum):
    """What kind of item a RunItemEvent announces."""

    INPUT_RECEIVED = "input_received"
    MESSAGE_OUTPUT_CREATED = "message_output_created"
    TOOL_CALLED = "tool_called"
    TOOL_OUTPUT = "tool_output"
    HANDOFF_OCCURRED = "handoff_occurred"

    @classmethod
    def for_item(cls, item: ConversationItem) -> "RunItemEventName":
        mapping = {
            ItemKind.USER_MESSAGE: cls.INPUT_RECEIVED,
            ItemKind.ASSISTANT_MESSAGE: cls.MESSAGE_OUTPUT_CREATED,
            ItemKind.TOOL_CALL: cls.TOOL_CALLED,
            ItemKind.TOOL_RESULT: cls.TOOL_OUTPUT,
            ItemKind.HANDOFF: cls.HANDOFF_OCCURRED,
        }
        return mapping[item.kind]


@dataclass(frozen=True)
class RawResponseEvent:
    delta: Union[TextDelta, ToolCallDelta]
    agent: str
    type: EventType = field(default=EventType.RAW_RESPONSE, init=False)


@dataclass(frozen=True)
class RunItemEvent:
    name: RunItemEventName
    item: ConversationItem
    type: EventType = field(default=EventType.RUN_ITEM, init=False)


@dataclass(frozen=True)
class AgentUpdatedEvent:
    new_agent: "AgentDefinition"
    type: EventType = field(default=EventType.AGENT_UPDATED, init=False)


@dataclass(frozen=True)
class RunCompletedEvent:
    result: RunResult
    type: EventType = field(default=EventType.RUN_COMPLETED, init=False)


@dataclass(frozen=True)
class RunFailedEvent:
    result: RunResult
    type: EventType = field(default=EventType.RUN_FAILED, init=False)


StreamEvent = Union[
    RawResponseEvent, RunItemEvent, AgentUpdatedEvent, RunCompletedEvent, RunFailedEvent
]


def transcript_from_events(events: Iterable[StreamEvent]) -> list[ConversationItem]:
    """Rebuild the items of a run from its streamed events."""
    return [event.item for event in events if isinstance(event, RunItemEvent)]
