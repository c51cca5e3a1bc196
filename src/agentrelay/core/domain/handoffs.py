"""
Handoff Resolver

Turns a handoff signal from the model into the context for the next agent.
The target must be registered on the current agent; anything else is a
broken configuration and ends the run.

History filters are pure functions from the carried conversation to the
conversation the new agent should see. They produce a new sequence and
never touch the run transcript.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from agentrelay.core.domain.agent import AgentDefinition, HistoryFilter
from agentrelay.core.domain.errors import UnknownHandoffTarget
from agentrelay.core.domain.items import (
    ConversationItem,
    ItemKind,
)
from agentrelay.core.domain.models import HandoffSignal

logger = structlog.get_logger().bind(component="handoff_resolver")


@dataclass(frozen=True)
class NewAgentContext:
    """The agent taking over and the conversation it starts from."""

    agent: AgentDefinition
    conversation: tuple[ConversationItem, ...]


class HandoffResolver:
    """Resolves handoff signals against the active agent's registrations."""

    def resolve(
        self,
        signal: HandoffSignal,
        current_agent: AgentDefinition,
        conversation: Sequence[ConversationItem],
    ) -> NewAgentContext:
        """
        Resolve a handoff.

        Args:
            signal: Handoff signal naming a target agent or handoff tool
            current_agent: Agent that emitted the signal
            conversation: Working conversation accumulated so far

        Returns:
            NewAgentContext with the target agent and its filtered conversation

        Raises:
            UnknownHandoffTarget: If the target is not registered or its lazy
                factory fails to produce the named agent
        """
        handoff = current_agent.get_handoff(signal.target)
        if handoff is None:
            logger.error(
                "handoff.unknown_target",
                agent=current_agent.name,
                target=signal.target,
                registered=[h.agent_name for h in current_agent.handoffs],
            )
            raise UnknownHandoffTarget(signal.target)

        try:
            target = handoff.agent
        except Exception as e:
            logger.error(
                "handoff.target_unresolved",
                agent=current_agent.name,
                target=signal.target,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UnknownHandoffTarget(signal.target) from e

        history_filter = target.history_filter or identity_filter
        filtered = tuple(history_filter(tuple(conversation)))

        logger.debug(
            "handoff.resolved",
            from_agent=current_agent.name,
            to_agent=target.name,
            carried_items=len(conversation),
            filtered_items=len(filtered),
        )
        return NewAgentContext(agent=target, conversation=filtered)


def identity_filter(items: Sequence[ConversationItem]) -> Sequence[ConversationItem]:
    return items


def remove_tool_items(items: Sequence[ConversationItem]) -> Sequence[ConversationItem]:
    """Drop tool calls and tool results from the carried history."""
    return tuple(
        item for item in items if item.kind not in (ItemKind.TOOL_CALL, ItemKind.TOOL_RESULT)
    )


def user_messages_only(items: Sequence[ConversationItem]) -> Sequence[ConversationItem]:
    """Keep only what the user said."""
    return tuple(item for item in items if item.kind is ItemKind.USER_MESSAGE)


def keep_last(n: int) -> HistoryFilter:
    """Build a filter keeping the ``n`` most recent items."""
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")

    def _filter(items: Sequence[ConversationItem]) -> Sequence[ConversationItem]:
        return tuple(items[-n:]) if n else ()

    return _filter
