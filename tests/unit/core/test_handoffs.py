"""Unit tests for HandoffResolver and the built-in history filters."""

import pytest

from agentrelay.core.domain.agent import AgentDefinition, Handoff
from agentrelay.core.domain.errors import ConfigurationError, UnknownHandoffTarget
from agentrelay.core.domain.handoffs import (
    HandoffResolver,
    keep_last,
    remove_tool_items,
    user_messages_only,
)
from agentrelay.core.domain.items import (
    AssistantMessage,
    ToolCallItem,
    ToolResultItem,
    UserMessage,
)
from agentrelay.core.domain.models import HandoffSignal

CONVERSATION = (
    UserMessage("book a flight"),
    ToolCallItem(call_id="c1", name="search", arguments={}, agent="triage"),
    ToolResultItem(call_id="c1", name="search", success=True, output="3 flights"),
    AssistantMessage(content="Found some", agent="triage"),
)


@pytest.fixture
def resolver():
    return HandoffResolver()


class TestResolve:
    def test_resolves_by_agent_name(self, resolver):
        billing = AgentDefinition(name="Billing")
        triage = AgentDefinition(name="Triage", handoffs=[Handoff(billing)])

        new_context = resolver.resolve(HandoffSignal(target="Billing"), triage, CONVERSATION)

        assert new_context.agent is billing
        assert new_context.conversation == CONVERSATION

    def test_resolves_by_tool_name(self, resolver):
        billing = AgentDefinition(name="Billing Team")
        triage = AgentDefinition(name="Triage", handoffs=[Handoff(billing)])

        new_context = resolver.resolve(
            HandoffSignal(target="transfer_to_billing_team"), triage, CONVERSATION
        )

        assert new_context.agent is billing

    def test_unknown_target_raises(self, resolver):
        triage = AgentDefinition(name="Triage")

        with pytest.raises(UnknownHandoffTarget) as exc_info:
            resolver.resolve(HandoffSignal(target="Nobody"), triage, CONVERSATION)

        assert exc_info.value.name == "Nobody"

    def test_target_history_filter_applies(self, resolver):
        billing = AgentDefinition(name="Billing", history_filter=remove_tool_items)
        triage = AgentDefinition(name="Triage", handoffs=[Handoff(billing)])

        new_context = resolver.resolve(HandoffSignal(target="Billing"), triage, CONVERSATION)

        assert new_context.conversation == (CONVERSATION[0], CONVERSATION[3])

    def test_filter_does_not_mutate_input(self, resolver):
        billing = AgentDefinition(name="Billing", history_filter=keep_last(1))
        triage = AgentDefinition(name="Triage", handoffs=[Handoff(billing)])
        working = list(CONVERSATION)

        resolver.resolve(HandoffSignal(target="Billing"), triage, working)

        assert working == list(CONVERSATION)

    def test_lazy_target_supports_cycles(self, resolver):
        agents: dict[str, AgentDefinition] = {}
        agents["a"] = AgentDefinition(
            name="A", handoffs=[Handoff(lambda: agents["b"], agent_name="B")]
        )
        agents["b"] = AgentDefinition(name="B", handoffs=[Handoff(agents["a"])])

        to_b = resolver.resolve(HandoffSignal(target="B"), agents["a"], ())
        back_to_a = resolver.resolve(HandoffSignal(target="A"), to_b.agent, ())

        assert to_b.agent is agents["b"]
        assert back_to_a.agent is agents["a"]


class TestFilters:
    def test_user_messages_only(self):
        assert user_messages_only(CONVERSATION) == (CONVERSATION[0],)

    def test_keep_last(self):
        assert keep_last(2)(CONVERSATION) == CONVERSATION[2:]
        assert keep_last(0)(CONVERSATION) == ()

    def test_keep_last_rejects_negative(self):
        with pytest.raises(ValueError):
            keep_last(-1)


class TestLazyTargetFailures:
    def test_name_mismatch_is_unknown_target(self, resolver):
        other = AgentDefinition(name="B")
        agent = AgentDefinition(name="A", handoffs=[Handoff(lambda: other, agent_name="C")])

        with pytest.raises(UnknownHandoffTarget) as exc_info:
            resolver.resolve(HandoffSignal(target="C"), agent, CONVERSATION)

        assert exc_info.value.name == "C"
        assert isinstance(exc_info.value.__cause__, ConfigurationError)

    def test_factory_error_is_unknown_target(self, resolver):
        registry: dict[str, AgentDefinition] = {}
        agent = AgentDefinition(
            name="A", handoffs=[Handoff(lambda: registry["missing"], agent_name="Missing")]
        )

        with pytest.raises(UnknownHandoffTarget) as exc_info:
            resolver.resolve(HandoffSignal(target="Missing"), agent, CONVERSATION)

        assert isinstance(exc_info.value.__cause__, KeyError)
