"""
Agent Definition

An AgentDefinition is the immutable description of an agent: identity,
instructions, model selection, registered tools and handoff targets,
guardrails per stage and an optional turn limit. It is created once by the
caller (directly or through AgentBuilder) and shared read-only by runs.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from agentrelay.core.domain.errors import ConfigurationError
from agentrelay.core.domain.items import ConversationItem
from agentrelay.core.domain.models import ToolDefinition
from agentrelay.core.interfaces.guardrails import GuardrailProtocol
from agentrelay.core.interfaces.hooks import AgentHooks
from agentrelay.core.interfaces.tools import ToolProtocol

if TYPE_CHECKING:
    from agentrelay.core.domain.models import RunContext

DEFAULT_MODEL = "gpt-4o"

HistoryFilter = Callable[[Sequence[ConversationItem]], Sequence[ConversationItem]]
Instructions = Union[str, Callable[["RunContext", "AgentDefinition"], str]]


@dataclass(frozen=True)
class ModelSettings:
    """Sampling parameters forwarded to the model provider."""

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    tool_choice: str | None = None


def _snake_case(name: str) -> str:
    return re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()


class Handoff:
    """
    Registration of a handoff target on a source agent.

    The target may be given lazily as a zero-argument callable so that two
    agents can hand off to each other; a lazy target needs ``agent_name``
    because it is only resolved when the handoff happens.

    Args:
        target: AgentDefinition or callable returning one
        description: When the model should use this handoff
        tool_name: Override for the tool name exposed to the model
            (default ``transfer_to_<agent_name>``)
        agent_name: Name of a lazy target
    """

    def __init__(
        self,
        target: Union["AgentDefinition", Callable[[], "AgentDefinition"]],
        description: str | None = None,
        tool_name: str | None = None,
        agent_name: str | None = None,
    ):
        if not isinstance(target, AgentDefinition):
            if not callable(target):
                raise ConfigurationError(f"Invalid handoff target: {target!r}")
            if agent_name is None:
                raise ConfigurationError("A lazy handoff target requires agent_name")
        self._target = target
        self._description = description
        self._tool_name = tool_name
        self._agent_name = agent_name

    @property
    def agent(self) -> "AgentDefinition":
        """Resolved target agent."""
        if isinstance(self._target, AgentDefinition):
            return self._target
        agent = self._target()
        if agent.name != self._agent_name:
            raise ConfigurationError(
                f"Handoff target resolved to {agent.name!r}, expected {self._agent_name!r}"
            )
        return agent

    @property
    def agent_name(self) -> str:
        if self._agent_name is not None:
            return self._agent_name
        return self._target.name

    @property
    def tool_name(self) -> str:
        return self._tool_name or f"transfer_to_{_snake_case(self.agent_name)}"

    @property
    def description(self) -> str:
        return self._description or f"Hand off the conversation to {self.agent_name}."

    def to_tool_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.tool_name,
            description=self.description,
            parameters={"type": "object", "properties": {}, "required": []},
        )

    def __repr__(self) -> str:
        return f"Handoff(tool_name={self.tool_name!r})"


@dataclass(frozen=True, eq=False)
class AgentDefinition:
    """
    Immutable agent definition.

    Attributes:
        name: Agent identity, also used as handoff target name
        instructions: System prompt, either a ``str.format`` template
            (``agent_name``, ``turn`` and run context keys are available) or
            a callable ``(context, agent) -> str``
        model: Model identifier passed to the provider
        model_settings: Sampling parameters
        tools: Registered tools (names must be unique)
        handoffs: Registered handoff targets
        input_guardrails: Checks on the run input (starting agent only)
        output_guardrails: Checks on the final output
        tool_input_guardrails: Checks on tool arguments before invocation
        tool_output_guardrails: Checks on tool outputs
        max_turns: Turn limit while this agent is active (None = default)
        history_filter: Maps the conversation carried into this agent on
            handoff to the conversation it sees (default: identity)
        parallel_tool_calls: Run tool calls of one turn concurrently
        hooks: Lifecycle hooks scoped to this agent
    """

    name: str
    instructions: Instructions = ""
    model: str = DEFAULT_MODEL
    model_settings: ModelSettings = field(default_factory=ModelSettings)
    tools: tuple[ToolProtocol, ...] = ()
    handoffs: tuple[Handoff, ...] = ()
    input_guardrails: tuple[GuardrailProtocol, ...] = ()
    output_guardrails: tuple[GuardrailProtocol, ...] = ()
    tool_input_guardrails: tuple[GuardrailProtocol, ...] = ()
    tool_output_guardrails: tuple[GuardrailProtocol, ...] = ()
    max_turns: int | None = None
    history_filter: HistoryFilter | None = None
    parallel_tool_calls: bool = True
    hooks: tuple[AgentHooks, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Agent name must not be empty")
        if self.max_turns is not None and self.max_turns < 1:
            raise ConfigurationError(f"max_turns must be >= 1, got {self.max_turns}")

        # Accept lists from callers, store tuples
        for attr in (
            "tools",
            "handoffs",
            "input_guardrails",
            "output_guardrails",
            "tool_input_guardrails",
            "tool_output_guardrails",
            "hooks",
        ):
            value = getattr(self, attr)
            if not isinstance(value, tuple):
                object.__setattr__(self, attr, tuple(value))

        tool_names = [tool.name for tool in self.tools]
        duplicates = {n for n in tool_names if tool_names.count(n) > 1}
        if duplicates:
            raise ConfigurationError(
                f"Agent {self.name!r} registers duplicate tools: {sorted(duplicates)}"
            )

        handoff_names = [h.tool_name for h in self.handoffs]
        clashes = {n for n in handoff_names if handoff_names.count(n) > 1}
        clashes |= set(handoff_names) & set(tool_names)
        if clashes:
            raise ConfigurationError(
                f"Agent {self.name!r} has conflicting handoff names: {sorted(clashes)}"
            )

    @classmethod
    def builder(cls, name: str) -> "AgentBuilder":
        return AgentBuilder(name)

    def get_tool(self, name: str) -> ToolProtocol | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def get_handoff(self, name: str) -> Handoff | None:
        """Find a handoff by target agent name or by its tool name."""
        for handoff in self.handoffs:
            if handoff.tool_name == name:
                return handoff
        for handoff in self.handoffs:
            if handoff.agent_name == name:
                return handoff
        return None

    def is_handoff_tool(self, name: str) -> bool:
        return any(h.tool_name == name for h in self.handoffs)

    def tool_definitions(self) -> tuple[ToolDefinition, ...]:
        """Tool schema presented to the model: tools first, then handoffs."""
        definitions = [
            ToolDefinition(
                name=tool.name,
                description=tool.description,
                parameters=tool.parameters_schema,
            )
            for tool in self.tools
        ]
        definitions.extend(h.to_tool_definition() for h in self.handoffs)
        return tuple(definitions)

    def render_instructions(self, context: "RunContext") -> str:
        if callable(self.instructions):
            return self.instructions(context, self)
        if not self.instructions:
            return ""
        values: dict[str, Any] = {**context.user_context}
        values.update(agent_name=self.name, turn=context.turn)
        try:
            return self.instructions.format(**values)
        except (KeyError, IndexError, ValueError):
            # Not a template (e.g. literal braces): use verbatim
            return self.instructions

    def __repr__(self) -> str:
        return (
            f"AgentDefinition(name={self.name!r}, model={self.model!r}, "
            f"tools={[t.name for t in self.tools]}, "
            f"handoffs={[h.tool_name for h in self.handoffs]})"
        )


class AgentBuilder:
    """
    Fluent builder for AgentDefinition.

    Example:
        >>> agent = (
        ...     AgentDefinition.builder("Assistant")
        ...     .instructions("You are helpful.")
        ...     .tool(search)
        ...     .max_turns(5)
        ...     .build()
        ... )
    """

    def __init__(self, name: str):
        self._name = name
        self._fields: dict[str, Any] = {}
        self._tools: list[ToolProtocol] = []
        self._handoffs: list[Handoff] = []
        self._guardrails: dict[str, list[GuardrailProtocol]] = {
            "input_guardrails": [],
            "output_guardrails": [],
            "tool_input_guardrails": [],
            "tool_output_guardrails": [],
        }
        self._hooks: list[AgentHooks] = []

    def instructions(self, instructions: Instructions) -> "AgentBuilder":
        self._fields["instructions"] = instructions
        return self

    def model(self, model: str, settings: ModelSettings | None = None) -> "AgentBuilder":
        self._fields["model"] = model
        if settings is not None:
            self._fields["model_settings"] = settings
        return self

    def tool(self, tool: ToolProtocol) -> "AgentBuilder":
        self._tools.append(tool)
        return self

    def tools(self, tools: Sequence[ToolProtocol]) -> "AgentBuilder":
        self._tools.extend(tools)
        return self

    def handoff(
        self,
        target: Union[AgentDefinition, Handoff, Callable[[], AgentDefinition]],
        description: str | None = None,
        agent_name: str | None = None,
    ) -> "AgentBuilder":
        if not isinstance(target, Handoff):
            target = Handoff(target, description=description, agent_name=agent_name)
        self._handoffs.append(target)
        return self

    def input_guardrail(self, rail: GuardrailProtocol) -> "AgentBuilder":
        self._guardrails["input_guardrails"].append(rail)
        return self

    def output_guardrail(self, rail: GuardrailProtocol) -> "AgentBuilder":
        self._guardrails["output_guardrails"].append(rail)
        return self

    def tool_input_guardrail(self, rail: GuardrailProtocol) -> "AgentBuilder":
        self._guardrails["tool_input_guardrails"].append(rail)
        return self

    def tool_output_guardrail(self, rail: GuardrailProtocol) -> "AgentBuilder":
        self._guardrails["tool_output_guardrails"].append(rail)
        return self

    def max_turns(self, max_turns: int) -> "AgentBuilder":
        self._fields["max_turns"] = max_turns
        return self

    def history_filter(self, history_filter: HistoryFilter) -> "AgentBuilder":
        self._fields["history_filter"] = history_filter
        return self

    def parallel_tool_calls(self, parallel: bool) -> "AgentBuilder":
        self._fields["parallel_tool_calls"] = parallel
        return self

    def hooks(self, hooks: AgentHooks) -> "AgentBuilder":
        self._hooks.append(hooks)
        return self

    def build(self) -> AgentDefinition:
        return AgentDefinition(
            name=self._name,
            tools=tuple(self._tools),
            handoffs=tuple(self._handoffs),
            hooks=tuple(self._hooks),
            **{k: tuple(v) for k, v in self._guardrails.items()},
            **self._fields,
        )
