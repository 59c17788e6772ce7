"""
baton/core/agent.py

The Agent definition. The developer-facing configuration object.

Design:
  - An Agent is a bundle of identity, behaviour, tools, guardrails,
    handoff targets and an optional output contract. It holds no run state.
  - Everything is validated at construction. Configuration errors are
    raised here and never during a run.
  - Agents are immutable once built. The handoff name map is finalized in
    __init__; clone() and the with_* helpers return new agents. This is
    what makes one Agent safe to share across concurrent runs.
  - Agent identity in the handoff graph is the agent name.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ValidationError

from baton.config import AgentSettings, ToolDefinition
from baton.core.output import OutputSchema
from baton.core.tool import FunctionTool
from baton.errors import (
    CircularHandoffError,
    ConfigError,
    InvalidAgentNameError,
    InvalidModelError,
    InvalidToolError,
)
from baton.interfaces import Guardrail, Tool


class Agent:
    """
    A named agent configuration.

    Example::

        billing = Agent(
            name="Billing",
            instructions="Answer billing questions.",
            tools=[lookup_invoice],
        )
        triage = Agent(
            name="Triage",
            instructions="Route the user to the right specialist.",
            handoffs=[billing],
            guardrails=[KeywordBlockGuard(["password"])],
        )
        result = await Runner(provider=provider).run(triage, "Where is my refund?")
    """

    def __init__(
        self,
        name: str,
        instructions: str = "",
        model: str = "gpt-4",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        top_p: float = 1.0,
        tools: Iterable[Tool | Any] | None = None,
        handoffs: Iterable[Agent] | None = None,
        guardrails: Iterable[Guardrail] | None = None,
        output_schema: OutputSchema | type[BaseModel] | dict[str, Any] | None = None,
        handoff_description: str = "",
    ) -> None:
        try:
            self._settings = AgentSettings(
                name=name,
                instructions=instructions,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
                handoff_description=handoff_description,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or "agent"
            raise ConfigError(field=field, reason=first["msg"], value=first.get("input")) from e

        self._tools: Mapping[str, Tool] = MappingProxyType(_index_tools(tools or ()))
        self._handoffs: tuple[Agent, ...] = tuple(handoffs or ())
        self._handoff_map: Mapping[str, Agent] = MappingProxyType(_index_handoffs(self._handoffs))
        self._guardrails: tuple[Guardrail, ...] = tuple(guardrails or ())
        self._output_schema = _coerce_output_schema(output_schema)

        self.validate()
        self._frozen = True

    def __setattr__(self, key: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"Agent is immutable; use clone({key}=...) instead")
        object.__setattr__(self, key, value)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Raise a ConfigError if the agent is unusable:
        empty name, empty model, a tool failing its own validation, or a
        cycle in the handoff graph reachable from this agent.
        """
        if not self.name:
            raise InvalidAgentNameError(self.name)
        if not self.model:
            raise InvalidModelError(agent_name=self.name, value=self.model)

        for t in self._tools.values():
            try:
                t.validate()
            except (ValueError, TypeError) as e:
                raise InvalidToolError(tool_name=t.name, reason=str(e)) from e

        _check_handoff_cycles(self, on_stack=set(), path=[])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_handoff(self, name: str) -> Agent | None:
        """O(1) lookup of a declared handoff target. None when not declared."""
        return self._handoff_map.get(name)

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def tool_definitions(self) -> list[ToolDefinition]:
        """Provider-facing catalog of this agent's tools, in declaration order."""
        return [t.definition() for t in self._tools.values()]

    # ------------------------------------------------------------------
    # Builder-style copies
    # ------------------------------------------------------------------

    def clone(self, **overrides: Any) -> Agent:
        """
        Return a new, validated agent with the given fields replaced.
        Tools, handoffs and guardrails are shared by reference.
        """
        fields: dict[str, Any] = {
            "name": self.name,
            "instructions": self.instructions,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "tools": tuple(self._tools.values()),
            "handoffs": self._handoffs,
            "guardrails": self._guardrails,
            "output_schema": self._output_schema,
            "handoff_description": self.handoff_description,
        }
        unknown = set(overrides) - set(fields)
        if unknown:
            raise ConfigError(field="overrides", reason=f"unknown agent fields {sorted(unknown)}")
        fields.update(overrides)
        return Agent(**fields)

    def with_tools(self, *tools: Tool | Any) -> Agent:
        return self.clone(tools=(*self._tools.values(), *tools))

    def with_handoffs(self, *agents: Agent) -> Agent:
        return self.clone(handoffs=(*self._handoffs, *agents))

    def with_guardrails(self, *guardrails: Guardrail) -> Agent:
        return self.clone(guardrails=(*self._guardrails, *guardrails))

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> AgentSettings:
        return self._settings

    @property
    def name(self) -> str:
        return self._settings.name

    @property
    def instructions(self) -> str:
        return self._settings.instructions

    @property
    def model(self) -> str:
        return self._settings.model

    @property
    def temperature(self) -> float:
        return self._settings.temperature

    @property
    def max_tokens(self) -> int:
        return self._settings.max_tokens

    @property
    def top_p(self) -> float:
        return self._settings.top_p

    @property
    def handoff_description(self) -> str:
        return self._settings.handoff_description

    @property
    def tools(self) -> tuple[Tool, ...]:
        return tuple(self._tools.values())

    @property
    def handoffs(self) -> tuple[Agent, ...]:
        return self._handoffs

    @property
    def handoff_names(self) -> list[str]:
        return list(self._handoff_map)

    @property
    def guardrails(self) -> tuple[Guardrail, ...]:
        return self._guardrails

    @property
    def output_schema(self) -> OutputSchema | None:
        return self._output_schema

    @property
    def has_output_schema(self) -> bool:
        return self._output_schema is not None

    def __repr__(self) -> str:
        return (
            f"Agent(name={self.name!r}, model={self.model!r}, "
            f"tools={list(self._tools)}, handoffs={self.handoff_names})"
        )


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def _index_tools(tools: Iterable[Tool | Any]) -> dict[str, Tool]:
    indexed: dict[str, Tool] = {}
    for t in tools:
        if not isinstance(t, Tool):
            if not callable(t):
                raise ConfigError(field="tools", reason=f"cannot use {type(t).__name__} as a tool")
            t = FunctionTool(t)
        if t.name in indexed:
            raise ConfigError(field="tools", reason=f"duplicate tool name '{t.name}'", value=t.name)
        indexed[t.name] = t
    return indexed


def _index_handoffs(handoffs: tuple[Agent, ...]) -> dict[str, Agent]:
    indexed: dict[str, Agent] = {}
    for target in handoffs:
        if not isinstance(target, Agent):
            raise ConfigError(field="handoffs", reason=f"handoff target must be an Agent, got {type(target).__name__}")
        if target.name in indexed:
            raise ConfigError(field="handoffs", reason=f"duplicate handoff target '{target.name}'", value=target.name)
        indexed[target.name] = target
    return indexed


def _coerce_output_schema(value: Any) -> OutputSchema | None:
    if value is None or isinstance(value, OutputSchema):
        return value
    if isinstance(value, type) and issubclass(value, BaseModel):
        return OutputSchema(model=value)
    if isinstance(value, dict):
        return OutputSchema(json_schema=value)
    raise ConfigError(field="output_schema", reason=f"unsupported output schema {type(value).__name__}")


def _check_handoff_cycles(agent: Agent, on_stack: set[str], path: list[str]) -> None:
    """Depth-first walk keeping the names currently on the stack."""
    if agent.name in on_stack:
        raise CircularHandoffError(agent_name=agent.name, path=[*path, agent.name])
    on_stack.add(agent.name)
    path.append(agent.name)
    try:
        for target in agent.handoffs:
            _check_handoff_cycles(target, on_stack, path)
    finally:
        on_stack.discard(agent.name)
        path.pop()
