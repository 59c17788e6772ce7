"""
tests/test_agent.py — Agent construction, validation and the handoff graph.
Run with: pytest tests/test_agent.py -v
"""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from baton.config import ParameterSchema, PropertySchema
from baton.core.agent import Agent
from baton.core.output import OutputSchema
from baton.core.tool import FunctionTool
from baton.errors import (
    CircularHandoffError,
    ConfigError,
    InvalidAgentNameError,
    InvalidModelError,
    InvalidToolError,
)
from baton.safety.guardrails import LengthGuard


class Verdict(BaseModel):
    approved: bool
    note: str = ""


# ── Construction ───────────────────────────────────────────────────────────────


class TestConstruction:
    def test_defaults(self):
        agent = Agent(name="Helper")
        assert agent.model == "gpt-4"
        assert agent.temperature == 0.7
        assert agent.max_tokens == 2000
        assert agent.top_p == 1.0
        assert agent.tools == ()
        assert agent.handoffs == ()
        assert agent.guardrails == ()
        assert agent.output_schema is None
        assert not agent.has_output_schema

    def test_empty_name_rejected(self):
        with pytest.raises(InvalidAgentNameError):
            Agent(name="")

    def test_empty_model_rejected(self):
        with pytest.raises(InvalidModelError) as exc:
            Agent(name="Helper", model="")
        assert exc.value.agent_name == "Helper"

    @pytest.mark.parametrize(
        "field,value",
        [("temperature", 3.0), ("temperature", -0.1), ("top_p", 1.5), ("max_tokens", 0)],
    )
    def test_out_of_range_settings_rejected(self, field, value):
        with pytest.raises(ConfigError) as exc:
            Agent(name="Helper", **{field: value})
        assert exc.value.field == field

    def test_plain_callable_becomes_tool(self):
        def shout(text: str) -> str:
            """Upper-case the text."""
            return text.upper()

        agent = Agent(name="Helper", tools=[shout])
        t = agent.get_tool("shout")
        assert isinstance(t, FunctionTool)
        assert t.description == "Upper-case the text."

    def test_duplicate_tool_names_rejected(self, add_tool):
        with pytest.raises(ConfigError, match="duplicate tool name"):
            Agent(name="Helper", tools=[add_tool, add_tool])

    def test_invalid_tool_wrapped(self):
        broken = FunctionTool(
            lambda **kw: None,
            name="broken",
            parameters=ParameterSchema(properties={}, required=["missing"]),
        )
        with pytest.raises(InvalidToolError) as exc:
            Agent(name="Helper", tools=[broken])
        assert exc.value.tool_name == "broken"
        assert isinstance(exc.value.__cause__, ValueError)

    def test_unnamed_tool_rejected(self):
        nameless = FunctionTool(lambda: "x", name="")
        with pytest.raises(InvalidToolError):
            Agent(name="Helper", tools=[nameless])

    def test_output_schema_from_model(self):
        agent = Agent(name="Judge", output_schema=Verdict)
        assert isinstance(agent.output_schema, OutputSchema)
        assert agent.output_schema.model is Verdict
        assert agent.has_output_schema

    def test_output_schema_from_dict(self):
        agent = Agent(name="Judge", output_schema={"type": "object", "required": ["approved"]})
        assert agent.output_schema.json_schema()["required"] == ["approved"]


# ── Handoff graph ──────────────────────────────────────────────────────────────


class TestHandoffGraph:
    def test_get_handoff(self, triage_agent, billing_agent):
        assert triage_agent.get_handoff("Billing") is billing_agent
        assert triage_agent.get_handoff("Shipping") is None
        assert triage_agent.handoff_names == ["Billing"]

    def test_cycle_through_name_detected(self):
        inner = Agent(name="Triage")
        billing = Agent(name="Billing", handoffs=[inner])
        with pytest.raises(CircularHandoffError) as exc:
            Agent(name="Triage", handoffs=[billing])
        assert exc.value.agent_name == "Triage"
        assert exc.value.path == ["Triage", "Billing", "Triage"]

    def test_self_handoff_is_a_cycle(self):
        with pytest.raises(CircularHandoffError):
            Agent(name="Loop", handoffs=[Agent(name="Loop")])

    def test_diamond_is_not_a_cycle(self):
        d = Agent(name="D")
        b = Agent(name="B", handoffs=[d])
        c = Agent(name="C", handoffs=[d])
        a = Agent(name="A", handoffs=[b, c])
        assert a.handoff_names == ["B", "C"]

    def test_deep_chain(self):
        node = Agent(name="n0")
        for i in range(1, 30):
            node = Agent(name=f"n{i}", handoffs=[node])
        assert node.get_handoff("n28") is not None

    def test_duplicate_handoff_target_rejected(self, billing_agent):
        with pytest.raises(ConfigError, match="duplicate handoff"):
            Agent(name="Triage", handoffs=[billing_agent, billing_agent])

    def test_with_handoffs_validates(self):
        triage = Agent(name="Triage")
        billing = Agent(name="Billing", handoffs=[Agent(name="Triage")])
        with pytest.raises(CircularHandoffError):
            triage.with_handoffs(billing)


# ── Immutability and copies ────────────────────────────────────────────────────


class TestImmutability:
    def test_assignment_rejected(self, math_agent):
        with pytest.raises(AttributeError):
            math_agent.name = "Other"
        with pytest.raises(AttributeError):
            math_agent.extra = 1

    def test_tools_view_is_a_tuple(self, math_agent):
        assert isinstance(math_agent.tools, tuple)

    def test_clone_overrides(self, math_agent):
        cold = math_agent.clone(temperature=0.0, name="ColdMath")
        assert cold.temperature == 0.0
        assert cold.name == "ColdMath"
        assert math_agent.temperature == 0.7
        assert cold.get_tool("add") is math_agent.get_tool("add")

    def test_clone_revalidates(self, math_agent):
        with pytest.raises(InvalidModelError):
            math_agent.clone(model="")

    def test_clone_unknown_field(self, math_agent):
        with pytest.raises(ConfigError):
            math_agent.clone(role="analyst")

    def test_with_tools_and_guardrails(self, math_agent, slow_echo_tool):
        richer = math_agent.with_tools(slow_echo_tool).with_guardrails(LengthGuard(max_chars=10))
        assert [t.name for t in richer.tools] == ["add", "slow_echo"]
        assert len(richer.guardrails) == 1
        assert [t.name for t in math_agent.tools] == ["add"]


# ── Tool catalog ───────────────────────────────────────────────────────────────


class TestToolCatalog:
    def test_tool_definitions(self, math_agent):
        defs = math_agent.tool_definitions()
        assert [d.name for d in defs] == ["add"]
        schema = defs[0].parameters.to_json_schema()
        assert schema["properties"]["a"] == {"type": "integer"}
        assert schema["required"] == ["a", "b"]

    def test_explicit_parameter_schema(self):
        t = FunctionTool(
            lambda city: city,
            name="weather",
            description="Weather for a city.",
            parameters=ParameterSchema(
                properties={"city": PropertySchema(type="string", description="City name")},
                required=["city"],
            ),
        )
        agent = Agent(name="Helper", tools=[t])
        llm = agent.tool_definitions()[0].to_llm_schema()
        assert llm["parameters"]["properties"]["city"]["description"] == "City name"
