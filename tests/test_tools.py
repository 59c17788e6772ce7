"""
tests/test_tools.py — FunctionTool, the @tool decorator and schema derivation.
Run with: pytest tests/test_tools.py -v
"""

from __future__ import annotations

import asyncio
from typing import Literal, Optional

import pytest

from baton.context import RunContext
from baton.core.tool import FunctionTool, tool
from baton.errors import ToolArgumentError, ToolTimeoutError


# ── Schema derivation ──────────────────────────────────────────────────────────


class TestSchema:
    def test_basic_types(self):
        @tool()
        def search(query: str, limit: int = 5, exact: bool = False, boost: float = 1.0) -> list:
            """Search the index.

            query: Free-text query.
            """
            return []

        schema = search.schema.to_json_schema()
        assert schema["properties"]["query"] == {"type": "string", "description": "Free-text query."}
        assert schema["properties"]["limit"]["type"] == "integer"
        assert schema["properties"]["exact"]["type"] == "boolean"
        assert schema["properties"]["boost"]["type"] == "number"
        assert schema["required"] == ["query"]

    def test_optional_literal_and_list(self):
        @tool(description="Forecast.")
        def forecast(city: str, unit: Literal["c", "f"] = "c", days: Optional[int] = None, tags: list[str] = []) -> str:
            return city

        props = forecast.schema.properties
        assert props["unit"].enum == ["c", "f"]
        assert props["days"].type == "integer"
        assert props["tags"].type == "array"
        assert props["tags"].items == {"type": "string"}
        assert forecast.schema.required == ["city"]

    def test_context_parameter_hidden(self):
        @tool()
        def whoami(context: RunContext) -> str:
            return context.current_agent

        assert whoami.schema.properties == {}

    def test_decorator_metadata(self):
        @tool(name="sum_two", description="Adds.", timeout=5.0)
        def add(a: int, b: int) -> int:
            return a + b

        assert add.name == "sum_two"
        assert add.description == "Adds."
        assert add.timeout_s == 5.0
        assert add.__wrapped__ is not None

    def test_invalid_timeout_fails_validation(self):
        t = FunctionTool(lambda: None, name="t", timeout_s=0)
        with pytest.raises(ValueError):
            t.validate()


# ── Execution ──────────────────────────────────────────────────────────────────


class TestExecution:
    @pytest.mark.asyncio
    async def test_sync_function(self, add_tool):
        assert await add_tool.execute({"a": 2, "b": 3}, RunContext(max_turns=1)) == 5

    @pytest.mark.asyncio
    async def test_async_function(self, slow_echo_tool):
        assert await slow_echo_tool(value="hi") == "hi"

    @pytest.mark.asyncio
    async def test_context_injected(self):
        @tool()
        def remember(key: str, context: RunContext) -> str:
            context.variables[key] = True
            return context.current_agent

        ctx = RunContext(max_turns=3, agent_name="Memo")
        assert await remember.execute({"key": "seen"}, ctx) == "Memo"
        assert ctx.variables == {"seen": True}

    @pytest.mark.asyncio
    async def test_unknown_argument(self, add_tool):
        with pytest.raises(ToolArgumentError, match="unexpected arguments"):
            await add_tool(a=1, b=2, c=3)

    @pytest.mark.asyncio
    async def test_missing_argument(self, add_tool):
        with pytest.raises(ToolArgumentError, match="missing required"):
            await add_tool(a=1)

    @pytest.mark.asyncio
    async def test_kwargs_accept_anything(self):
        @tool()
        def collect(**fields) -> dict:
            return fields

        assert await collect(x=1, y=2) == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_timeout(self):
        @tool(timeout=0.05)
        async def stall() -> str:
            await asyncio.sleep(5)
            return "never"

        with pytest.raises(ToolTimeoutError) as exc:
            await stall()
        assert exc.value.tool_name == "stall"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, explode_tool):
        with pytest.raises(RuntimeError, match="kaboom"):
            await explode_tool()
