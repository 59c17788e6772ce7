"""
tests/test_dispatch.py — concurrent and sequential tool dispatch.
Run with: pytest tests/test_dispatch.py -v
"""

from __future__ import annotations

import asyncio

import pytest
from builders import call

from baton.context import RunContext
from baton.core.agent import Agent
from baton.core.dispatch import dispatch_tool_calls
from baton.core.tool import tool
from baton.errors import FatalToolError, ToolDispatchError


@pytest.fixture
def ctx():
    return RunContext(max_turns=5)


@pytest.fixture
def echo_agent(slow_echo_tool, add_tool, explode_tool):
    return Agent(name="Echo", tools=[slow_echo_tool, add_tool, explode_tool])


class TestOrdering:
    @pytest.mark.asyncio
    async def test_slot_order_matches_call_order(self, echo_agent, ctx):
        # Finishing order is the reverse of call order.
        calls = [
            call("slow_echo", call_id="c1", value="first", delay=0.06),
            call("slow_echo", call_id="c2", value="second", delay=0.03),
            call("slow_echo", call_id="c3", value="third", delay=0.0),
        ]
        responses = await dispatch_tool_calls(calls, echo_agent, ctx)
        assert [r.tool_call_id for r in responses] == ["c1", "c2", "c3"]
        assert [r.content for r in responses] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_parallel_and_sequential_agree(self, echo_agent, ctx):
        calls = [
            call("add", call_id="a", a=1, b=2),
            call("missing", call_id="b"),
            call("explode", call_id="c"),
            call("slow_echo", call_id="d", value="x", delay=0.01),
        ]
        parallel = await dispatch_tool_calls(calls, echo_agent, ctx, parallel=True)
        sequential = await dispatch_tool_calls(calls, echo_agent, ctx, parallel=False)
        assert [r.model_dump() for r in parallel] == [r.model_dump() for r in sequential]

    @pytest.mark.asyncio
    async def test_concurrent_calls_overlap(self, ctx):
        running = 0
        peak = 0

        @tool()
        async def overlap(i: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return i

        agent = Agent(name="Counter", tools=[overlap])
        calls = [call("overlap", i=i) for i in range(4)]
        await dispatch_tool_calls(calls, agent, ctx, parallel=True)
        assert peak == 4

        peak = 0
        await dispatch_tool_calls(calls, agent, ctx, parallel=False)
        assert peak == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, echo_agent, ctx):
        assert await dispatch_tool_calls([], echo_agent, ctx) == []


class TestFailures:
    @pytest.mark.asyncio
    async def test_unknown_tool_is_local(self, echo_agent, ctx):
        responses = await dispatch_tool_calls(
            [call("add", call_id="ok", a=2, b=2), call("nope", call_id="bad")], echo_agent, ctx
        )
        assert responses[0].content == 4
        assert responses[1].error == "tool not found: nope"
        assert responses[1].is_error

    @pytest.mark.asyncio
    async def test_exception_is_local(self, echo_agent, ctx):
        responses = await dispatch_tool_calls(
            [call("explode"), call("add", a=1, b=1)], echo_agent, ctx
        )
        assert responses[0].error == "kaboom"
        assert responses[1].content == 2

    @pytest.mark.asyncio
    async def test_error_folds_into_tool_message(self, echo_agent, ctx):
        [response] = await dispatch_tool_calls([call("explode", call_id="x1")], echo_agent, ctx)
        msg = response.to_message()
        assert msg.role.value == "tool"
        assert msg.content == "Error: kaboom"
        assert msg.tool_call_id == "x1"
        assert msg.metadata["error"] == "kaboom"

    @pytest.mark.asyncio
    async def test_fatal_error_abandons_batch(self, ctx):
        finished = []

        @tool()
        async def patient(i: int) -> int:
            await asyncio.sleep(1)
            finished.append(i)
            return i

        @tool()
        async def doomed() -> str:
            await asyncio.sleep(0.01)
            raise FatalToolError("doomed", "disk gone")

        agent = Agent(name="Ops", tools=[patient, doomed])
        with pytest.raises(ToolDispatchError) as exc:
            await dispatch_tool_calls(
                [call("patient", i=1), call("doomed", call_id="d1"), call("patient", i=2)], agent, ctx
            )
        assert exc.value.tool_name == "doomed"
        assert exc.value.tool_call_id == "d1"
        assert isinstance(exc.value.__cause__, FatalToolError)
        await asyncio.sleep(0)
        assert finished == []

    @pytest.mark.asyncio
    async def test_fatal_error_sequential(self, ctx):
        @tool()
        def doomed() -> str:
            raise FatalToolError("doomed", "no")

        agent = Agent(name="Ops", tools=[doomed])
        with pytest.raises(ToolDispatchError):
            await dispatch_tool_calls([call("doomed")], agent, ctx, parallel=False)

    @pytest.mark.asyncio
    async def test_tools_see_run_context(self, ctx):
        @tool()
        def mark(key: str, context: RunContext) -> str:
            context.variables[key] = context.run_id
            return key

        agent = Agent(name="Marker", tools=[mark])
        await dispatch_tool_calls([call("mark", key="a"), call("mark", key="b")], agent, ctx)
        assert ctx.variables == {"a": ctx.run_id, "b": ctx.run_id}
