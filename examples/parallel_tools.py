"""
examples/parallel_tools.py  —  several tool calls in one turn run concurrently.

Run: python examples/parallel_tools.py
"""

import asyncio
import time

import baton


@baton.tool(description="Fetch the weather for a city.", timeout=5.0)
async def weather(city: str) -> str:
    await asyncio.sleep(0.5)  # stand-in for an HTTP call
    return f"{city}: 18C, clear"


def script(agent, messages, tools):
    if messages[-1].role == baton.MessageRole.USER:
        return baton.Completion(tool_calls=[
            baton.ToolCall(name="weather", arguments={"city": c})
            for c in ("Lisbon", "Oslo", "Tokyo")
        ])
    reports = [m.content for m in messages if m.role == baton.MessageRole.TOOL]
    return "; ".join(reports)


async def main():
    agent = baton.Agent(
        name="Forecaster",
        tools=[weather],
        guardrails=[baton.LengthGuard(max_chars=2_000), baton.KeywordBlockGuard(["password"])],
    )

    for parallel in (True, False):
        runner = baton.Runner(provider=baton.ScriptedProvider(script), parallel_tools=parallel)
        start = time.perf_counter()
        result = await runner.run(agent, "Weather in Lisbon, Oslo and Tokyo?")
        label = "parallel" if parallel else "sequential"
        print(f"{label:10} {time.perf_counter() - start:.2f}s  {result.final_output}")


asyncio.run(main())
