"""
examples/basic.py  —  one agent, one tool, offline.

Run: python examples/basic.py

Swap ScriptedProvider for OpenAICompatProvider() (needs OPENAI_API_KEY)
or OllamaProvider() to talk to a real model.
"""

import baton


@baton.tool(description="Add two integers.")
def add(a: int, b: int) -> int:
    return a + b


math = baton.Agent(
    name="Math",
    instructions="Use the add tool for arithmetic.",
    tools=[add],
)

provider = baton.ScriptedProvider([
    baton.Completion(tool_calls=[baton.ToolCall(name="add", arguments={"a": 2, "b": 3})]),
    "2 + 3 = 5",
])

result = baton.run_sync(math, "What is 2 + 3?", provider=provider)

print(f"Output:      {result.final_output}")
print(f"Turns:       {result.metrics.total_turns}")
print(f"Tool calls:  {result.metrics.tool_calls}")
for m in result.messages:
    print(f"  [{m.role.value:9}] {m.content}")
