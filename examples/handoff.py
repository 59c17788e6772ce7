"""
examples/handoff.py  —  triage agent handing a customer to billing.

Run: python examples/handoff.py
"""

import asyncio

import baton


@baton.tool(description="Look up the refund status of an order.")
def refund_status(order_id: str, context: baton.RunContext) -> dict:
    return {"order_id": order_id, "customer": context.variables.get("customer"), "status": "issued"}


billing = baton.Agent(
    name="Billing",
    instructions="Answer billing and refund questions.",
    handoff_description="Billing and refunds specialist.",
    tools=[refund_status],
)

triage = baton.Agent(
    name="Triage",
    instructions="Route the customer to the right specialist.",
    handoffs=[billing],
    guardrails=[baton.PIIGuard(patterns=["cc", "ssn"])],
)

provider = baton.ScriptedProvider([
    baton.Completion(
        message=baton.Message.assistant("Let me get billing for you."),
        handoff=baton.HandoffRequest(
            target_agent="Billing",
            reason="refund question",
            context={"customer": "c-1042"},
        ),
    ),
    baton.Completion(tool_calls=[baton.ToolCall(name="refund_status", arguments={"order_id": "A-77"})]),
    "Your refund for order A-77 has been issued.",
])


async def main():
    tracer = baton.InMemoryTracer()
    runner = baton.Runner(provider=provider, tracer=tracer, session=baton.InMemorySession("c-1042"))
    result = await runner.run(triage, "Where is my refund for order A-77?")

    print(f"Output:      {result.final_output}")
    print(f"Last agent:  {result.last_agent}")
    print(f"Handoffs:    {result.metrics.handoffs}")
    print()
    for span in tracer.spans:
        print(f"  {span.name:18} {span.duration_ms:7.2f} ms  {span.attributes}")


asyncio.run(main())
