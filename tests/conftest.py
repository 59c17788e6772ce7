"""
tests/conftest.py — shared fixtures for the baton test-suite.
"""

from __future__ import annotations

import asyncio

import pytest

from baton.core.agent import Agent
from baton.core.tool import tool
from baton.observability.tracer import InMemoryTracer


# ── Tools ──────────────────────────────────────────────────────────────────────


@tool(description="Add two integers.")
def add(a: int, b: int) -> int:
    return a + b


@tool(description="Echo a value back after a delay.")
async def slow_echo(value: str, delay: float = 0.0) -> str:
    await asyncio.sleep(delay)
    return value


@tool(description="Always fails.")
def explode() -> str:
    raise RuntimeError("kaboom")


@pytest.fixture
def add_tool():
    return add


@pytest.fixture
def slow_echo_tool():
    return slow_echo


@pytest.fixture
def explode_tool():
    return explode


# ── Agents ─────────────────────────────────────────────────────────────────────


@pytest.fixture
def math_agent():
    return Agent(name="Math", instructions="Use add for arithmetic.", tools=[add])


@pytest.fixture
def billing_agent():
    return Agent(
        name="Billing",
        instructions="Answer billing questions.",
        handoff_description="Billing and refunds specialist.",
    )


@pytest.fixture
def triage_agent(billing_agent):
    return Agent(name="Triage", instructions="Route to a specialist.", handoffs=[billing_agent])


@pytest.fixture
def tracer():
    return InMemoryTracer()
