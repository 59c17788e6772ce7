"""
baton — agent orchestration runtime.

Quickstart
----------

    import asyncio

    import baton

    @baton.tool(description="Add two integers.")
    def add(a: int, b: int) -> int:
        return a + b

    math = baton.Agent(
        name="Math",
        instructions="Use the add tool for arithmetic.",
        tools=[add],
    )

    # Synchronous: works anywhere, including plain scripts
    result = baton.run_sync(math, "What is 2 + 3?", provider=my_provider)
    print(result.final_output)

    # Asynchronous: use inside async functions
    async def main():
        runner = baton.Runner(provider=my_provider, max_turns=5)
        result = await runner.run(math, "What is 2 + 3?")
        print(result.final_output, result.metrics.tool_calls)

    asyncio.run(main())
"""

from __future__ import annotations

from baton.config import (
    AgentSettings,
    Completion,
    GuardrailResult,
    HandoffRequest,
    Message,
    MessageRole,
    ParameterSchema,
    PropertySchema,
    ProviderConfig,
    ProviderKind,
    RunMetrics,
    RunnerConfig,
    RunResult,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolResponse,
)
from baton.context import RunContext
from baton.core.agent import Agent
from baton.core.dispatch import dispatch_tool_calls
from baton.core.output import OutputSchema
from baton.core.runner import Runner, run, run_sync
from baton.core.tool import FunctionTool, tool
from baton.errors import (
    BatonError,
    CircularHandoffError,
    ConfigError,
    FatalToolError,
    GuardrailViolationError,
    HandoffNotFoundError,
    InvalidAgentNameError,
    InvalidModelError,
    InvalidToolError,
    MaxTurnsExceededError,
    OutputValidationError,
    ProviderConfigError,
    ProviderError,
    RunTimeoutError,
    SessionError,
    ToolArgumentError,
    ToolDispatchError,
    ToolError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from baton.interfaces import CompletionProvider, Guardrail, Session, Span, Tool, Tracer
from baton.memory.session import InMemorySession
from baton.memory.sqlite import SQLiteSession
from baton.models.factory import create_provider
from baton.models.providers.anthropic import AnthropicProvider
from baton.models.providers.gemini import GeminiProvider
from baton.models.providers.noop import NoOpProvider, ScriptedProvider
from baton.models.providers.ollama import OllamaProvider
from baton.models.providers.openai_compat import OpenAICompatProvider
from baton.observability.tracer import InMemoryTracer, LoggingTracer, NoOpTracer
from baton.safety.guardrails import (
    FunctionGuardrail,
    KeywordBlockGuard,
    LengthGuard,
    PIIGuard,
    RegexGuard,
    guardrail,
    run_guardrails,
)

try:
    from importlib.metadata import PackageNotFoundError as _PNFE
    from importlib.metadata import version as _pkg_version

    __version__: str = _pkg_version("baton-agents")
except _PNFE:  # editable / source install without metadata
    __version__ = "0.1.0"

__all__ = [
    "run",
    "run_sync",
    "create_provider",
    "dispatch_tool_calls",
    "run_guardrails",
    "Agent",
    "Runner",
    "RunContext",
    "OutputSchema",
    "tool",
    "FunctionTool",
    "guardrail",
    "FunctionGuardrail",
    "KeywordBlockGuard",
    "LengthGuard",
    "PIIGuard",
    "RegexGuard",
    "InMemorySession",
    "SQLiteSession",
    "NoOpProvider",
    "ScriptedProvider",
    "OpenAICompatProvider",
    "OllamaProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "NoOpTracer",
    "InMemoryTracer",
    "LoggingTracer",
    "CompletionProvider",
    "Guardrail",
    "Session",
    "Span",
    "Tool",
    "Tracer",
    "AgentSettings",
    "Completion",
    "GuardrailResult",
    "HandoffRequest",
    "Message",
    "MessageRole",
    "ParameterSchema",
    "PropertySchema",
    "ProviderConfig",
    "ProviderKind",
    "RunMetrics",
    "RunnerConfig",
    "RunResult",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    "ToolResponse",
    "BatonError",
    "ConfigError",
    "InvalidAgentNameError",
    "InvalidModelError",
    "InvalidToolError",
    "CircularHandoffError",
    "GuardrailViolationError",
    "ProviderError",
    "ProviderConfigError",
    "HandoffNotFoundError",
    "ToolError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "ToolArgumentError",
    "FatalToolError",
    "ToolDispatchError",
    "MaxTurnsExceededError",
    "RunTimeoutError",
    "OutputValidationError",
    "SessionError",
    "__version__",
]
