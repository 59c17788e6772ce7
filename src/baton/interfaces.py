"""
baton/interfaces.py

All abstract base classes for baton.
These are the extension contracts. Every completion backend, tool,
guardrail, session store and tracer implements one of these.

Rules:
  - No orchestration logic here. Contracts only.
  - I/O-bound contracts are async; pure ones (guardrails, tracing) are not.
  - These are the stable public extension API.
"""

from __future__ import annotations

import abc
from typing import (
    TYPE_CHECKING,
    Any,
)

if TYPE_CHECKING:
    # Forward references to avoid circular imports.
    from baton.config import (
        Completion,
        GuardrailResult,
        Message,
        ParameterSchema,
        ToolDefinition,
    )
    from baton.context import RunContext
    from baton.core.agent import Agent


# ---------------------------------------------------------------------------
# Completion provider
# ---------------------------------------------------------------------------


class CompletionProvider(abc.ABC):
    """
    Uniform interface for all completion backends.

    Implementors: NoOpProvider, ScriptedProvider, OpenAICompatProvider,
    OllamaProvider.

    Contract:
      - complete() returns one fully resolved assistant turn.
      - The runner passes the full ordered history every turn and treats
        any exception as fatal for the run.
      - Providers should raise ProviderError rather than raw client errors.
    """

    name: str = "provider"

    @abc.abstractmethod
    async def complete(
        self,
        agent: Agent,
        messages: list[Message],
        tools: list[ToolDefinition],
    ) -> Completion:
        """Map (agent, history, tool catalog) to one assistant turn."""
        ...

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class Tool(abc.ABC):
    """
    A named capability the completion backend may ask to invoke.

    Normally you use the @tool decorator instead of subclassing this directly.
    This interface exists for tools with their own state or I/O clients.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @property
    @abc.abstractmethod
    def description(self) -> str: ...

    @property
    @abc.abstractmethod
    def schema(self) -> ParameterSchema:
        """Declared parameters of the tool."""
        ...

    @abc.abstractmethod
    async def execute(self, arguments: dict[str, Any], context: RunContext) -> Any:
        """
        Run the tool. Raise to report a failure; the runner records it as
        this call's error. Raise FatalToolError to abort the whole run.
        """
        ...

    def validate(self) -> None:
        """Raise ValueError if the tool configuration is invalid."""
        if not self.name:
            raise ValueError("tool name cannot be empty")
        schema = self.schema
        if schema.type != "object":
            raise ValueError(f"parameter schema must be an object, got '{schema.type}'")
        missing = [r for r in schema.required if r not in schema.properties]
        if missing:
            raise ValueError(f"required parameters not declared: {missing}")

    def definition(self) -> ToolDefinition:
        from baton.config import ToolDefinition

        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.schema,
        )


# ---------------------------------------------------------------------------
# Guardrail
# ---------------------------------------------------------------------------


class Guardrail(abc.ABC):
    """
    A single content validator applied before each turn.

    Implementors: LengthGuard, KeywordBlockGuard, PIIGuard, RegexGuard,
    FunctionGuardrail.

    Contract:
      - check() is pure: no side effects, no network access.
      - check() never raises; it returns a GuardrailResult.
      - validate() raises GuardrailViolationError when check() fails.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Stable identifier for this guardrail (used in errors and traces)."""
        ...

    @property
    def description(self) -> str:
        return ""

    @abc.abstractmethod
    def check(self, content: str) -> GuardrailResult:
        """
        Evaluate content. Returns a GuardrailResult with:
          passed: bool
          reason: Optional[str], why it failed if it did
        """
        ...

    def validate(self, content: str) -> None:
        from baton.errors import GuardrailViolationError

        result = self.check(content)
        if not result.passed:
            raise GuardrailViolationError(
                guardrail_name=self.name,
                reason=result.reason or "content blocked",
                content_preview=content,
            )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Session(abc.ABC):
    """
    Durable conversation history keyed by a session id.

    Implementors: InMemorySession, SQLiteSession.

    Contract:
      - get_items returns messages oldest-first.
      - add_items appends in the given order.
      - pop_item removes and returns the newest message, or None.
    """

    @property
    @abc.abstractmethod
    def session_id(self) -> str: ...

    @abc.abstractmethod
    async def get_items(self, limit: int | None = None) -> list[Message]:
        """Return the newest `limit` messages (all when None), oldest first."""
        ...

    @abc.abstractmethod
    async def add_items(self, items: list[Message]) -> None: ...

    @abc.abstractmethod
    async def pop_item(self) -> Message | None: ...

    @abc.abstractmethod
    async def clear(self) -> None: ...

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Tracing
# ---------------------------------------------------------------------------


class Span(abc.ABC):
    """A single unit of traced work."""

    @abc.abstractmethod
    def set_attribute(self, key: str, value: Any) -> None: ...

    @abc.abstractmethod
    def set_error(self, error: BaseException | str) -> None: ...

    @abc.abstractmethod
    def end(self) -> None: ...


class Tracer(abc.ABC):
    """
    Emits spans around a run. Inert to control flow: the runner guards
    every call, so a failing tracer never changes a run's outcome.

    Implementors: NoOpTracer, InMemoryTracer, LoggingTracer.
    """

    @abc.abstractmethod
    def start_span(self, name: str, parent: Span | None = None) -> Span: ...

    @abc.abstractmethod
    def end_span(self, span: Span) -> None: ...
