"""
baton/errors.py

All baton exceptions in one place.

Design rules:
  - Every error carries enough context to be actionable without a stack trace.
  - Errors form a hierarchy so callers can catch at the right level.
  - Structured fields on every exception class, mirrored into `details`.
  - Errors that abort a run carry the partial metrics and history of that run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from baton.config import Message, RunMetrics


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class BatonError(Exception):
    """
    Base for all baton exceptions.

    All subclasses pass a human-readable message and may attach
    structured context via the `details` dict. The runner fills
    `metrics` and `messages` before a fatal error leaves `Runner.run()`.
    """

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.metrics: Optional[RunMetrics] = None
        self.messages: List[Message] = []

    def __repr__(self) -> str:  # pragma: no cover
        return f"{type(self).__name__}({self.message!r}, details={self.details})"


# ---------------------------------------------------------------------------
# Configuration errors (raised at construction, never at run time)
# ---------------------------------------------------------------------------


class ConfigError(BatonError):
    """Raised when an agent, tool, runner or provider config is invalid."""

    status_code = 422

    def __init__(self, field: str, reason: str, value: Any = None) -> None:
        super().__init__(
            message=f"Configuration error on field '{field}': {reason}",
            details={"field": field, "reason": reason, "value": value},
        )
        self.field = field
        self.reason = reason


class InvalidAgentNameError(ConfigError):
    def __init__(self, value: Any = "") -> None:
        super().__init__(field="name", reason="agent name cannot be empty", value=value)


class InvalidModelError(ConfigError):
    def __init__(self, agent_name: str, value: Any = "") -> None:
        super().__init__(field="model", reason="model cannot be empty", value=value)
        self.details["agent_name"] = agent_name
        self.agent_name = agent_name


class InvalidToolError(ConfigError):
    """A tool attached to an agent failed its own validation."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(field="tools", reason=f"invalid tool {tool_name}: {reason}", value=tool_name)
        self.tool_name = tool_name


class CircularHandoffError(ConfigError):
    """The handoff graph reachable from an agent contains a cycle."""

    def __init__(self, agent_name: str, path: List[str]) -> None:
        super().__init__(
            field="handoffs",
            reason=f"circular handoff detected: {agent_name}",
            value=agent_name,
        )
        self.details["path"] = path
        self.agent_name = agent_name
        self.path = path


# ---------------------------------------------------------------------------
# Guardrails
# ---------------------------------------------------------------------------


class GuardrailViolationError(BatonError):
    """Content blocked by a guardrail. Fatal to the run."""

    status_code = 451

    def __init__(self, guardrail_name: str, reason: str, content_preview: str = "") -> None:
        super().__init__(
            message=f"guardrail '{guardrail_name}' failed: {reason}",
            details={
                "guardrail": guardrail_name,
                "reason": reason,
                "content_preview": content_preview[:100],
            },
        )
        self.guardrail_name = guardrail_name
        self.reason = reason


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class ProviderError(BatonError):
    """
    Raised by CompletionProvider implementations, or by the runner when a
    provider raised something else. Wraps raw client exceptions so callers
    never see backend-specific errors.
    """

    status_code = 502

    def __init__(
        self,
        provider: str,
        operation: str,
        reason: Optional[str] = None,
        original: Optional[BaseException] = None,
        retryable: bool = False,
    ) -> None:
        if reason is None and original is not None:
            reason = f"{type(original).__name__}: {original}"
        elif reason is None:
            reason = "unknown provider error"
        super().__init__(
            message=f"{provider} provider error in {operation}: {reason}",
            details={
                "provider": provider,
                "operation": operation,
                "reason": reason,
                "retryable": retryable,
            },
        )
        self.provider = provider
        self.operation = operation
        self.reason = reason
        self.original = original
        self.retryable = retryable


class ProviderConfigError(ConfigError):
    """A provider could not be built from the supplied configuration."""


# ---------------------------------------------------------------------------
# Handoffs
# ---------------------------------------------------------------------------


class HandoffNotFoundError(BatonError):
    """The provider requested a handoff to an agent not declared by the current agent."""

    status_code = 404

    def __init__(self, agent_name: str, target: str, available: Optional[List[str]] = None) -> None:
        super().__init__(
            message=f"handoff agent not found: {target}",
            details={
                "agent_name": agent_name,
                "target": target,
                "available": available or [],
            },
        )
        self.agent_name = agent_name
        self.target = target


# ---------------------------------------------------------------------------
# Tool errors (local to one ToolResponse unless escalated)
# ---------------------------------------------------------------------------


class ToolError(BatonError):
    """Base for all tool-related failures."""

    status_code = 502

    def __init__(
        self,
        tool_name: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details={"tool_name": tool_name, **(details or {})})
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """The model called a tool the current agent does not declare."""

    status_code = 404

    def __init__(self, tool_name: str, available_tools: Optional[List[str]] = None) -> None:
        super().__init__(
            tool_name=tool_name,
            message=f"tool not found: {tool_name}",
            details={"available_tools": available_tools or []},
        )


class ToolTimeoutError(ToolError):
    """Tool exceeded its execution time limit."""

    def __init__(self, tool_name: str, timeout_s: float) -> None:
        super().__init__(
            tool_name=tool_name,
            message=f"Tool '{tool_name}' timed out after {timeout_s}s.",
            details={"timeout_s": timeout_s},
        )
        self.timeout_s = timeout_s


class ToolArgumentError(ToolError):
    """Arguments do not match the tool's declared parameters."""

    status_code = 422

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(
            tool_name=tool_name,
            message=f"Tool '{tool_name}' received invalid arguments: {reason}",
            details={"reason": reason},
        )


class FatalToolError(ToolError):
    """
    Raised by a tool when its failure must abort the whole run instead of
    being folded into the conversation.
    """

    status_code = 500

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(
            tool_name=tool_name,
            message=f"Tool '{tool_name}' failed unrecoverably: {reason}",
            details={"reason": reason},
        )


class ToolDispatchError(BatonError):
    """A tool batch was abandoned because one call faulted unrecoverably."""

    def __init__(self, tool_name: str, tool_call_id: str, cause: BaseException) -> None:
        super().__init__(
            message=f"tool execution failed: {tool_name} ({tool_call_id}): {cause}",
            details={"tool_name": tool_name, "tool_call_id": tool_call_id},
        )
        self.tool_name = tool_name
        self.tool_call_id = tool_call_id


# ---------------------------------------------------------------------------
# Run budget / deadline / output
# ---------------------------------------------------------------------------


class MaxTurnsExceededError(BatonError):
    """The run reached its turn budget without a terminal reply."""

    status_code = 508

    def __init__(self, max_turns: int, agent_name: str = "") -> None:
        super().__init__(
            message=f"max turns exceeded ({max_turns})",
            details={"max_turns": max_turns, "agent_name": agent_name},
        )
        self.max_turns = max_turns


class RunTimeoutError(BatonError):
    """The caller's deadline for the run expired."""

    status_code = 504

    def __init__(self, timeout_s: float) -> None:
        super().__init__(
            message=f"execution timeout after {timeout_s}s",
            details={"timeout_s": timeout_s},
        )
        self.timeout_s = timeout_s


class OutputValidationError(BatonError):
    """Structured output did not satisfy the agent's output schema."""

    status_code = 422

    def __init__(self, schema_name: str, validation_errors: Any) -> None:
        super().__init__(
            message=f"structured output does not match schema '{schema_name}'",
            details={"schema": schema_name, "validation_errors": str(validation_errors)},
        )
        self.validation_errors = validation_errors


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionError(BatonError):
    """Session storage failed while loading or saving history."""

    def __init__(self, session_id: str, operation: str, reason: str) -> None:
        super().__init__(
            message=f"failed to {operation} session '{session_id}': {reason}",
            details={"session_id": session_id, "operation": operation, "reason": reason},
        )
        self.session_id = session_id
        self.operation = operation
