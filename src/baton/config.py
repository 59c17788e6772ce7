"""
baton/config.py

All configuration and data models for baton.

Design rules:
  - Pure Pydantic. No business logic beyond small conversions.
    No imports from baton internals except errors.
  - Every model is fully typed and validated on construction.
  - Defaults are production-safe, not demo-friendly.
  - Models are immutable where state should not change after construction.
  - Enums over raw strings for all categorical fields.
"""

from __future__ import annotations

import json
import os
import time
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from baton.errors import ProviderConfigError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MessageRole(str, Enum):
    SYSTEM = "system"  # Provider-side only, never stored in run history
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ProviderKind(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    NOOP = "noop"


# ---------------------------------------------------------------------------
# Conversation models
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation requested by the completion provider."""

    id: str = Field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class Message(BaseModel):
    """A single entry in the ordered conversation history."""

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)  # assistant only
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def user(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.USER, content=content, metadata=metadata)

    @classmethod
    def assistant(
        cls,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        **metadata: Any,
    ) -> Message:
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls or [],
            metadata=metadata,
        )

    @property
    def tool_call_id(self) -> str | None:
        return self.metadata.get("tool_call_id")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class ToolResponse(BaseModel):
    """
    Result of one ToolCall. Carries either a success payload or an error,
    never both.
    """

    tool_call_id: str
    tool_name: str = ""
    content: Any | None = None
    error: str | None = None

    @model_validator(mode="after")
    def content_xor_error(self) -> ToolResponse:
        if self.error is not None and self.content is not None:
            raise ValueError("ToolResponse carries either content or error, not both")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_message(self) -> Message:
        """Fold this response into a tool-role history message."""
        metadata: dict[str, Any] = {
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
        }
        if self.error is not None:
            metadata["error"] = self.error
            content = f"Error: {self.error}"
        else:
            content = _stringify(self.content)
        return Message(role=MessageRole.TOOL, content=content, metadata=metadata)


class HandoffRequest(BaseModel):
    """A request from the provider to transfer control to another agent."""

    target_agent: str
    context: dict[str, Any] = Field(default_factory=dict)
    reason: str = ""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Token usage / completion
# ---------------------------------------------------------------------------


class TokenUsage(BaseModel):
    """Token counts for a single completion call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @model_validator(mode="after")
    def derive_total(self) -> TokenUsage:
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens
        return self


class Completion(BaseModel):
    """One assistant turn as returned by any CompletionProvider."""

    message: Message = Field(default_factory=lambda: Message(role=MessageRole.ASSISTANT))
    usage: TokenUsage = Field(default_factory=TokenUsage)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    handoff: HandoffRequest | None = None
    structured_output: Any | None = None

    @classmethod
    def text(cls, content: str, **usage: int) -> Completion:
        """Shortcut for a plain-text reply."""
        return cls(message=Message.assistant(content), usage=TokenUsage(**usage))


# ---------------------------------------------------------------------------
# Tool catalog (provider-facing)
# ---------------------------------------------------------------------------


class PropertySchema(BaseModel):
    """A single tool parameter."""

    type: str = "string"
    description: str = ""
    enum: list[Any] | None = None
    items: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    def to_json_schema(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.description:
            out["description"] = self.description
        if self.enum is not None:
            out["enum"] = list(self.enum)
        if self.items is not None:
            out["items"] = self.items
        return out


class ParameterSchema(BaseModel):
    """Object schema describing a tool's arguments."""

    type: str = "object"
    properties: dict[str, PropertySchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "properties": {k: v.to_json_schema() for k, v in self.properties.items()},
            "required": list(self.required),
        }


class ToolDefinition(BaseModel):
    """Tool metadata as handed to a CompletionProvider."""

    name: str
    description: str
    parameters: ParameterSchema = Field(default_factory=ParameterSchema)

    model_config = ConfigDict(frozen=True)

    def to_llm_schema(self) -> dict[str, Any]:
        """OpenAI / Ollama compatible function schema."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.to_json_schema(),
        }


# ---------------------------------------------------------------------------
# Guardrail result
# ---------------------------------------------------------------------------


class GuardrailResult(BaseModel):
    """Result from a single Guardrail.check() call."""

    passed: bool
    guardrail_name: str
    reason: str | None = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------------


class RunMetrics(BaseModel):
    """Counters accumulated monotonically across one run."""

    total_turns: int = 0
    total_tokens: int = 0
    duration_s: float = 0.0
    tool_calls: int = 0
    handoffs: int = 0

    @property
    def tool_call_count(self) -> int:
        return self.tool_calls

    @property
    def handoff_count(self) -> int:
        return self.handoffs

    @property
    def duration(self) -> float:
        return self.duration_s


class RunResult(BaseModel):
    """The return value of Runner.run(). Immutable once produced."""

    final_output: Any
    messages: list[Message] = Field(default_factory=list)
    metrics: RunMetrics = Field(default_factory=RunMetrics)
    last_agent: str = ""
    run_id: str = ""
    session_id: str = ""
    trace_id: str = ""
    error: str | None = None  # Set only on degraded results from run_async()

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Agent / runner settings
# ---------------------------------------------------------------------------


class AgentSettings(BaseModel):
    """Scalar behaviour settings of an Agent. Validated, then frozen."""

    name: str
    instructions: str = ""
    model: str = "gpt-4"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    handoff_description: str = ""

    model_config = ConfigDict(frozen=True)


class RunnerConfig(BaseModel):
    """Turn budget, deadline and dispatch policy for a Runner."""

    max_turns: int = Field(default=10, gt=0)
    timeout_s: float = Field(default=300.0, gt=0)
    parallel_tools: bool = True
    session_history_limit: int = Field(default=100, gt=0)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------

_DEFAULT_BASE_URLS = {
    ProviderKind.OPENAI: "https://api.openai.com/v1",
    ProviderKind.OLLAMA: "http://localhost:11434",
    ProviderKind.ANTHROPIC: "https://api.anthropic.com/v1",
    ProviderKind.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
}


class ProviderConfig(BaseModel):
    """Connection settings shared by the HTTP completion providers."""

    api_key: str | None = None
    base_url: str | None = None
    timeout_s: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    organization: str | None = None
    project: str | None = None
    extra_headers: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls, kind: ProviderKind | str, **overrides: Any) -> ProviderConfig:
        """
        Build a config from environment variables. Explicit overrides win.

        OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_ORG_ID, OPENAI_PROJECT_ID
        OLLAMA_HOST
        ANTHROPIC_API_KEY, ANTHROPIC_BASE_URL
        GEMINI_API_KEY (or GOOGLE_API_KEY), GEMINI_BASE_URL
        """
        kind = ProviderKind(kind)
        data: dict[str, Any] = {}
        if kind == ProviderKind.OPENAI:
            data = {
                "api_key": os.environ.get("OPENAI_API_KEY"),
                "base_url": os.environ.get("OPENAI_BASE_URL"),
                "organization": os.environ.get("OPENAI_ORG_ID"),
                "project": os.environ.get("OPENAI_PROJECT_ID"),
            }
        elif kind == ProviderKind.OLLAMA:
            data = {"base_url": os.environ.get("OLLAMA_HOST")}
        elif kind == ProviderKind.ANTHROPIC:
            data = {
                "api_key": os.environ.get("ANTHROPIC_API_KEY"),
                "base_url": os.environ.get("ANTHROPIC_BASE_URL"),
            }
        elif kind == ProviderKind.GEMINI:
            data = {
                "api_key": os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"),
                "base_url": os.environ.get("GEMINI_BASE_URL"),
            }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def resolved_base_url(self, kind: ProviderKind | str) -> str:
        return (self.base_url or _DEFAULT_BASE_URLS[ProviderKind(kind)]).rstrip("/")

    def validate_for(self, kind: ProviderKind | str) -> None:
        """Hosted backends need an API key; local ones do not."""
        kind = ProviderKind(kind)
        if kind == ProviderKind.OPENAI and not self.api_key and self.base_url is None:
            raise ProviderConfigError(field="api_key", reason="API key is required")
        if kind in (ProviderKind.ANTHROPIC, ProviderKind.GEMINI) and not self.api_key:
            raise ProviderConfigError(field="api_key", reason=f"{kind.value} API key is required")
