"""
baton/models/providers/anthropic.py

Anthropic Messages API provider, spoken directly over httpx.

Models:   claude-sonnet-4-5, claude-haiku-4-5, claude-opus-4-1, ...
Env vars: ANTHROPIC_API_KEY, ANTHROPIC_BASE_URL

The system prompt travels outside the message list. Tool calls come back
as `tool_use` content blocks and results go out as `tool_result` blocks.
The API has no response-format switch, so agents with an output contract
get the JSON Schema appended to their system prompt.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import httpx

from baton.config import (
    Completion,
    Message,
    ProviderConfig,
    ProviderKind,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)
from baton.errors import ProviderError
from baton.models import convert
from baton.models.providers.http import HTTPCompletionProvider

if TYPE_CHECKING:
    from baton.core.agent import Agent

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HTTPCompletionProvider):
    """
    Claude models via POST /v1/messages.
    Requires ANTHROPIC_API_KEY, or an api_key in the config.
    """

    name = "anthropic"

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_s: float = 0.5,
    ) -> None:
        config = config or ProviderConfig.from_env(ProviderKind.ANTHROPIC)
        config.validate_for(ProviderKind.ANTHROPIC)
        super().__init__(
            config=config,
            base_url=config.resolved_base_url(ProviderKind.ANTHROPIC),
            transport=transport,
            backoff_s=backoff_s,
        )

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self._config.api_key or ""
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def build_payload(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Dict[str, Any]:
        system, wire_messages = convert.to_anthropic_messages(agent, messages)
        if agent.output_schema is not None:
            schema = json.dumps(agent.output_schema.json_schema())
            contract = f"Reply with only a JSON object that matches this JSON Schema:\n{schema}"
            system = f"{system}\n\n{contract}" if system else contract

        payload: Dict[str, Any] = {
            "model": agent.model,
            "max_tokens": agent.max_tokens,
            "temperature": agent.temperature,
            "messages": wire_messages,
        }
        # Sent only when narrowed; some models refuse it next to temperature
        if agent.top_p < 1.0:
            payload["top_p"] = agent.top_p
        if system:
            payload["system"] = system
        tool_schemas = convert.anthropic_tools(agent, tools)
        if tool_schemas:
            payload["tools"] = tool_schemas
        return payload

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        data = await self._post_json("/messages", self.build_payload(agent, messages, tools))
        return self._normalize(agent, data)

    def _normalize(self, agent: Agent, data: Dict[str, Any]) -> Completion:
        blocks = data.get("content")
        if blocks is None:
            raise ProviderError(provider=self.name, operation="complete", reason="response has no content")

        texts: List[str] = []
        calls: List[ToolCall] = []
        for block in blocks:
            if block.get("type") == "text":
                texts.append(block.get("text") or "")
            elif block.get("type") == "tool_use":
                fields: Dict[str, Any] = {
                    "name": block.get("name", ""),
                    "arguments": convert.parse_arguments(block.get("input")),
                }
                if block.get("id"):
                    fields["id"] = block["id"]
                calls.append(ToolCall(**fields))
        content = "".join(texts)
        calls, handoff = convert.split_handoff(agent, calls)

        raw_usage = data.get("usage") or {}
        usage = TokenUsage(
            prompt_tokens=raw_usage.get("input_tokens", 0),
            completion_tokens=raw_usage.get("output_tokens", 0),
        )
        structured = None if calls or handoff else convert.structured_value(agent, content)
        return Completion(
            message=Message.assistant(content, tool_calls=calls),
            usage=usage,
            tool_calls=calls,
            handoff=handoff,
            structured_output=structured,
        )
