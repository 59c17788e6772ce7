"""
baton/models/providers/openai_compat.py

Provider for any server that implements the OpenAI chat completions API:
  - OpenAI            (https://api.openai.com/v1)
  - LM Studio         (http://localhost:1234/v1)
  - vLLM              (http://localhost:8000/v1)
  - OpenRouter        (https://openrouter.ai/api/v1)
  - DeepSeek          (https://api.deepseek.com/v1)
  - Any other OpenAI-compatible endpoint

Usage::

    from baton.models.providers.openai_compat import OpenAICompatProvider

    provider = OpenAICompatProvider.from_preset("openrouter")
    provider = OpenAICompatProvider(ProviderConfig(api_key="sk-..."))

Env vars: OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_ORG_ID, OPENAI_PROJECT_ID
"""

from __future__ import annotations

import os
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
from baton.errors import ProviderConfigError, ProviderError
from baton.models import convert
from baton.models.providers.http import HTTPCompletionProvider

if TYPE_CHECKING:
    from baton.core.agent import Agent

# Well-known OpenAI-compatible endpoints
KNOWN_ENDPOINTS: Dict[str, Dict[str, str]] = {
    "openai": {"base_url": "https://api.openai.com/v1", "env": "OPENAI_API_KEY"},
    "openrouter": {"base_url": "https://openrouter.ai/api/v1", "env": "OPENROUTER_API_KEY"},
    "deepseek": {"base_url": "https://api.deepseek.com/v1", "env": "DEEPSEEK_API_KEY"},
    "xai": {"base_url": "https://api.x.ai/v1", "env": "XAI_API_KEY"},
    "lmstudio": {"base_url": "http://localhost:1234/v1", "env": ""},
    "vllm": {"base_url": "http://localhost:8000/v1", "env": ""},
}


class OpenAICompatProvider(HTTPCompletionProvider):
    """
    Chat-completions backend over httpx.

    The agent's model, temperature, top_p and max_tokens go into every
    request. Handoff targets are offered as `transfer_to_<agent>` tools.
    Agents with an output contract request a json_schema response format.
    """

    name = "openai"

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_s: float = 0.5,
    ) -> None:
        config = config or ProviderConfig.from_env(ProviderKind.OPENAI)
        config.validate_for(ProviderKind.OPENAI)
        super().__init__(
            config=config,
            base_url=config.resolved_base_url(ProviderKind.OPENAI),
            transport=transport,
            backoff_s=backoff_s,
        )

    @classmethod
    def from_preset(cls, preset: str, api_key: Optional[str] = None, **kwargs: Any) -> OpenAICompatProvider:
        """
        Create a provider from a well-known preset name.

        Presets: openai, openrouter, deepseek, xai, lmstudio, vllm
        """
        if preset not in KNOWN_ENDPOINTS:
            raise ProviderConfigError(
                field="preset",
                reason=f"unknown preset '{preset}', known: {list(KNOWN_ENDPOINTS)}",
                value=preset,
            )
        info = KNOWN_ENDPOINTS[preset]
        key = api_key or (os.environ.get(info["env"]) if info["env"] else None)
        return cls(ProviderConfig(api_key=key, base_url=info["base_url"]), **kwargs)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        if self._config.organization:
            headers["OpenAI-Organization"] = self._config.organization
        if self._config.project:
            headers["OpenAI-Project"] = self._config.project
        return headers

    def build_payload(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": agent.model,
            "messages": convert.to_openai_messages(agent, messages),
            "temperature": agent.temperature,
            "top_p": agent.top_p,
            "max_tokens": agent.max_tokens,
        }
        fn_tools = convert.function_tools(agent, tools)
        if fn_tools:
            payload["tools"] = fn_tools
        response_format = convert.response_format(agent)
        if response_format:
            payload["response_format"] = response_format
        return payload

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        data = await self._post_json("/chat/completions", self.build_payload(agent, messages, tools))
        return self._normalize(agent, data)

    def _normalize(self, agent: Agent, data: Dict[str, Any]) -> Completion:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderError(provider=self.name, operation="complete", reason="response has no choices")
        msg = choices[0].get("message") or {}
        content = msg.get("content") or ""

        calls = [_tool_call(tc) for tc in msg.get("tool_calls") or []]
        calls, handoff = convert.split_handoff(agent, calls)

        raw_usage = data.get("usage") or {}
        usage = TokenUsage(
            prompt_tokens=raw_usage.get("prompt_tokens", 0),
            completion_tokens=raw_usage.get("completion_tokens", 0),
            total_tokens=raw_usage.get("total_tokens", 0),
        )
        structured = None if calls or handoff else convert.structured_value(agent, content)
        return Completion(
            message=Message.assistant(content, tool_calls=calls),
            usage=usage,
            tool_calls=calls,
            handoff=handoff,
            structured_output=structured,
        )


def _tool_call(raw: Dict[str, Any]) -> ToolCall:
    fn = raw.get("function") or {}
    fields: Dict[str, Any] = {
        "name": fn.get("name", ""),
        "arguments": convert.parse_arguments(fn.get("arguments")),
    }
    if raw.get("id"):
        fields["id"] = raw["id"]
    return ToolCall(**fields)
