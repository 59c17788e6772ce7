"""
baton/models/providers/ollama.py

Ollama provider: run open-source models locally, zero API cost.

Install:  Download Ollama from https://ollama.com
          Then: ollama pull llama3.2 / ollama pull mistral / etc.
Models:   Any model pulled via `ollama pull <model>`
Env var:  OLLAMA_HOST (default: http://localhost:11434)
"""

from __future__ import annotations

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
from baton.models import convert
from baton.models.providers.http import HTTPCompletionProvider

if TYPE_CHECKING:
    from baton.core.agent import Agent


class OllamaProvider(HTTPCompletionProvider):
    """
    Ollama local model provider. No API key needed.
    Start Ollama: `ollama serve`
    Pull a model: `ollama pull llama3.2`
    """

    name = "ollama"

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_s: float = 0.5,
    ) -> None:
        config = config or ProviderConfig.from_env(ProviderKind.OLLAMA, timeout_s=120.0)
        super().__init__(
            config=config,
            base_url=config.resolved_base_url(ProviderKind.OLLAMA),
            transport=transport,
            backoff_s=backoff_s,
        )

    def build_payload(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": agent.model,
            "messages": convert.to_ollama_messages(agent, messages),
            "stream": False,
            "options": {
                "temperature": agent.temperature,
                "top_p": agent.top_p,
                "num_predict": agent.max_tokens,
            },
        }
        fn_tools = convert.function_tools(agent, tools)
        if fn_tools:
            payload["tools"] = fn_tools
        if agent.output_schema is not None:
            payload["format"] = agent.output_schema.json_schema()
        return payload

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        data = await self._post_json("/api/chat", self.build_payload(agent, messages, tools))
        return self._normalize(agent, data)

    def _normalize(self, agent: Agent, data: Dict[str, Any]) -> Completion:
        msg = data.get("message") or {}
        content = msg.get("content") or ""

        # Ollama tool_calls support (newer versions); no ids on the wire
        calls = []
        for tc in msg.get("tool_calls") or []:
            fn = tc.get("function") or {}
            calls.append(
                ToolCall(name=fn.get("name", ""), arguments=convert.parse_arguments(fn.get("arguments")))
            )
        calls, handoff = convert.split_handoff(agent, calls)

        usage = TokenUsage(
            prompt_tokens=data.get("prompt_eval_count", 0),
            completion_tokens=data.get("eval_count", 0),
        )
        structured = None if calls or handoff else convert.structured_value(agent, content)
        return Completion(
            message=Message.assistant(content, tool_calls=calls),
            usage=usage,
            tool_calls=calls,
            handoff=handoff,
            structured_output=structured,
        )
