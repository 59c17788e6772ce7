"""
baton/models/providers/gemini.py

Google Gemini provider over the generateContent REST endpoint.

Models:   gemini-2.5-flash, gemini-2.5-pro, gemini-2.0-flash
Env vars: GEMINI_API_KEY or GOOGLE_API_KEY, GEMINI_BASE_URL
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
from baton.errors import ProviderError
from baton.models import convert
from baton.models.providers.http import HTTPCompletionProvider

if TYPE_CHECKING:
    from baton.core.agent import Agent


class GeminiProvider(HTTPCompletionProvider):
    """
    Gemini via POST /models/{model}:generateContent.

    Function calls usually arrive without ids, so baton assigns its own.
    Agents with an output contract ask for an application/json response
    constrained by their JSON Schema.
    """

    name = "gemini"

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_s: float = 0.5,
    ) -> None:
        config = config or ProviderConfig.from_env(ProviderKind.GEMINI)
        config.validate_for(ProviderKind.GEMINI)
        super().__init__(
            config=config,
            base_url=config.resolved_base_url(ProviderKind.GEMINI),
            transport=transport,
            backoff_s=backoff_s,
        )

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-goog-api-key"] = self._config.api_key or ""
        return headers

    def build_payload(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Dict[str, Any]:
        system, contents = convert.to_gemini_contents(agent, messages)
        generation: Dict[str, Any] = {
            "temperature": agent.temperature,
            "topP": agent.top_p,
            "maxOutputTokens": agent.max_tokens,
        }
        if agent.output_schema is not None:
            generation["responseMimeType"] = "application/json"
            generation["responseJsonSchema"] = agent.output_schema.json_schema()

        payload: Dict[str, Any] = {"contents": contents, "generationConfig": generation}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        declarations = convert.gemini_tools(agent, tools)
        if declarations:
            payload["tools"] = declarations
        return payload

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        path = f"/models/{agent.model}:generateContent"
        data = await self._post_json(path, self.build_payload(agent, messages, tools))
        return self._normalize(agent, data)

    def _normalize(self, agent: Agent, data: Dict[str, Any]) -> Completion:
        candidates = data.get("candidates") or []
        if not candidates:
            blocked = (data.get("promptFeedback") or {}).get("blockReason")
            reason = f"prompt blocked: {blocked}" if blocked else "response has no candidates"
            raise ProviderError(provider=self.name, operation="complete", reason=reason)

        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts: List[str] = []
        calls: List[ToolCall] = []
        for part in parts:
            if "functionCall" in part:
                fn = part["functionCall"] or {}
                fields: Dict[str, Any] = {
                    "name": fn.get("name", ""),
                    "arguments": convert.parse_arguments(fn.get("args")),
                }
                if fn.get("id"):
                    fields["id"] = fn["id"]
                calls.append(ToolCall(**fields))
            elif part.get("text") and not part.get("thought"):
                texts.append(part["text"])
        content = "".join(texts)
        calls, handoff = convert.split_handoff(agent, calls)

        meta = data.get("usageMetadata") or {}
        usage = TokenUsage(
            prompt_tokens=meta.get("promptTokenCount", 0),
            completion_tokens=meta.get("candidatesTokenCount", 0),
            total_tokens=meta.get("totalTokenCount", 0),
        )
        structured = None if calls or handoff else convert.structured_value(agent, content)
        return Completion(
            message=Message.assistant(content, tool_calls=calls),
            usage=usage,
            tool_calls=calls,
            handoff=handoff,
            structured_output=structured,
        )
