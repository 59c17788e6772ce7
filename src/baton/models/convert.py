"""
baton/models/convert.py

Conversion between baton's conversation model and the wire shapes of
chat-completion backends.

Handoffs have no native representation in these APIs. They are exposed
as synthetic function tools named `transfer_to_<agent>`; a call to one of
them is turned back into a HandoffRequest.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from baton.config import HandoffRequest, Message, MessageRole, ToolCall, ToolDefinition

if TYPE_CHECKING:
    from baton.core.agent import Agent

logger = logging.getLogger(__name__)

HANDOFF_PREFIX = "transfer_to_"

_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")


def handoff_tool_name(agent_name: str) -> str:
    return HANDOFF_PREFIX + _UNSAFE.sub("_", agent_name)


def handoff_tool_schemas(agent: Agent) -> list[dict[str, Any]]:
    """Function schemas for the agent's handoff targets."""
    schemas = []
    for target in agent.handoffs:
        description = target.handoff_description or f"Transfer the conversation to {target.name}."
        schemas.append(
            {
                "name": handoff_tool_name(target.name),
                "description": description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "reason": {
                            "type": "string",
                            "description": "Why the conversation is being transferred.",
                        },
                        "context": {
                            "type": "object",
                            "description": "Facts the next agent needs.",
                        },
                    },
                    "required": [],
                },
            }
        )
    return schemas


def function_tools(agent: Agent, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    """OpenAI-style `tools` array: real tools first, then handoff tools."""
    schemas = [t.to_llm_schema() for t in tools] + handoff_tool_schemas(agent)
    return [{"type": "function", "function": s} for s in schemas]


def parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("could not decode tool arguments %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def split_handoff(
    agent: Agent, calls: list[ToolCall]
) -> tuple[list[ToolCall], HandoffRequest | None]:
    """
    Separate synthetic handoff calls from real tool calls.

    The first handoff call wins. A transfer_to_ call whose target is not
    declared still yields a HandoffRequest so the runner can report it.
    """
    targets = {handoff_tool_name(name): name for name in agent.handoff_names}
    remaining: list[ToolCall] = []
    handoff: HandoffRequest | None = None
    for call in calls:
        if call.name.startswith(HANDOFF_PREFIX) and agent.get_tool(call.name) is None:
            if handoff is None:
                context = call.arguments.get("context")
                handoff = HandoffRequest(
                    target_agent=targets.get(call.name, call.name[len(HANDOFF_PREFIX):]),
                    context=context if isinstance(context, dict) else {},
                    reason=str(call.arguments.get("reason") or ""),
                )
            continue
        remaining.append(call)
    return remaining, handoff


def structured_value(agent: Agent, content: str) -> Any | None:
    """
    The reply content as a structured value, for agents with an output contract.

    Prose that is not JSON counts as no structured output, so the runner
    keeps going. JSON that parses is returned as-is and validated there.
    """
    if not agent.has_output_schema or not content.strip():
        return None
    try:
        return json.loads(content)
    except ValueError:
        logger.debug("reply for %s is not JSON, no structured output", agent.name)
        return None


def response_format(agent: Agent) -> dict[str, Any] | None:
    schema = agent.output_schema
    if schema is None:
        return None
    return {
        "type": "json_schema",
        "json_schema": {"name": _UNSAFE.sub("_", schema.name), "schema": schema.json_schema()},
    }


# ---------------------------------------------------------------------------
# Message history
# ---------------------------------------------------------------------------


def to_openai_messages(agent: Agent, messages: list[Message]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    if agent.instructions:
        out.append({"role": MessageRole.SYSTEM.value, "content": agent.instructions})
    for m in messages:
        if m.role == MessageRole.TOOL:
            out.append(
                {
                    "role": "tool",
                    "tool_call_id": m.tool_call_id or "",
                    "content": m.content,
                }
            )
        elif m.role == MessageRole.ASSISTANT and m.tool_calls:
            out.append(
                {
                    "role": "assistant",
                    "content": m.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                        }
                        for tc in m.tool_calls
                    ],
                }
            )
        else:
            out.append({"role": m.role.value, "content": m.content})
    return out


def to_ollama_messages(agent: Agent, messages: list[Message]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    if agent.instructions:
        out.append({"role": "system", "content": agent.instructions})
    for m in messages:
        entry: dict[str, Any] = {"role": m.role.value, "content": m.content}
        if m.role == MessageRole.ASSISTANT and m.tool_calls:
            entry["tool_calls"] = [
                {"function": {"name": tc.name, "arguments": tc.arguments}} for tc in m.tool_calls
            ]
        elif m.role == MessageRole.TOOL and m.metadata.get("tool_name"):
            entry["tool_name"] = m.metadata["tool_name"]
        out.append(entry)
    return out


def _system_text(agent: Agent, messages: list[Message]) -> str:
    parts = [agent.instructions] if agent.instructions else []
    parts += [m.content for m in messages if m.role == MessageRole.SYSTEM and m.content]
    return "\n\n".join(parts)


def to_anthropic_messages(agent: Agent, messages: list[Message]) -> tuple[str, list[dict[str, Any]]]:
    """
    Split history into Anthropic's `system` string and `messages` list.

    Tool results travel as `tool_result` blocks inside a user message.
    Consecutive results are merged, since every result for one assistant
    turn has to arrive in the single user message that follows it.
    """
    out: list[dict[str, Any]] = []
    for m in messages:
        if m.role == MessageRole.SYSTEM:
            continue
        if m.role == MessageRole.TOOL:
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": m.tool_call_id or "",
                "content": m.content,
            }
            if "error" in m.metadata:
                block["is_error"] = True
            previous = out[-1] if out else None
            if previous and previous["role"] == "user" and isinstance(previous["content"], list):
                previous["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})
        elif m.role == MessageRole.ASSISTANT and m.tool_calls:
            blocks: list[dict[str, Any]] = []
            if m.content:
                blocks.append({"type": "text", "text": m.content})
            blocks += [
                {"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.arguments}
                for tc in m.tool_calls
            ]
            out.append({"role": "assistant", "content": blocks})
        else:
            out.append({"role": m.role.value, "content": m.content})
    return _system_text(agent, messages), out


def anthropic_tools(agent: Agent, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    schemas = [t.to_llm_schema() for t in tools] + handoff_tool_schemas(agent)
    return [
        {"name": s["name"], "description": s["description"], "input_schema": s["parameters"]}
        for s in schemas
    ]


def to_gemini_contents(agent: Agent, messages: list[Message]) -> tuple[str, list[dict[str, Any]]]:
    """
    Split history into a system instruction and Gemini `contents`.

    Gemini speaks in `user` and `model` turns. Tool results become
    `functionResponse` parts keyed by tool name, merged per turn like the
    calls that produced them.
    """
    out: list[dict[str, Any]] = []
    for m in messages:
        if m.role == MessageRole.SYSTEM:
            continue
        if m.role == MessageRole.TOOL:
            part = {
                "functionResponse": {
                    "name": m.metadata.get("tool_name", ""),
                    "response": {"result": m.content},
                }
            }
            previous = out[-1] if out else None
            if previous and previous["role"] == "user" and "functionResponse" in previous["parts"][0]:
                previous["parts"].append(part)
            else:
                out.append({"role": "user", "parts": [part]})
        elif m.role == MessageRole.ASSISTANT:
            parts: list[dict[str, Any]] = [{"text": m.content}] if m.content else []
            parts += [{"functionCall": {"name": tc.name, "args": tc.arguments}} for tc in m.tool_calls]
            out.append({"role": "model", "parts": parts or [{"text": ""}]})
        else:
            out.append({"role": "user", "parts": [{"text": m.content}]})
    return _system_text(agent, messages), out


def gemini_tools(agent: Agent, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    declarations = [
        {"name": s["name"], "description": s["description"], "parametersJsonSchema": s["parameters"]}
        for s in [t.to_llm_schema() for t in tools] + handoff_tool_schemas(agent)
    ]
    return [{"functionDeclarations": declarations}] if declarations else []
