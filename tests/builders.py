"""
tests/builders.py — small constructors for scripted provider replies.
"""

from __future__ import annotations

from baton.config import Completion, HandoffRequest, Message, ToolCall


def call(name: str, call_id: str | None = None, **arguments) -> ToolCall:
    if call_id is None:
        return ToolCall(name=name, arguments=arguments)
    return ToolCall(id=call_id, name=name, arguments=arguments)


def tool_turn(*calls: ToolCall, tokens: int = 0) -> Completion:
    return Completion(
        message=Message.assistant("", tool_calls=list(calls)),
        tool_calls=list(calls),
        usage={"prompt_tokens": tokens},
    )


def handoff_turn(target: str, reason: str = "", **context) -> Completion:
    return Completion(
        message=Message.assistant(f"Transferring to {target}"),
        handoff=HandoffRequest(target_agent=target, reason=reason, context=context),
    )
