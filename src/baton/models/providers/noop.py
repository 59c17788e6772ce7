"""
baton/models/providers/noop.py

Offline providers: a fixed greeting and a replayable script.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Sequence, Union

from baton.config import Completion, Message, ToolDefinition
from baton.errors import ProviderError
from baton.interfaces import CompletionProvider

if TYPE_CHECKING:
    from baton.core.agent import Agent


class NoOpProvider(CompletionProvider):
    """Runner default. Always replies with the same greeting."""

    name = "noop"

    GREETING = "Hello from NoOpProvider"

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        return Completion.text(self.GREETING, prompt_tokens=10, completion_tokens=5, total_tokens=15)


@dataclass
class ScriptedCall:
    """What the runner sent on one complete() call."""

    agent_name: str
    messages: List[Message]
    tools: List[ToolDefinition] = field(default_factory=list)


ScriptStep = Union[Completion, str, BaseException]
ScriptFn = Callable[["Agent", List[Message], List[ToolDefinition]], Union[ScriptStep, Awaitable[ScriptStep]]]


class ScriptedProvider(CompletionProvider):
    """
    Replays a fixed list of replies, or asks a function for each one.

    A str step becomes a plain-text Completion. An exception step is
    raised from complete(). Running past the end of a list raises
    ProviderError.

    Usage::

        provider = ScriptedProvider([
            Completion(tool_calls=[ToolCall(name="add", arguments={"a": 2, "b": 3})]),
            "The answer is 5",
        ])
    """

    name = "scripted"

    def __init__(self, script: Union[Sequence[ScriptStep], ScriptFn]) -> None:
        self._fn: ScriptFn | None = script if callable(script) else None
        self._steps: List[ScriptStep] = [] if callable(script) else list(script)
        self.calls: List[ScriptedCall] = []

    @property
    def remaining(self) -> int:
        return max(len(self._steps) - len(self.calls), 0)

    async def complete(
        self,
        agent: Agent,
        messages: List[Message],
        tools: List[ToolDefinition],
    ) -> Completion:
        index = len(self.calls)
        self.calls.append(ScriptedCall(agent.name, list(messages), list(tools)))

        if self._fn is not None:
            step: Any = self._fn(agent, messages, tools)
            if inspect.isawaitable(step):
                step = await step
        elif index < len(self._steps):
            step = self._steps[index]
        else:
            raise ProviderError(
                provider=self.name,
                operation="complete",
                reason=f"script exhausted after {len(self._steps)} replies",
            )

        if isinstance(step, BaseException):
            raise step
        if isinstance(step, str):
            return Completion.text(step)
        return step
