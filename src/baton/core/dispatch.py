"""
baton/core/dispatch.py

Tool-call dispatch for one assistant turn.

Guarantees:
  - One ToolResponse per ToolCall, in the same order as the calls,
    whatever order they finish in.
  - An ordinary exception from a tool (including a missing tool) becomes
    that call's error. Sibling calls are unaffected.
  - A FatalToolError, or a non-Exception BaseException such as
    cancellation, abandons the batch: unfinished siblings are cancelled
    and nothing is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from baton.config import ToolCall, ToolResponse
from baton.context import RunContext
from baton.errors import FatalToolError, ToolDispatchError, ToolNotFoundError
from baton.interfaces import Span, Tracer
from baton.observability.tracer import NoOpTracer, end_span, start_span

if TYPE_CHECKING:
    from baton.core.agent import Agent

logger = logging.getLogger(__name__)


async def dispatch_tool_calls(
    calls: Sequence[ToolCall],
    agent: Agent,
    context: RunContext,
    parallel: bool = True,
    tracer: Optional[Tracer] = None,
    parent_span: Optional[Span] = None,
) -> List[ToolResponse]:
    """
    Execute every call against the agent's tools.

    Runs sequentially when `parallel` is off or there is a single call,
    otherwise concurrently with one task per call.

    Raises:
        ToolDispatchError: a tool raised FatalToolError.
    """
    tracer = tracer or NoOpTracer()
    if not calls:
        return []

    if not parallel or len(calls) == 1:
        return [await _execute_one(call, agent, context, tracer, parent_span) for call in calls]

    tasks = [
        asyncio.create_task(
            _execute_one(call, agent, context, tracer, parent_span),
            name=f"baton-tool-{call.name}-{call.id}",
        )
        for call in calls
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _execute_one(
    call: ToolCall,
    agent: Agent,
    context: RunContext,
    tracer: Tracer,
    parent_span: Optional[Span],
) -> ToolResponse:
    span = start_span(
        tracer,
        f"tool.{call.name}",
        parent=parent_span,
        tool_call_id=call.id,
        agent=agent.name,
    )
    try:
        t = agent.get_tool(call.name)
        if t is None:
            raise ToolNotFoundError(call.name, available_tools=[x.name for x in agent.tools])
        result = await t.execute(dict(call.arguments), context)
    except FatalToolError as e:
        logger.warning("tool %s (%s) failed fatally: %s", call.name, call.id, e)
        end_span(tracer, span, error=e)
        raise ToolDispatchError(tool_name=call.name, tool_call_id=call.id, cause=e) from e
    except Exception as e:
        logger.debug("tool %s (%s) failed: %s", call.name, call.id, e)
        end_span(tracer, span, error=e)
        return ToolResponse(
            tool_call_id=call.id,
            tool_name=call.name,
            error=str(e) or type(e).__name__,
        )
    except BaseException as e:
        end_span(tracer, span, error=e)
        raise

    end_span(tracer, span)
    return ToolResponse(tool_call_id=call.id, tool_name=call.name, content=result)
