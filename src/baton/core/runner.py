"""
baton/core/runner.py

The Runner. Owns the turn loop.

One call to run() drives one conversation:

    load session history
    append the user's input
    repeat up to max_turns:
        guardrail gate on the last message
        provider completion
        append the assistant reply
        structured output > handoff > tool calls > plain text
    persist the messages this run produced

Design:
  - run() is the single source of truth. run_sync() and run_async() are
    thin wrappers around it.
  - A Runner holds no per-run state and may serve many concurrent runs.
    Each run owns its RunContext, history and metrics.
  - Tool failures are folded into the conversation. Every other failure
    aborts the run with one BatonError carrying the partial metrics and
    history.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from baton.config import (
    Completion,
    Message,
    MessageRole,
    RunMetrics,
    RunnerConfig,
    RunResult,
)
from baton.context import RunContext
from baton.core.agent import Agent
from baton.core.dispatch import dispatch_tool_calls
from baton.errors import (
    BatonError,
    ConfigError,
    GuardrailViolationError,
    HandoffNotFoundError,
    MaxTurnsExceededError,
    ProviderError,
    RunTimeoutError,
    SessionError,
)
from baton.interfaces import CompletionProvider, Session, Span, Tracer
from baton.models.providers.noop import NoOpProvider
from baton.observability.tracer import NoOpTracer, end_span, start_span

logger = logging.getLogger(__name__)


class _RunState:
    """Everything one run mutates. Never shared between runs."""

    def __init__(self, context: RunContext) -> None:
        self.context = context
        self.messages: List[Message] = []
        self.metrics = RunMetrics()
        self.persist_from = 0
        self.started = time.monotonic()

    def snapshot_metrics(self) -> RunMetrics:
        return self.metrics.model_copy(update={"duration_s": time.monotonic() - self.started})


class Runner:
    """
    Executes agents.

    Usage::

        runner = Runner(provider=OpenAICompatProvider(), max_turns=8)
        result = await runner.run(triage, "I was charged twice")
        print(result.final_output, result.last_agent, result.metrics.handoffs)
    """

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        tracer: Optional[Tracer] = None,
        session: Optional[Session] = None,
        config: Optional[RunnerConfig] = None,
        **overrides: Any,
    ) -> None:
        self._provider = provider or NoOpProvider()
        self._tracer = tracer or NoOpTracer()
        self._session = session
        self._config = _build_config(config, overrides)

    @property
    def provider(self) -> CompletionProvider:
        return self._provider

    @property
    def tracer(self) -> Tracer:
        return self._tracer

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def config(self) -> RunnerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(
        self,
        agent: Agent,
        input: str,
        *,
        session: Optional[Session] = None,
        timeout_s: Optional[float] = None,
        variables: Optional[Dict[str, Any]] = None,
    ) -> RunResult:
        """
        Run `agent` on `input` until it produces a final output.

        Args:
            agent: The root agent. Handoffs may move control elsewhere.
            input: The user's message.
            session: Overrides the runner's session for this run.
            timeout_s: Overrides RunnerConfig.timeout_s for this run.
            variables: Initial RunContext.variables, visible to tools.

        Raises:
            GuardrailViolationError, ProviderError, HandoffNotFoundError,
            ToolDispatchError, OutputValidationError, MaxTurnsExceededError,
            RunTimeoutError, SessionError.
        """
        if not isinstance(agent, Agent):
            raise ConfigError(field="agent", reason=f"expected an Agent, got {type(agent).__name__}")
        session = session if session is not None else self._session
        timeout = timeout_s if timeout_s is not None else self._config.timeout_s

        state = _RunState(
            RunContext(
                max_turns=self._config.max_turns,
                session_id=session.session_id if session is not None else None,
                variables=variables,
                agent_name=agent.name,
            )
        )
        logger.info(
            "run %s started: agent=%s max_turns=%d", state.context.run_id, agent.name, self._config.max_turns
        )
        try:
            result = await asyncio.wait_for(self._run(agent, input, state, session), timeout=timeout)
        except TimeoutError:
            err = RunTimeoutError(timeout)
            _attach(err, state)
            logger.info("run %s timed out after %ss", state.context.run_id, timeout)
            raise err from None
        except BatonError as e:
            _attach(e, state)
            logger.info("run %s failed: %s", state.context.run_id, e)
            raise
        logger.info(
            "run %s finished: agent=%s turns=%d tokens=%d",
            result.run_id,
            result.last_agent,
            result.metrics.total_turns,
            result.metrics.total_tokens,
        )
        return result

    def run_sync(self, agent: Agent, input: str, **kwargs: Any) -> RunResult:
        """Synchronous wrapper for environments without an event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run(agent, input, **kwargs))
        # In Jupyter or nested async context
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(asyncio.run, self.run(agent, input, **kwargs))
            return future.result()

    def run_async(self, agent: Agent, input: str, **kwargs: Any) -> asyncio.Task[RunResult]:
        """
        Start a run in the background and return its task.

        The task never raises an ordinary exception: a failed run yields a
        RunResult with `error` set and final_output "Error: <message>".
        Must be called with an event loop running.
        """
        loop = asyncio.get_running_loop()
        name = getattr(agent, "name", "agent")
        return loop.create_task(self._run_degraded(agent, input, **kwargs), name=f"baton-run-{name}")

    async def _run_degraded(self, agent: Agent, input: str, **kwargs: Any) -> RunResult:
        try:
            return await self.run(agent, input, **kwargs)
        except Exception as e:
            details = getattr(e, "details", {}) or {}
            return RunResult(
                final_output=f"Error: {e}",
                messages=list(getattr(e, "messages", None) or []),
                metrics=getattr(e, "metrics", None) or RunMetrics(),
                last_agent=details.get("last_agent", getattr(agent, "name", "agent")),
                run_id=details.get("run_id", ""),
                session_id=details.get("session_id", ""),
                trace_id=details.get("trace_id", ""),
                error=str(e) or type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def _run(
        self,
        agent: Agent,
        input: str,
        state: _RunState,
        session: Optional[Session],
    ) -> RunResult:
        ctx = state.context
        run_span = start_span(
            self._tracer,
            "agent.run",
            run_id=ctx.run_id,
            trace_id=ctx.trace_id,
            session_id=ctx.session_id,
            agent=agent.name,
        )
        try:
            if session is not None:
                state.messages.extend(await self._load_history(session))
            state.persist_from = len(state.messages)
            state.messages.append(Message.user(input))

            output, last_agent = await self._loop(agent, state, run_span)

            if session is not None:
                await self._save_history(session, state.messages[state.persist_from:])
        except BaseException as e:
            end_span(self._tracer, run_span, error=e, turns=state.metrics.total_turns)
            raise

        metrics = state.snapshot_metrics()
        end_span(
            self._tracer,
            run_span,
            turns=metrics.total_turns,
            tokens=metrics.total_tokens,
            last_agent=last_agent.name,
        )
        return RunResult(
            final_output=output,
            messages=list(state.messages),
            metrics=metrics,
            last_agent=last_agent.name,
            run_id=ctx.run_id,
            session_id=ctx.session_id,
            trace_id=ctx.trace_id,
        )

    async def _loop(self, agent: Agent, state: _RunState, run_span: Optional[Span]) -> Tuple[Any, Agent]:
        ctx = state.context
        current = agent
        for turn in range(1, self._config.max_turns + 1):
            ctx.current_turn = turn
            ctx.current_agent = current.name
            turn_span = start_span(self._tracer, "agent.turn", parent=run_span, turn=turn, agent=current.name)
            try:
                done, output, current = await self._turn(current, state, turn_span)
            except BaseException as e:
                end_span(self._tracer, turn_span, error=e)
                raise
            end_span(self._tracer, turn_span)
            if done:
                return output, current
        raise MaxTurnsExceededError(self._config.max_turns, agent_name=current.name)

    async def _turn(self, agent: Agent, state: _RunState, turn_span: Optional[Span]) -> Tuple[bool, Any, Agent]:
        """One turn. Returns (done, final_output, agent for the next turn)."""
        ctx = state.context
        self._check_guardrails(agent, state.messages)

        completion = await self._complete(agent, state, turn_span)
        state.metrics.total_turns += 1
        state.metrics.total_tokens += completion.usage.total_tokens

        structured = completion.structured_output if agent.has_output_schema else None
        handoff = completion.handoff if structured is None else None
        calls = list(completion.tool_calls) if structured is None and handoff is None else []

        metadata = {**completion.message.metadata, "agent": agent.name}
        if handoff is not None:
            metadata["handoff_to"] = handoff.target_agent
            if handoff.reason:
                metadata["handoff_reason"] = handoff.reason
        state.messages.append(
            completion.message.model_copy(
                update={"role": MessageRole.ASSISTANT, "tool_calls": calls, "metadata": metadata}
            )
        )
        logger.debug(
            "run %s turn %d: agent=%s tokens=%d tool_calls=%d handoff=%s",
            ctx.run_id,
            ctx.current_turn,
            agent.name,
            completion.usage.total_tokens,
            len(calls),
            handoff.target_agent if handoff else None,
        )

        schema = agent.output_schema
        if structured is not None and schema is not None:
            return True, schema.validate(structured), agent

        if handoff is not None:
            target = agent.get_handoff(handoff.target_agent)
            if target is None:
                raise HandoffNotFoundError(agent.name, handoff.target_agent, available=agent.handoff_names)
            span = start_span(
                self._tracer,
                "agent.handoff",
                parent=turn_span,
                source=agent.name,
                target=target.name,
                reason=handoff.reason,
            )
            state.metrics.handoffs += 1
            ctx.variables.update(handoff.context)
            ctx.current_agent = target.name
            end_span(self._tracer, span)
            logger.info("run %s handoff: %s -> %s", ctx.run_id, agent.name, target.name)
            return False, None, target

        if calls:
            state.metrics.tool_calls += len(calls)
            responses = await dispatch_tool_calls(
                calls,
                agent,
                ctx,
                parallel=self._config.parallel_tools,
                tracer=self._tracer,
                parent_span=turn_span,
            )
            state.messages.extend(r.to_message() for r in responses)
            return False, None, agent

        if not agent.has_output_schema:
            return True, completion.message.content, agent
        return False, None, agent

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _check_guardrails(self, agent: Agent, messages: List[Message]) -> None:
        if not messages or not agent.guardrails:
            return
        content = messages[-1].content
        for g in agent.guardrails:
            try:
                g.validate(content)
            except GuardrailViolationError:
                raise
            except Exception as e:
                raise GuardrailViolationError(
                    guardrail_name=getattr(g, "name", type(g).__name__),
                    reason=f"guardrail raised {type(e).__name__}: {e}",
                    content_preview=content,
                ) from e

    async def _complete(self, agent: Agent, state: _RunState, turn_span: Optional[Span]) -> Completion:
        provider_name = getattr(self._provider, "name", type(self._provider).__name__)
        span = start_span(
            self._tracer,
            "provider.complete",
            parent=turn_span,
            provider=provider_name,
            model=agent.model,
            messages=len(state.messages),
        )
        try:
            completion = await self._provider.complete(agent, list(state.messages), agent.tool_definitions())
            if not isinstance(completion, Completion):
                raise ProviderError(
                    provider=provider_name,
                    operation="complete",
                    reason=f"expected Completion, got {type(completion).__name__}",
                )
        except ProviderError as e:
            end_span(self._tracer, span, error=e)
            raise
        except Exception as e:
            end_span(self._tracer, span, error=e)
            raise ProviderError(provider=provider_name, operation="complete", original=e) from e
        except BaseException as e:
            end_span(self._tracer, span, error=e)
            raise
        end_span(self._tracer, span, tokens=completion.usage.total_tokens)
        return completion

    async def _load_history(self, session: Session) -> List[Message]:
        try:
            history = list(await session.get_items(limit=self._config.session_history_limit))
        except SessionError:
            raise
        except Exception as e:
            raise SessionError(session.session_id, "load", f"{type(e).__name__}: {e}") from e

        # A window cut between an assistant tool call and its results leaves
        # tool messages with no owning call, which backends reject.
        start = 0
        while start < len(history) and history[start].role == MessageRole.TOOL:
            start += 1
        if start:
            logger.debug("dropped %d orphan tool message(s) from session %s", start, session.session_id)
        return history[start:]

    async def _save_history(self, session: Session, messages: List[Message]) -> None:
        try:
            await session.add_items(messages)
        except SessionError:
            raise
        except Exception as e:
            raise SessionError(session.session_id, "save", f"{type(e).__name__}: {e}") from e


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_config(config: Optional[RunnerConfig], overrides: Dict[str, Any]) -> RunnerConfig:
    data = config.model_dump() if config is not None else {}
    unknown = set(overrides) - set(RunnerConfig.model_fields)
    if unknown:
        raise ConfigError(field="runner", reason=f"unknown runner options {sorted(unknown)}")
    data.update(overrides)
    try:
        return RunnerConfig(**data)
    except ValidationError as e:
        first = e.errors()[0]
        raise ConfigError(
            field=".".join(str(p) for p in first["loc"]),
            reason=first["msg"],
            value=first.get("input"),
        ) from e


def _attach(error: BatonError, state: _RunState) -> None:
    """Give a fatal error the partial metrics and history of its run."""
    error.metrics = state.snapshot_metrics()
    error.messages = list(state.messages)
    ctx = state.context
    error.details.setdefault("run_id", ctx.run_id)
    error.details.setdefault("session_id", ctx.session_id)
    error.details.setdefault("trace_id", ctx.trace_id)
    error.details.setdefault("last_agent", ctx.current_agent)


# ---------------------------------------------------------------------------
# Module-level shortcuts
# ---------------------------------------------------------------------------


async def run(
    agent: Agent,
    input: str,
    *,
    provider: Optional[CompletionProvider] = None,
    tracer: Optional[Tracer] = None,
    session: Optional[Session] = None,
    **config: Any,
) -> RunResult:
    """Build a one-off Runner and run `agent` on `input`."""
    runner = Runner(provider=provider, tracer=tracer, session=session, **config)
    return await runner.run(agent, input)


def run_sync(
    agent: Agent,
    input: str,
    *,
    provider: Optional[CompletionProvider] = None,
    tracer: Optional[Tracer] = None,
    session: Optional[Session] = None,
    **config: Any,
) -> RunResult:
    """Blocking form of run()."""
    runner = Runner(provider=provider, tracer=tracer, session=session, **config)
    return runner.run_sync(agent, input)
