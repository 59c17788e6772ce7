"""
baton/observability/tracer.py

Span-based tracing for runs.

Span names emitted by the runner:
  agent.run          the whole run
  agent.turn         one turn of the loop
  provider.complete  one completion call
  tool.<name>        one tool call
  agent.handoff      a transfer of control

Tracing never blocks or alters a run. The runner goes through
start_span()/end_span() below, which log and swallow tracer failures.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from baton.interfaces import Span, Tracer

logger = logging.getLogger(__name__)


class RecordedSpan(Span):
    """A span that remembers its timing, attributes and error."""

    def __init__(self, name: str, parent: Optional[Span] = None) -> None:
        self.id = str(uuid.uuid4())[:8]
        self.name = name
        self.parent_id: Optional[str] = getattr(parent, "id", None)
        self.attributes: Dict[str, Any] = {}
        self.start_time = time.monotonic()
        self.end_time: Optional[float] = None
        self.error: Optional[str] = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_error(self, error: BaseException | str) -> None:
        self.error = error if isinstance(error, str) else f"{type(error).__name__}: {error}"

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.monotonic()

    @property
    def ended(self) -> bool:
        return self.end_time is not None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "attributes": self.attributes,
        }

    def __repr__(self) -> str:
        return f"RecordedSpan(name={self.name!r}, id={self.id!r}, parent_id={self.parent_id!r})"


class _NoOpSpan(Span):
    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_error(self, error: BaseException | str) -> None:
        pass

    def end(self) -> None:
        pass


class NoOpTracer(Tracer):
    """Default tracer. Discards everything."""

    _span = _NoOpSpan()

    def start_span(self, name: str, parent: Optional[Span] = None) -> Span:
        return self._span

    def end_span(self, span: Span) -> None:
        pass


class InMemoryTracer(Tracer):
    """
    Collects every span in start order. Useful in tests and for dumping a
    trace after a run.
    """

    def __init__(self) -> None:
        self._spans: List[RecordedSpan] = []
        self._created_at = time.time()

    def start_span(self, name: str, parent: Optional[Span] = None) -> Span:
        s = RecordedSpan(name, parent=parent)
        self._spans.append(s)
        return s

    def end_span(self, span: Span) -> None:
        span.end()

    @property
    def spans(self) -> List[RecordedSpan]:
        return list(self._spans)

    def find(self, name: str) -> List[RecordedSpan]:
        """All spans with this exact name, or with this prefix when it ends in '.'."""
        if name.endswith("."):
            return [s for s in self._spans if s.name.startswith(name)]
        return [s for s in self._spans if s.name == name]

    def children_of(self, span: RecordedSpan) -> List[RecordedSpan]:
        return [s for s in self._spans if s.parent_id == span.id]

    def clear(self) -> None:
        self._spans.clear()

    def export(self) -> Dict[str, Any]:
        return {
            "started_at": self._created_at,
            "spans": [s.to_dict() for s in self._spans],
            "span_count": len(self._spans),
        }

    def export_json(self) -> str:
        return json.dumps(self.export(), indent=2, default=str)


class LoggingTracer(Tracer):
    """Writes one log record per finished span to the `baton.trace` logger."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self._level = level
        self._log = logging.getLogger("baton.trace")

    def start_span(self, name: str, parent: Optional[Span] = None) -> Span:
        return RecordedSpan(name, parent=parent)

    def end_span(self, span: Span) -> None:
        span.end()
        if not isinstance(span, RecordedSpan):
            return
        self._log.log(
            self._level,
            "span %s id=%s parent=%s duration_ms=%.1f error=%s attributes=%s",
            span.name,
            span.id,
            span.parent_id,
            span.duration_ms or 0.0,
            span.error,
            span.attributes,
        )


# ---------------------------------------------------------------------------
# Guarded helpers used by the runner and dispatcher
# ---------------------------------------------------------------------------


def start_span(
    tracer: Tracer,
    name: str,
    parent: Optional[Span] = None,
    **attributes: Any,
) -> Optional[Span]:
    try:
        span = tracer.start_span(name, parent=parent)
        for key, value in attributes.items():
            span.set_attribute(key, value)
        return span
    except Exception as e:
        logger.warning("tracer %s failed to start span %s: %s", type(tracer).__name__, name, e)
        return None


def end_span(
    tracer: Tracer,
    span: Optional[Span],
    error: BaseException | str | None = None,
    **attributes: Any,
) -> None:
    if span is None:
        return
    try:
        for key, value in attributes.items():
            span.set_attribute(key, value)
        if error is not None:
            span.set_error(error)
        tracer.end_span(span)
    except Exception as e:
        logger.warning("tracer %s failed to end span: %s", type(tracer).__name__, e)
