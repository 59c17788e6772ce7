"""
tests/test_tracer.py — tracers and the guarded span helpers.
Run with: pytest tests/test_tracer.py -v
"""

from __future__ import annotations

import json
import logging

from baton.interfaces import Span, Tracer
from baton.observability.tracer import (
    InMemoryTracer,
    LoggingTracer,
    NoOpTracer,
    end_span,
    start_span,
)


class _BrokenTracer(Tracer):
    def start_span(self, name: str, parent: Span | None = None) -> Span:
        raise RuntimeError("exporter down")

    def end_span(self, span: Span) -> None:
        raise RuntimeError("exporter down")


class TestInMemoryTracer:
    def test_parent_links_and_lookup(self):
        tracer = InMemoryTracer()
        root = start_span(tracer, "agent.run", agent="A")
        child = start_span(tracer, "tool.add", parent=root)
        other = start_span(tracer, "tool.echo", parent=root)
        end_span(tracer, child)
        end_span(tracer, other)
        end_span(tracer, root, turns=1)

        assert tracer.find("agent.run") == [root]
        assert tracer.find("tool.") == [child, other]
        assert tracer.children_of(root) == [child, other]
        assert root.attributes == {"agent": "A", "turns": 1}
        assert all(s.ended and s.duration_ms >= 0 for s in tracer.spans)

    def test_error_recorded(self):
        tracer = InMemoryTracer()
        span = start_span(tracer, "provider.complete")
        end_span(tracer, span, error=ValueError("bad"))
        assert span.error == "ValueError: bad"

    def test_end_is_idempotent(self):
        tracer = InMemoryTracer()
        span = start_span(tracer, "agent.turn")
        end_span(tracer, span)
        first = span.end_time
        end_span(tracer, span)
        assert span.end_time == first

    def test_export(self):
        tracer = InMemoryTracer()
        end_span(tracer, start_span(tracer, "agent.run"))
        data = json.loads(tracer.export_json())
        assert data["span_count"] == 1
        assert data["spans"][0]["name"] == "agent.run"
        tracer.clear()
        assert tracer.spans == []


class TestOtherTracers:
    def test_noop_shares_one_span(self):
        tracer = NoOpTracer()
        assert tracer.start_span("a") is tracer.start_span("b")

    def test_logging_tracer(self, caplog):
        tracer = LoggingTracer(level=logging.INFO)
        with caplog.at_level(logging.INFO, logger="baton.trace"):
            end_span(tracer, start_span(tracer, "tool.add", tool_call_id="c1"))
        assert "span tool.add" in caplog.text
        assert "c1" in caplog.text


class TestGuardedHelpers:
    def test_broken_tracer_swallowed(self, caplog):
        tracer = _BrokenTracer()
        with caplog.at_level(logging.WARNING, logger="baton.observability.tracer"):
            span = start_span(tracer, "agent.run")
            end_span(tracer, span)
        assert span is None
        assert "failed to start span agent.run" in caplog.text

    def test_end_of_missing_span_is_noop(self):
        end_span(InMemoryTracer(), None, error="ignored")
