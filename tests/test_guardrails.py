"""
tests/test_guardrails.py — built-in guardrails and the fail-fast chain.
Run with: pytest tests/test_guardrails.py -v
"""

from __future__ import annotations

import pytest

from baton.config import GuardrailResult
from baton.errors import GuardrailViolationError
from baton.safety.guardrails import (
    FunctionGuardrail,
    KeywordBlockGuard,
    LengthGuard,
    PIIGuard,
    RegexGuard,
    guardrail,
    run_guardrails,
)


class TestLengthGuard:
    def test_within_bounds(self):
        assert LengthGuard(min_chars=1, max_chars=10).check("hello").passed

    def test_too_long(self):
        result = LengthGuard(max_chars=3).check("hello")
        assert not result.passed
        assert result.reason == "content too long: 5 chars (max: 3)"
        assert result.guardrail_name == "length_guard"

    def test_too_short(self):
        result = LengthGuard(min_chars=10).check("hi")
        assert result.reason == "content too short: 2 chars (min: 10)"

    def test_bad_bounds(self):
        with pytest.raises(ValueError):
            LengthGuard(min_chars=5, max_chars=1)


class TestKeywordBlockGuard:
    def test_case_insensitive_by_default(self):
        result = KeywordBlockGuard(["Password"]).check("my PASSWORD is")
        assert not result.passed
        assert result.reason == "blocked keyword detected: 'Password'"

    def test_case_sensitive(self):
        guard = KeywordBlockGuard(["Password"], case_sensitive=True)
        assert guard.check("my password").passed
        assert not guard.check("my Password").passed

    def test_custom_name(self):
        assert KeywordBlockGuard(["x"], name="no_x").name == "no_x"


class TestPIIGuard:
    @pytest.mark.parametrize(
        "content,kind",
        [
            ("mail me at jane@example.com", "email"),
            ("ssn 123-45-6789", "ssn"),
            ("server at 10.0.0.12", "ip"),
        ],
    )
    def test_detects(self, content, kind):
        result = PIIGuard(patterns=[kind]).check(content)
        assert not result.passed
        assert result.reason == f"PII detected: {kind}"

    def test_clean_content(self):
        assert PIIGuard().check("nothing personal here").passed

    def test_unknown_pattern(self):
        with pytest.raises(ValueError):
            PIIGuard(patterns=["passport"])


class TestRegexGuard:
    def test_blocks_on_match(self):
        result = RegexGuard(r"DROP\s+TABLE", name="sql").check("please DROP TABLE users")
        assert not result.passed
        assert result.guardrail_name == "sql"

    def test_must_match(self):
        guard = RegexGuard(r"^ticket-\d+", must_match=True, reason="ticket id required")
        assert guard.check("ticket-12 is broken").passed
        assert guard.check("hello").reason == "ticket id required"


class TestFunctionGuardrail:
    def test_bool_predicate(self):
        guard = FunctionGuardrail(lambda c: not c.isupper(), name="no_shouting")
        assert guard.check("hello").passed
        assert guard.check("HELLO").reason == "rejected by predicate"

    def test_reason_string(self):
        guard = FunctionGuardrail(lambda c: "" if c else "empty message")
        assert guard.check("x").passed
        assert guard.check("").reason == "empty message"

    def test_result_passthrough(self):
        verdict = GuardrailResult(passed=False, guardrail_name="custom", reason="nope")
        assert FunctionGuardrail(lambda c: verdict).check("x") is verdict

    def test_decorator(self):
        @guardrail(description="No questions.")
        def no_questions(content: str) -> bool:
            return "?" not in content

        assert no_questions.name == "no_questions"
        assert no_questions.description == "No questions."
        with pytest.raises(GuardrailViolationError) as exc:
            no_questions.validate("why?")
        assert str(exc.value) == "guardrail 'no_questions' failed: rejected by predicate"


class TestChain:
    def test_all_pass(self):
        run_guardrails([LengthGuard(max_chars=100), KeywordBlockGuard(["secret"])], "hello")

    def test_first_failure_wins(self):
        calls = []

        def spy(content: str) -> bool:
            calls.append(content)
            return True

        chain = [KeywordBlockGuard(["secret"]), FunctionGuardrail(spy)]
        with pytest.raises(GuardrailViolationError) as exc:
            run_guardrails(chain, "a secret")
        assert exc.value.guardrail_name == "keyword_block"
        assert calls == []

    def test_preview_truncated(self):
        with pytest.raises(GuardrailViolationError) as exc:
            LengthGuard(max_chars=10).validate("x" * 500)
        assert len(exc.value.details["content_preview"]) == 100
