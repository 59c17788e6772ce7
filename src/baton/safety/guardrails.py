"""
baton/safety/guardrails.py

Built-in composable guardrails.

Each guardrail is a self-contained, synchronous check on one piece of
content. The runner applies an agent's guardrails to the last message of
the history before every turn, in declaration order, and stops at the
first failure.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from re import Pattern

from baton.config import GuardrailResult
from baton.interfaces import Guardrail


class LengthGuard(Guardrail):
    """Blocks content shorter than min or longer than max characters."""

    def __init__(self, min_chars: int = 0, max_chars: int = 100_000) -> None:
        if min_chars < 0 or max_chars < min_chars:
            raise ValueError(f"invalid length bounds [{min_chars}, {max_chars}]")
        self._min = min_chars
        self._max = max_chars

    @property
    def name(self) -> str:
        return "length_guard"

    @property
    def description(self) -> str:
        return f"Content length must be within [{self._min}, {self._max}] characters"

    def check(self, content: str) -> GuardrailResult:
        length = len(content)
        if length < self._min:
            return GuardrailResult(
                passed=False,
                guardrail_name=self.name,
                reason=f"content too short: {length} chars (min: {self._min})",
            )
        if length > self._max:
            return GuardrailResult(
                passed=False,
                guardrail_name=self.name,
                reason=f"content too long: {length} chars (max: {self._max})",
            )
        return GuardrailResult(passed=True, guardrail_name=self.name)


class KeywordBlockGuard(Guardrail):
    """Blocks content containing any of the configured keywords."""

    def __init__(
        self,
        blocked_keywords: Iterable[str],
        case_sensitive: bool = False,
        name: str = "keyword_block",
    ) -> None:
        self._keywords = [k for k in blocked_keywords if k]
        self._case_sensitive = case_sensitive
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Blocks content containing sensitive keywords"

    def check(self, content: str) -> GuardrailResult:
        haystack = content if self._case_sensitive else content.lower()
        for kw in self._keywords:
            needle = kw if self._case_sensitive else kw.lower()
            if needle in haystack:
                return GuardrailResult(
                    passed=False,
                    guardrail_name=self.name,
                    reason=f"blocked keyword detected: '{kw}'",
                )
        return GuardrailResult(passed=True, guardrail_name=self.name)


class PIIGuard(Guardrail):
    """
    Blocks content carrying common PII patterns.
    Patterns: email, phone, SSN, credit card, IP address.
    """

    _PATTERNS: list[tuple[str, Pattern]] = [
        ("email", re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}")),
        ("phone", re.compile(r"\b(\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")),
        ("ssn", re.compile(r"\b\d{3}-\d{2}-\d{4}\b")),
        ("cc", re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")),
        ("ip", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")),
    ]

    def __init__(self, patterns: list[str] | None = None) -> None:
        """
        Args:
            patterns: Restrict to specific pattern names. None = all patterns.
        """
        known = {name for name, _ in self._PATTERNS}
        if patterns:
            unknown = set(patterns) - known
            if unknown:
                raise ValueError(f"unknown PII patterns: {sorted(unknown)}")
        self._active = set(patterns) if patterns else known

    @property
    def name(self) -> str:
        return "pii_guard"

    @property
    def description(self) -> str:
        return "Blocks content containing personal data"

    def check(self, content: str) -> GuardrailResult:
        for name, pattern in self._PATTERNS:
            if name in self._active and pattern.search(content):
                return GuardrailResult(
                    passed=False,
                    guardrail_name=self.name,
                    reason=f"PII detected: {name}",
                )
        return GuardrailResult(passed=True, guardrail_name=self.name)


class RegexGuard(Guardrail):
    """
    Fails when the pattern matches, or with must_match=True, when it
    does not.
    """

    def __init__(
        self,
        pattern: str | Pattern,
        name: str = "regex_guard",
        must_match: bool = False,
        reason: str | None = None,
    ) -> None:
        self._pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self._name = name
        self._must_match = must_match
        self._reason = reason

    @property
    def name(self) -> str:
        return self._name

    def check(self, content: str) -> GuardrailResult:
        matched = self._pattern.search(content) is not None
        if matched != self._must_match:
            default = (
                f"content does not match /{self._pattern.pattern}/"
                if self._must_match
                else f"content matches /{self._pattern.pattern}/"
            )
            return GuardrailResult(
                passed=False,
                guardrail_name=self.name,
                reason=self._reason or default,
            )
        return GuardrailResult(passed=True, guardrail_name=self.name)


class FunctionGuardrail(Guardrail):
    """
    Adapts a plain predicate into a guardrail.

    The function may return a bool, a failure reason string (empty string
    means pass), or a GuardrailResult.
    """

    def __init__(
        self,
        fn: Callable[[str], bool | str | GuardrailResult],
        name: str | None = None,
        description: str = "",
    ) -> None:
        self._fn = fn
        self._name = name or getattr(fn, "__name__", "function_guardrail")
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def check(self, content: str) -> GuardrailResult:
        out = self._fn(content)
        if isinstance(out, GuardrailResult):
            return out
        if isinstance(out, str):
            if out:
                return GuardrailResult(passed=False, guardrail_name=self.name, reason=out)
            return GuardrailResult(passed=True, guardrail_name=self.name)
        if out:
            return GuardrailResult(passed=True, guardrail_name=self.name)
        return GuardrailResult(passed=False, guardrail_name=self.name, reason="rejected by predicate")


def guardrail(name: str | None = None, description: str = "") -> Callable[[Callable], FunctionGuardrail]:
    """
    Decorator form of FunctionGuardrail.

    Example::

        @guardrail(name="no_shouting")
        def no_shouting(content: str) -> bool:
            return not content.isupper()
    """

    def decorator(fn: Callable) -> FunctionGuardrail:
        return FunctionGuardrail(fn, name=name, description=description)

    return decorator


def run_guardrails(guardrails: Sequence[Guardrail], content: str) -> None:
    """
    Validate content against each guardrail in order.

    Raises:
        GuardrailViolationError: on the first failure. Later guardrails
            are not consulted.
    """
    for g in guardrails:
        g.validate(content)
