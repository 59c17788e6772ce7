"""
baton/context.py

RunContext: the per-run mutable state handed to tools.

Design rules:
  - This is not the Runner. It is one run's state.
  - Created fresh per run and discarded with the result.
  - Owned by exactly one in-flight run; never shared across runs.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, Optional


class RunContext:
    """
    Identity, turn position and free-form variables of a single run.

    Tools receive the context of the run that called them and may read
    or write `variables`. Handoff context supplied by the provider is
    merged into `variables` when control moves to another agent.
    """

    def __init__(
        self,
        max_turns: int,
        session_id: Optional[str] = None,
        trace_id: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        agent_name: str = "",
    ) -> None:
        self.run_id = str(uuid.uuid4())
        self.session_id = session_id or str(uuid.uuid4())
        self.trace_id = trace_id or str(uuid.uuid4())
        self.max_turns = max_turns
        self.current_turn = 0
        self.current_agent = agent_name
        self.variables: Dict[str, Any] = dict(variables or {})
        self.started_at = time.monotonic()

    @property
    def turns_remaining(self) -> int:
        return max(self.max_turns - self.current_turn, 0)

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at

    def summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "session_id": self.session_id,
            "trace_id": self.trace_id,
            "current_turn": self.current_turn,
            "max_turns": self.max_turns,
            "current_agent": self.current_agent,
            "elapsed_s": round(self.elapsed_s, 3),
        }
