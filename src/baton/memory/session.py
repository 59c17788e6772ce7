"""
baton/memory/session.py

InMemorySession: conversation history for single-process use.

History lives in a plain list and disappears with the process. Use
SQLiteSession (baton/memory/sqlite.py) when it must survive restarts.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional

from baton.config import Message
from baton.interfaces import Session


class InMemorySession(Session):
    """Default session for tests and single-process deployments."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        self._session_id = session_id or str(uuid.uuid4())
        self._items: List[Message] = []
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self._session_id

    async def get_items(self, limit: Optional[int] = None) -> List[Message]:
        async with self._lock:
            if limit is None:
                return list(self._items)
            if limit <= 0:
                return []
            return self._items[-limit:]

    async def add_items(self, items: List[Message]) -> None:
        async with self._lock:
            self._items.extend(items)

    async def pop_item(self) -> Optional[Message]:
        async with self._lock:
            if not self._items:
                return None
            return self._items.pop()

    async def clear(self) -> None:
        async with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"InMemorySession(session_id={self._session_id!r}, items={len(self._items)})"
