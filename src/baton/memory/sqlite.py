"""
baton/memory/sqlite.py

SQLite-backed session using aiosqlite.

The table is created on first use. Many sessions can share one database
file; rows are keyed by session_id and ordered by insertion.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from typing import Any, List, Optional

import aiosqlite

from baton.config import Message, MessageRole, ToolCall
from baton.errors import SessionError
from baton.interfaces import Session

logger = logging.getLogger(__name__)

_TOOL_CALLS_KEY = "__tool_calls__"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    metadata TEXT,
    created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_session_id ON messages(session_id);
CREATE INDEX IF NOT EXISTS idx_messages_created_at ON messages(created_at);
"""


class SQLiteSession(Session):
    """
    Durable session history.

    Usage::

        async with SQLiteSession("user-42", db_path="sessions.db") as session:
            runner = Runner(provider=provider, session=session)
            await runner.run(agent, "Hello again")
    """

    def __init__(self, session_id: Optional[str] = None, db_path: str = "sessions.db") -> None:
        self._session_id = session_id or str(uuid.uuid4())
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    async def initialize(self) -> None:
        if self._db is not None:
            return
        try:
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except sqlite3.Error as e:
            raise SessionError(self._session_id, "open", str(e)) from e
        logger.debug("SQLiteSession %s opened %s", self._session_id, self.db_path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        if self._db is None:
            raise SessionError(self._session_id, "open", "no connection after initialize")
        return self._db

    # ------------------------------------------------------------------
    # Session contract
    # ------------------------------------------------------------------

    async def get_items(self, limit: Optional[int] = None) -> List[Message]:
        db = await self._conn()
        query = (
            "SELECT role, content, metadata, created_at FROM messages "
            "WHERE session_id = ? ORDER BY id DESC"
        )
        params: List[Any] = [self._session_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(limit, 0))
        try:
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise SessionError(self._session_id, "load", str(e)) from e
        return [_row_to_message(r) for r in reversed(rows)]

    async def add_items(self, items: List[Message]) -> None:
        if not items:
            return
        db = await self._conn()
        rows = [
            (
                self._session_id,
                m.role.value,
                m.content,
                _encode_metadata(m),
                m.timestamp,
            )
            for m in items
        ]
        try:
            await db.executemany(
                "INSERT INTO messages (session_id, role, content, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                rows,
            )
            await db.commit()
        except sqlite3.Error as e:
            await db.rollback()
            raise SessionError(self._session_id, "save", str(e)) from e

    async def pop_item(self) -> Optional[Message]:
        db = await self._conn()
        try:
            async with db.execute(
                "SELECT id, role, content, metadata, created_at FROM messages "
                "WHERE session_id = ? ORDER BY id DESC LIMIT 1",
                (self._session_id,),
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            await db.execute("DELETE FROM messages WHERE id = ?", (row[0],))
            await db.commit()
        except sqlite3.Error as e:
            await db.rollback()
            raise SessionError(self._session_id, "pop", str(e)) from e
        return _row_to_message(row[1:])

    async def clear(self) -> None:
        db = await self._conn()
        try:
            await db.execute("DELETE FROM messages WHERE session_id = ?", (self._session_id,))
            await db.commit()
        except sqlite3.Error as e:
            raise SessionError(self._session_id, "clear", str(e)) from e

    async def __aenter__(self) -> SQLiteSession:
        await self.initialize()
        return self

    def __repr__(self) -> str:
        return f"SQLiteSession(session_id={self._session_id!r}, db_path={self.db_path!r})"


def _encode_metadata(message: Message) -> Optional[str]:
    data = dict(message.metadata)
    if message.tool_calls:
        data[_TOOL_CALLS_KEY] = [tc.model_dump() for tc in message.tool_calls]
    if not data:
        return None
    return json.dumps(data, default=str)


def _row_to_message(row: Any) -> Message:
    role, content, metadata_json, created_at = row
    metadata = json.loads(metadata_json) if metadata_json else {}
    tool_calls = [ToolCall(**tc) for tc in metadata.pop(_TOOL_CALLS_KEY, [])]
    return Message(
        role=MessageRole(role),
        content=content,
        tool_calls=tool_calls,
        metadata=metadata,
        timestamp=created_at,
    )
