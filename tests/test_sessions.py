"""
tests/test_sessions.py — InMemorySession and SQLiteSession.
Run with: pytest tests/test_sessions.py -v
"""

from __future__ import annotations

import pytest
from builders import call

from baton.config import Message, MessageRole, ToolResponse
from baton.core.agent import Agent
from baton.core.runner import Runner
from baton.errors import SessionError
from baton.memory.session import InMemorySession
from baton.memory.sqlite import SQLiteSession
from baton.models.providers.noop import ScriptedProvider


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "sessions.db")


def _conversation() -> list[Message]:
    tc = call("add", call_id="c1", a=1, b=2)
    return [
        Message.user("1+2?"),
        Message.assistant("", tool_calls=[tc], agent="Math"),
        ToolResponse(tool_call_id="c1", tool_name="add", content=3).to_message(),
        Message.assistant("3", agent="Math"),
    ]


# ── InMemorySession ────────────────────────────────────────────────────────────


class TestInMemorySession:
    @pytest.mark.asyncio
    async def test_append_and_window(self):
        session = InMemorySession("s")
        await session.add_items(_conversation())
        assert len(session) == 4
        items = await session.get_items(limit=2)
        assert [m.role for m in items] == [MessageRole.TOOL, MessageRole.ASSISTANT]
        assert await session.get_items(limit=0) == []
        assert len(await session.get_items()) == 4

    @pytest.mark.asyncio
    async def test_pop_and_clear(self):
        session = InMemorySession()
        assert await session.pop_item() is None
        await session.add_items([Message.user("a"), Message.user("b")])
        popped = await session.pop_item()
        assert popped.content == "b"
        await session.clear()
        assert await session.get_items() == []

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self):
        session = InMemorySession()
        await session.add_items([Message.user("a")])
        items = await session.get_items()
        items.clear()
        assert len(session) == 1

    def test_generated_id(self):
        assert InMemorySession().session_id != InMemorySession().session_id


# ── SQLiteSession ──────────────────────────────────────────────────────────────


class TestSQLiteSession:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_tool_calls(self, db_path):
        async with SQLiteSession("s1", db_path=db_path) as session:
            await session.add_items(_conversation())
            items = await session.get_items()

        assert [m.role for m in items] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
        ]
        assert items[1].tool_calls[0].id == "c1"
        assert items[1].tool_calls[0].arguments == {"a": 1, "b": 2}
        assert items[1].metadata == {"agent": "Math"}
        assert items[2].tool_call_id == "c1"
        assert items[2].content == "3"

    @pytest.mark.asyncio
    async def test_connection_missing_after_initialize(self, db_path, monkeypatch):
        async def leaves_no_connection(self):
            return None

        monkeypatch.setattr(SQLiteSession, "initialize", leaves_no_connection)
        session = SQLiteSession("ghost", db_path=db_path)
        with pytest.raises(SessionError) as exc:
            await session.get_items()
        assert exc.value.operation == "open"

    @pytest.mark.asyncio
    async def test_survives_reopen(self, db_path):
        async with SQLiteSession("durable", db_path=db_path) as session:
            await session.add_items([Message.user("remember me")])
        async with SQLiteSession("durable", db_path=db_path) as session:
            [msg] = await session.get_items()
        assert msg.content == "remember me"

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, db_path):
        async with SQLiteSession("a", db_path=db_path) as a, SQLiteSession("b", db_path=db_path) as b:
            await a.add_items([Message.user("for a")])
            await b.add_items([Message.user("for b")])
            await a.clear()
            assert await a.get_items() == []
            assert [m.content for m in await b.get_items()] == ["for b"]

    @pytest.mark.asyncio
    async def test_limit_returns_newest_in_order(self, db_path):
        async with SQLiteSession("s", db_path=db_path) as session:
            await session.add_items([Message.user(str(i)) for i in range(5)])
            assert [m.content for m in await session.get_items(limit=2)] == ["3", "4"]
            assert await session.get_items(limit=0) == []

    @pytest.mark.asyncio
    async def test_pop(self, db_path):
        async with SQLiteSession("s", db_path=db_path) as session:
            assert await session.pop_item() is None
            await session.add_items([Message.user("a"), Message.user("b")])
            assert (await session.pop_item()).content == "b"
            assert [m.content for m in await session.get_items()] == ["a"]

    @pytest.mark.asyncio
    async def test_lazy_open(self, db_path):
        session = SQLiteSession("lazy", db_path=db_path)
        await session.add_items([Message.user("x")])
        assert len(await session.get_items()) == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_unopenable_path(self, tmp_path):
        session = SQLiteSession("s", db_path=str(tmp_path / "missing" / "dir" / "db.sqlite"))
        with pytest.raises(SessionError) as exc:
            await session.get_items()
        assert exc.value.operation == "open"

    @pytest.mark.asyncio
    async def test_runner_persists_across_sessions(self, db_path):
        provider = ScriptedProvider(["hi there", "still here"])
        async with SQLiteSession("chat", db_path=db_path) as session:
            await Runner(provider=provider, session=session).run(Agent(name="Chat"), "hello")
        async with SQLiteSession("chat", db_path=db_path) as session:
            result = await Runner(provider=provider, session=session).run(Agent(name="Chat"), "again")
            stored = await session.get_items()

        assert [m.content for m in provider.calls[1].messages] == ["hello", "hi there", "again"]
        assert [m.content for m in stored] == ["hello", "hi there", "again", "still here"]
        assert result.session_id == "chat"
