"""Tests for the Redis-backed session history store.

Covers:
- append/read ordering
- sliding TTL (renewed on each write, empty after expiry)
- SessionStoreUnavailable on Redis failures
- conversion of stored turns to chat messages
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from support_assistant.core.errors import SessionStoreUnavailable
from support_assistant.core.schemas_assistant import ConversationTurn, TurnRole
from support_assistant.db.session_history import SessionHistoryStore, turns_to_messages

from tests.fakes.fake_redis import FakeClock, FakeRedis

TTL = 600
PREFIX = "api_res_cache:assistant"


def _store(redis: FakeRedis) -> SessionHistoryStore:
    return SessionHistoryStore(redis, ttl_seconds=TTL, key_prefix=PREFIX)


def _human(text: str) -> ConversationTurn:
    return ConversationTurn(role=TurnRole.HUMAN, content=text)


def _assistant(text: str, used=None) -> ConversationTurn:
    return ConversationTurn(role=TurnRole.ASSISTANT, content=text, capabilities_used=used or [])


# ──────────────────────────────────────────────────────────────────────
# Ordering
# ──────────────────────────────────────────────────────────────────────


class TestOrdering:
    @pytest.mark.asyncio
    async def test_read_returns_turns_in_append_order(self):
        store = _store(FakeRedis())

        await store.append("s1", [_human("hi"), _assistant("hello")])
        await store.append("s1", [_human("who is @alice"), _assistant("alice is...", ["userSearchTool"])])

        turns = await store.read("s1")
        assert [t.content for t in turns] == ["hi", "hello", "who is @alice", "alice is..."]
        assert turns[3].capabilities_used == ["userSearchTool"]

    @pytest.mark.asyncio
    async def test_unknown_session_reads_empty(self):
        store = _store(FakeRedis())
        assert await store.read("missing") == []

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self):
        store = _store(FakeRedis())
        await store.append("a", [_human("from a")])
        await store.append("b", [_human("from b")])

        assert [t.content for t in await store.read("a")] == ["from a"]
        assert [t.content for t in await store.read("b")] == ["from b"]

    @pytest.mark.asyncio
    async def test_empty_append_is_noop(self):
        redis = FakeRedis()
        store = _store(redis)
        await store.append("s1", [])
        assert await store.read("s1") == []

    @pytest.mark.asyncio
    async def test_key_uses_prefix(self):
        redis = FakeRedis()
        store = _store(redis)
        await store.append("abc", [_human("x")])
        assert await redis.lrange(f"{PREFIX}:abc", 0, -1)

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(self):
        redis = FakeRedis()
        store = _store(redis)
        await redis.rpush(f"{PREFIX}:s1", "not json", '{"role": "nobody"}')
        await store.append("s1", [_human("valid")])

        turns = await store.read("s1")
        assert [t.content for t in turns] == ["valid"]


# ──────────────────────────────────────────────────────────────────────
# Expiry
# ──────────────────────────────────────────────────────────────────────


class TestExpiry:
    @pytest.mark.asyncio
    async def test_read_is_empty_after_ttl_without_writes(self):
        clock = FakeClock()
        store = _store(FakeRedis(clock))
        await store.append("s1", [_human("hi")])

        clock.advance(TTL + 1)

        assert await store.read("s1") == []

    @pytest.mark.asyncio
    async def test_each_write_renews_the_window(self):
        clock = FakeClock()
        store = _store(FakeRedis(clock))
        await store.append("s1", [_human("first")])

        clock.advance(TTL - 10)
        await store.append("s1", [_human("second")])
        clock.advance(TTL - 10)

        turns = await store.read("s1")
        assert [t.content for t in turns] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_reads_do_not_renew_the_window(self):
        clock = FakeClock()
        store = _store(FakeRedis(clock))
        await store.append("s1", [_human("hi")])

        clock.advance(TTL - 10)
        assert await store.read("s1")
        clock.advance(20)

        assert await store.read("s1") == []


# ──────────────────────────────────────────────────────────────────────
# Failures
# ──────────────────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_append_raises_session_store_unavailable(self):
        redis = FakeRedis()
        redis.fail = True
        with pytest.raises(SessionStoreUnavailable):
            await _store(redis).append("s1", [_human("hi")])

    @pytest.mark.asyncio
    async def test_read_raises_session_store_unavailable(self):
        redis = FakeRedis()
        redis.fail = True
        with pytest.raises(SessionStoreUnavailable):
            await _store(redis).read("s1")


# ──────────────────────────────────────────────────────────────────────
# Message conversion
# ──────────────────────────────────────────────────────────────────────


class TestTurnsToMessages:
    def test_maps_roles_and_drops_tool_turns(self):
        turns = [
            _human("q"),
            ConversationTurn(role=TurnRole.TOOL, content="raw", tool_call_id="call_1"),
            _assistant("a"),
        ]
        messages = turns_to_messages(turns)

        assert len(messages) == 2
        assert isinstance(messages[0], HumanMessage)
        assert isinstance(messages[1], AIMessage)
        assert messages[1].content == "a"
