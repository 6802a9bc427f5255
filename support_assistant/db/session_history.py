"""Per-session conversation history in Redis.

Each session is a Redis list of JSON-encoded turns under
``<prefix>:<session_id>``. Every append re-arms the key's TTL, so a
session disappears after SESSION_TTL_SECONDS without writes.
"""

from __future__ import annotations

import json

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from redis.asyncio import Redis
from redis.exceptions import RedisError

from support_assistant.core.config import Settings, get_settings
from support_assistant.core.errors import SessionStoreUnavailable
from support_assistant.core.logging import get_logger
from support_assistant.core.schemas_assistant import ConversationTurn, TurnRole

logger = get_logger(__name__)


def create_redis(settings: Settings | None = None) -> Redis:
    """Create the async Redis client used for history."""
    settings = settings or get_settings()
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


class SessionHistoryStore:
    """Append-only session log with a sliding expiration window."""

    def __init__(self, redis: Redis, ttl_seconds: int, key_prefix: str):
        self._redis = redis
        self._ttl = ttl_seconds
        self._prefix = key_prefix

    async def aclose(self) -> None:
        await self._redis.aclose()

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def append(self, session_id: str, turns: list[ConversationTurn]) -> None:
        """
        Append turns in order and reset the session's expiration.

        Raises:
            SessionStoreUnavailable: If Redis cannot be written
        """
        if not turns:
            return

        key = self._key(session_id)
        payloads = [turn.model_dump_json() for turn in turns]
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.rpush(key, *payloads)
                pipe.expire(key, self._ttl)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"History append failed for session {session_id}: {e}")
            raise SessionStoreUnavailable(f"Cannot write session {session_id}") from e

    async def read(self, session_id: str) -> list[ConversationTurn]:
        """
        Read all turns of a session in append order. Missing or expired
        sessions read as empty.

        Raises:
            SessionStoreUnavailable: If Redis cannot be read
        """
        try:
            raw = await self._redis.lrange(self._key(session_id), 0, -1)
        except RedisError as e:
            logger.error(f"History read failed for session {session_id}: {e}")
            raise SessionStoreUnavailable(f"Cannot read session {session_id}") from e

        turns = []
        for item in raw or []:
            try:
                turns.append(ConversationTurn.model_validate(json.loads(item)))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed history entry in {session_id}: {e}")
        return turns


def turn_to_message(turn: ConversationTurn) -> BaseMessage:
    """Convert a stored turn into a LangChain message."""
    if turn.role == TurnRole.HUMAN:
        return HumanMessage(content=turn.content)
    if turn.role == TurnRole.ASSISTANT:
        return AIMessage(content=turn.content)
    if turn.role == TurnRole.TOOL:
        return ToolMessage(content=turn.content, tool_call_id=turn.tool_call_id or "")
    return SystemMessage(content=turn.content)


def turns_to_messages(turns: list[ConversationTurn]) -> list[BaseMessage]:
    """Convert history to prompt messages.

    Tool turns are dropped: without the assistant tool-call message that
    produced them the model API rejects them.
    """
    return [turn_to_message(t) for t in turns if t.role != TurnRole.TOOL]
