"""Per-user daily assistant usage counters."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from support_assistant.core.errors import StatisticsStoreUnavailable
from support_assistant.core.logging import get_logger

logger = get_logger(__name__)

STATISTICS_TABLE = "agent_statistics"
ROW_COLUMNS = "user_name, date_string, chat_requests, image_requests, tools_used"
# Rows per request when a report needs the whole result set; with the
# look-ahead row this stays under the PostgREST max-rows default of 1000
SCAN_PAGE_SIZE = 500


def _date_string(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")


class AgentStatisticsRepository:
    """One row per (user_name, date_string): upserted per turn, read by reports."""

    def __init__(self, supabase: Client):
        self._sb = supabase

    def _record_sync(self, user_name: str, tools_used: list[str], image_request: bool) -> None:
        date_string = _date_string()
        existing = (
            self._sb.table(STATISTICS_TABLE)
            .select("chat_requests, image_requests, tools_used")
            .eq("user_name", user_name)
            .eq("date_string", date_string)
            .limit(1)
            .execute()
        )
        row = (existing.data or [{}])[0]

        merged_tools = list(row.get("tools_used") or [])
        for name in tools_used:
            if name not in merged_tools:
                merged_tools.append(name)

        self._sb.table(STATISTICS_TABLE).upsert(
            {
                "user_name": user_name,
                "date_string": date_string,
                "chat_requests": int(row.get("chat_requests") or 0) + (0 if image_request else 1),
                "image_requests": int(row.get("image_requests") or 0) + (1 if image_request else 0),
                "tools_used": merged_tools,
            },
            on_conflict="user_name,date_string",
        ).execute()

    async def record_turn(
        self,
        user_name: str | None,
        tools_used: list[str],
        image_request: bool = False,
    ) -> None:
        """Record a completed turn. Fire-and-forget: failures are logged only."""
        if not user_name:
            return
        try:
            await asyncio.to_thread(self._record_sync, user_name, tools_used, image_request)
        except Exception as e:
            logger.warning(f"Failed to record assistant statistics for {user_name}: {e}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _page_sync(self, build_query, skip: int, limit: int) -> tuple[list[dict[str, Any]], bool]:
        # One extra row tells whether another page exists
        response = build_query().range(skip, skip + limit).execute()
        rows = response.data or []
        return rows[:limit], len(rows) > limit

    def _all_sync(self, build_query) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        while True:
            page, has_more = self._page_sync(build_query, len(rows), SCAN_PAGE_SIZE)
            rows.extend(page)
            if not has_more:
                return rows

    def _by_user(self, user_name: str):
        return (
            self._sb.table(STATISTICS_TABLE)
            .select(ROW_COLUMNS)
            .eq("user_name", user_name)
            .order("date_string", desc=True)
        )

    def _in_range(self, start_date: str | None, end_date: str | None):
        query = self._sb.table(STATISTICS_TABLE).select(ROW_COLUMNS)
        if start_date:
            query = query.gte("date_string", start_date)
        if end_date:
            query = query.lte("date_string", end_date)
        return query.order("date_string", desc=True).order("user_name")

    async def _read(self, what: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            logger.error(f"Failed to read statistics {what}: {e}")
            raise StatisticsStoreUnavailable(f"Cannot read statistics {what}") from e

    async def list_by_user(
        self, user_name: str, skip: int = 0, limit: int = 10
    ) -> tuple[list[dict[str, Any]], bool]:
        """
        One page of a user's daily rows, newest day first.

        Returns:
            (rows, has_more)

        Raises:
            StatisticsStoreUnavailable: If the table cannot be read
        """
        return await self._read(
            f"for user {user_name}", self._page_sync, lambda: self._by_user(user_name), skip, limit
        )

    async def list_by_date_range(
        self, start_date: str, end_date: str, skip: int = 0, limit: int = 10
    ) -> tuple[list[dict[str, Any]], bool]:
        """One page of rows with start_date <= date_string <= end_date, newest day first."""
        return await self._read(
            f"for {start_date}..{end_date}",
            self._page_sync,
            lambda: self._in_range(start_date, end_date),
            skip,
            limit,
        )

    async def all_by_user(self, user_name: str) -> list[dict[str, Any]]:
        return await self._read(
            f"for user {user_name}", self._all_sync, lambda: self._by_user(user_name)
        )

    async def all_in_range(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> list[dict[str, Any]]:
        """Every row in an inclusive date range; open ends read the whole table."""
        return await self._read(
            f"for {start_date or '*'}..{end_date or '*'}",
            self._all_sync,
            lambda: self._in_range(start_date, end_date),
        )
