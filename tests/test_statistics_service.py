"""Tests for statistics reports and the repository reads behind them."""

from unittest.mock import MagicMock

import pytest

from support_assistant.core.errors import StatisticsStoreUnavailable
from support_assistant.core.schemas_statistics import StatisticItem
from support_assistant.core.statistics_service import (
    StatisticsService,
    rank_users,
    summarize_range,
    summarize_user,
)
from support_assistant.db.agent_statistics import SCAN_PAGE_SIZE, AgentStatisticsRepository


def _row(user, day, chat=0, image=0, tools=()):
    return {
        "user_name": user,
        "date_string": day,
        "chat_requests": chat,
        "image_requests": image,
        "tools_used": list(tools),
    }


def _items(*rows):
    return [StatisticItem(**row) for row in rows]


ROWS = [
    _row("alice", "2024-01-02", chat=5, image=1, tools=["UserTools", "imageTool"]),
    _row("bob", "2024-01-02", chat=2, tools=["generalSearchTool"]),
    _row("alice", "2024-01-01", chat=1, image=3, tools=["UserTools"]),
    _row("carol", "2024-01-01", chat=4),
    _row("bob", "2024-01-01", chat=4),
]


# ──────────────────────────────────────────────────────────────────────
# Aggregation
# ──────────────────────────────────────────────────────────────────────


class TestSummaries:
    def test_user_summary(self):
        summary = summarize_user("alice", _items(ROWS[0], ROWS[2]))

        assert summary.total_chat_requests == 6
        assert summary.total_image_requests == 4
        assert summary.total_days_active == 2
        assert summary.unique_tools_used == ["UserTools", "imageTool"]

    def test_empty_user_summary(self):
        summary = summarize_user("ghost", [])

        assert summary.total_days_active == 0
        assert summary.unique_tools_used == []

    def test_range_summary_counts_distinct_users_and_days(self):
        summary = summarize_range("2024-01-01", "2024-01-31", _items(*ROWS))

        assert summary.total_chat_requests == 16
        assert summary.total_image_requests == 4
        assert summary.total_users == 3
        assert summary.total_days_active == 2
        assert [d.date_string for d in summary.daily_breakdown] == ["2024-01-01", "2024-01-02"]
        assert summary.daily_breakdown[0].total_users == 3
        assert summary.daily_breakdown[0].total_chat_requests == 9

    def test_camel_case_dump(self):
        summary = summarize_range("2024-01-01", "2024-01-01", [])

        dumped = summary.model_dump(by_alias=True)
        assert dumped["startDate"] == "2024-01-01"
        assert dumped["dailyBreakdown"] == []


class TestRankUsers:
    def test_by_chat_requests(self):
        page = rank_users(_items(*ROWS), limit=10)

        assert [s.user_name for s in page.result] == ["alice", "bob", "carol"]
        assert page.has_more is False

    def test_by_image_requests(self):
        page = rank_users(_items(*ROWS), limit=1, sort_by="imageRequests")

        assert [s.user_name for s in page.result] == ["alice"]
        assert page.has_more is True

    def test_by_days_active(self):
        page = rank_users(_items(*ROWS), limit=10, sort_by="daysActive")

        assert [s.total_days_active for s in page.result] == [2, 2, 1]
        assert page.result[-1].user_name == "carol"


# ──────────────────────────────────────────────────────────────────────
# Repository reads
# ──────────────────────────────────────────────────────────────────────


class TestRepositoryReads:
    @pytest.mark.asyncio
    async def test_user_page_fetches_one_extra_row(self):
        sb = MagicMock()
        ranged = sb.table.return_value.select.return_value.eq.return_value.order.return_value.range
        ranged.return_value.execute.return_value = MagicMock(data=ROWS[:3])

        rows, has_more = await AgentStatisticsRepository(sb).list_by_user("alice", skip=4, limit=2)

        ranged.assert_called_once_with(4, 6)
        assert rows == ROWS[:2]
        assert has_more is True

    @pytest.mark.asyncio
    async def test_last_page_has_no_more(self):
        sb = MagicMock()
        query = sb.table.return_value.select.return_value.gte.return_value.lte.return_value
        ranged = query.order.return_value.order.return_value.range
        ranged.return_value.execute.return_value = MagicMock(data=ROWS[:1])

        rows, has_more = await AgentStatisticsRepository(sb).list_by_date_range(
            "2024-01-01", "2024-01-02", limit=10
        )

        query.order.assert_called_once_with("date_string", desc=True)
        assert rows == ROWS[:1]
        assert has_more is False

    @pytest.mark.asyncio
    async def test_full_scan_follows_pages(self):
        sb = MagicMock()
        ranged = sb.table.return_value.select.return_value.order.return_value.order.return_value.range
        first = [_row("u", "2024-01-01")] * (SCAN_PAGE_SIZE + 1)
        ranged.return_value.execute.side_effect = [MagicMock(data=first), MagicMock(data=ROWS)]

        rows = await AgentStatisticsRepository(sb).all_in_range()

        assert len(rows) == SCAN_PAGE_SIZE + len(ROWS)
        assert ranged.call_args_list[1].args == (SCAN_PAGE_SIZE, 2 * SCAN_PAGE_SIZE)

    @pytest.mark.asyncio
    async def test_read_failure_raises(self):
        sb = MagicMock()
        sb.table.side_effect = RuntimeError("supabase down")

        with pytest.raises(StatisticsStoreUnavailable):
            await AgentStatisticsRepository(sb).list_by_user("alice")


class TestStatisticsService:
    @pytest.mark.asyncio
    async def test_date_summary_reads_single_day(self):
        sb = MagicMock()
        query = sb.table.return_value.select.return_value.gte.return_value.lte.return_value
        query.order.return_value.order.return_value.range.return_value.execute.return_value = MagicMock(
            data=[ROWS[2], ROWS[3], ROWS[4]]
        )
        service = StatisticsService(AgentStatisticsRepository(sb))

        summary = await service.date_summary("2024-01-01")

        sb.table.return_value.select.return_value.gte.assert_called_once_with("date_string", "2024-01-01")
        query_lte = sb.table.return_value.select.return_value.gte.return_value.lte
        query_lte.assert_called_once_with("date_string", "2024-01-01")
        assert summary.total_users == 3
        assert summary.total_chat_requests == 9
        assert summary.unique_tools_used == ["UserTools"]

    @pytest.mark.asyncio
    async def test_page_maps_rows_to_items(self):
        sb = MagicMock()
        ranged = sb.table.return_value.select.return_value.eq.return_value.order.return_value.range
        ranged.return_value.execute.return_value = MagicMock(data=[ROWS[0]])

        page = await StatisticsService(AgentStatisticsRepository(sb)).by_user("alice")

        assert page.result[0].tools_used == ["UserTools", "imageTool"]
        assert page.has_more is False
