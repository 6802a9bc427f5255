"""Usage statistics reports built from the per-user daily rows."""

from __future__ import annotations

from typing import Any, Literal

from support_assistant.core.logging import get_logger
from support_assistant.core.schemas_statistics import (
    DateRangeStatisticsSummary,
    DateStatisticsSummary,
    StatisticItem,
    StatisticsPage,
    TopUsersPage,
    UserStatisticsSummary,
)
from support_assistant.db.agent_statistics import AgentStatisticsRepository

logger = get_logger(__name__)

TopUsersSort = Literal["chatRequests", "imageRequests", "daysActive"]


def _item(row: dict[str, Any]) -> StatisticItem:
    return StatisticItem(
        user_name=row.get("user_name") or "",
        date_string=row.get("date_string") or "",
        chat_requests=int(row.get("chat_requests") or 0),
        image_requests=int(row.get("image_requests") or 0),
        tools_used=list(row.get("tools_used") or []),
    )


def _unique_tools(items: list[StatisticItem]) -> list[str]:
    tools: list[str] = []
    for item in items:
        for tool in item.tools_used:
            if tool not in tools:
                tools.append(tool)
    return tools


def summarize_user(user_name: str, items: list[StatisticItem]) -> UserStatisticsSummary:
    return UserStatisticsSummary(
        user_name=user_name,
        total_chat_requests=sum(i.chat_requests for i in items),
        total_image_requests=sum(i.image_requests for i in items),
        total_days_active=len(items),
        unique_tools_used=_unique_tools(items),
    )


def summarize_date(date_string: str, items: list[StatisticItem]) -> DateStatisticsSummary:
    """Totals for one day; every row of a day belongs to a different user."""
    return DateStatisticsSummary(
        date_string=date_string,
        total_chat_requests=sum(i.chat_requests for i in items),
        total_image_requests=sum(i.image_requests for i in items),
        total_users=len(items),
        unique_tools_used=_unique_tools(items),
    )


def summarize_range(start_date: str, end_date: str, items: list[StatisticItem]) -> DateRangeStatisticsSummary:
    by_date: dict[str, list[StatisticItem]] = {}
    for item in items:
        by_date.setdefault(item.date_string, []).append(item)

    return DateRangeStatisticsSummary(
        start_date=start_date,
        end_date=end_date,
        total_chat_requests=sum(i.chat_requests for i in items),
        total_image_requests=sum(i.image_requests for i in items),
        total_users=len({i.user_name for i in items}),
        total_days_active=len(by_date),
        unique_tools_used=_unique_tools(items),
        daily_breakdown=[summarize_date(day, by_date[day]) for day in sorted(by_date)],
    )


def rank_users(items: list[StatisticItem], limit: int, sort_by: TopUsersSort = "chatRequests") -> TopUsersPage:
    """
    Aggregate rows per user and return the top ``limit`` users.

    Ties keep first-seen order.
    """
    by_user: dict[str, list[StatisticItem]] = {}
    for item in items:
        by_user.setdefault(item.user_name, []).append(item)

    summaries = [summarize_user(name, rows) for name, rows in by_user.items()]
    sort_keys = {
        "chatRequests": lambda s: s.total_chat_requests,
        "imageRequests": lambda s: s.total_image_requests,
        "daysActive": lambda s: s.total_days_active,
    }
    summaries.sort(key=sort_keys[sort_by], reverse=True)
    return TopUsersPage(result=summaries[:limit], has_more=len(summaries) > limit)


class StatisticsService:
    """Read-side reports over ``AgentStatisticsRepository``.

    Repository failures surface as ``StatisticsStoreUnavailable``.
    """

    def __init__(self, repository: AgentStatisticsRepository):
        self._repository = repository

    async def by_user(self, user_name: str, skip: int = 0, limit: int = 10) -> StatisticsPage:
        rows, has_more = await self._repository.list_by_user(user_name, skip, limit)
        return StatisticsPage(result=[_item(r) for r in rows], has_more=has_more)

    async def by_date_range(
        self, start_date: str, end_date: str, skip: int = 0, limit: int = 10
    ) -> StatisticsPage:
        rows, has_more = await self._repository.list_by_date_range(start_date, end_date, skip, limit)
        return StatisticsPage(result=[_item(r) for r in rows], has_more=has_more)

    async def user_summary(self, user_name: str) -> UserStatisticsSummary:
        rows = await self._repository.all_by_user(user_name)
        return summarize_user(user_name, [_item(r) for r in rows])

    async def date_summary(self, date_string: str) -> DateStatisticsSummary:
        rows = await self._repository.all_in_range(date_string, date_string)
        return summarize_date(date_string, [_item(r) for r in rows])

    async def date_range_summary(self, start_date: str, end_date: str) -> DateRangeStatisticsSummary:
        rows = await self._repository.all_in_range(start_date, end_date)
        return summarize_range(start_date, end_date, [_item(r) for r in rows])

    async def top_users(self, limit: int = 10, sort_by: TopUsersSort = "chatRequests") -> TopUsersPage:
        rows = await self._repository.all_in_range()
        logger.debug(f"Ranking {len(rows)} statistics rows by {sort_by}")
        return rank_users([_item(r) for r in rows], limit, sort_by)
