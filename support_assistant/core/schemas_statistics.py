"""Pydantic schemas for usage statistics reports.

Fields are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatisticItem(_CamelModel):
    """One user's counters for one UTC day."""

    user_name: str
    date_string: str
    chat_requests: int = 0
    image_requests: int = 0
    tools_used: list[str] = Field(default_factory=list)


class StatisticsPage(_CamelModel):
    result: list[StatisticItem]
    has_more: bool


class UserStatisticsSummary(_CamelModel):
    user_name: str
    total_chat_requests: int
    total_image_requests: int
    # Number of days with at least one recorded turn
    total_days_active: int
    unique_tools_used: list[str]


class DateStatisticsSummary(_CamelModel):
    date_string: str
    total_chat_requests: int
    total_image_requests: int
    total_users: int
    unique_tools_used: list[str]


class DateRangeStatisticsSummary(_CamelModel):
    start_date: str
    end_date: str
    total_chat_requests: int
    total_image_requests: int
    total_users: int
    total_days_active: int
    unique_tools_used: list[str]
    daily_breakdown: list[DateStatisticsSummary]


class TopUsersPage(_CamelModel):
    result: list[UserStatisticsSummary]
    has_more: bool
