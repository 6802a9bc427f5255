"""API endpoints for assistant usage statistics."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from support_assistant.core.errors import StatisticsStoreUnavailable
from support_assistant.core.logging import get_logger
from support_assistant.core.schemas_statistics import (
    DateRangeStatisticsSummary,
    DateStatisticsSummary,
    StatisticsPage,
    TopUsersPage,
    UserStatisticsSummary,
)
from support_assistant.core.statistics_service import StatisticsService, TopUsersSort

logger = get_logger(__name__)

router = APIRouter()

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def get_statistics(request: Request) -> StatisticsService:
    """Statistics service built by the application lifespan."""
    return request.app.state.statistics


def _check_range(start_date: str, end_date: str) -> None:
    # ISO dates compare correctly as strings
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="startDate must be before or equal to endDate")


def _unavailable(e: StatisticsStoreUnavailable) -> HTTPException:
    logger.error(f"Statistics store unavailable: {e}")
    return HTTPException(status_code=503, detail="Statistics are unavailable")


@router.get("/user/{user_name}", response_model=StatisticsPage)
async def get_statistics_by_user(
    user_name: str,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
    service: StatisticsService = Depends(get_statistics),
) -> StatisticsPage:
    """A user's daily counters, newest day first."""
    try:
        return await service.by_user(user_name, skip, limit)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e


@router.get("/user/{user_name}/summary", response_model=UserStatisticsSummary)
async def get_user_summary(
    user_name: str,
    service: StatisticsService = Depends(get_statistics),
) -> UserStatisticsSummary:
    try:
        return await service.user_summary(user_name)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e


@router.get("/date/{date_string}", response_model=DateStatisticsSummary)
async def get_date_summary(
    date_string: str = Path(..., pattern=DATE_PATTERN),
    service: StatisticsService = Depends(get_statistics),
) -> DateStatisticsSummary:
    try:
        return await service.date_summary(date_string)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e


@router.get("/date-range", response_model=DateRangeStatisticsSummary)
async def get_date_range_summary(
    start_date: str = Query(..., alias="startDate", pattern=DATE_PATTERN),
    end_date: str = Query(..., alias="endDate", pattern=DATE_PATTERN),
    service: StatisticsService = Depends(get_statistics),
) -> DateRangeStatisticsSummary:
    """Totals for an inclusive date range with a per-day breakdown."""
    _check_range(start_date, end_date)
    try:
        return await service.date_range_summary(start_date, end_date)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e


@router.get("/date-range/detailed", response_model=StatisticsPage)
async def get_statistics_by_date_range(
    start_date: str = Query(..., alias="startDate", pattern=DATE_PATTERN),
    end_date: str = Query(..., alias="endDate", pattern=DATE_PATTERN),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
    service: StatisticsService = Depends(get_statistics),
) -> StatisticsPage:
    _check_range(start_date, end_date)
    try:
        return await service.by_date_range(start_date, end_date, skip, limit)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e


@router.get("/top-users", response_model=TopUsersPage)
async def get_top_users(
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: TopUsersSort = Query(default="chatRequests", alias="sortBy"),
    service: StatisticsService = Depends(get_statistics),
) -> TopUsersPage:
    """Users ranked by total chat requests, image requests or active days."""
    try:
        return await service.top_users(limit, sort_by)
    except StatisticsStoreUnavailable as e:
        raise _unavailable(e) from e
