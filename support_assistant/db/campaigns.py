"""Campaign object lookups in the platform objects table."""

from __future__ import annotations

import asyncio
from typing import Any

from supabase import Client

from support_assistant.core.logging import get_logger

logger = get_logger(__name__)

OBJECTS_TABLE = "wobjects"
CAMPAIGN_FIELDS = "name, object_type, author_permlink, campaign_types, authorities"


class CampaignRepository:
    """Query objects that currently carry an active campaign."""

    def __init__(self, supabase: Client):
        self._sb = supabase

    async def find_by_keyword(
        self,
        keyword: str,
        authorities: list[str] | None = None,
        limit: int = 5,
    ) -> list[dict[str, Any]]:
        """
        Find active-campaign objects whose name matches a keyword.

        Args:
            keyword: Case-insensitive substring of the object name
            authorities: When set, only objects owned by one of these accounts
            limit: Max rows to return

        Returns:
            Matching object rows

        Raises:
            Exception: Any Supabase failure is propagated to the caller
        """

        def _query():
            query = (
                self._sb.table(OBJECTS_TABLE)
                .select(CAMPAIGN_FIELDS)
                .eq("has_active_campaign", True)
                .ilike("name", f"%{keyword}%")
            )
            if authorities:
                query = query.ov("authorities", authorities)
            return query.limit(limit).execute()

        response = await asyncio.to_thread(_query)
        logger.debug(f"Campaign keyword '{keyword}' matched {len(response.data or [])} objects")
        return response.data or []
