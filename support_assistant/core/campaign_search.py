"""Campaign formatting and multi-keyword campaign search."""

from __future__ import annotations

import asyncio
from typing import Any

from support_assistant.core.logging import get_logger
from support_assistant.core.platform_api import PlatformApiClient
from support_assistant.db.campaigns import CampaignRepository

logger = get_logger(__name__)

PER_KEYWORD_LIMIT = 5


def campaign_types_label(obj: dict[str, Any]) -> str:
    """'campaign type: x,' / 'campaign types: x, y,' / '' from campaigns + propositions."""
    types: list[str] = []
    campaign_types = (obj.get("campaigns") or {}).get("campaignTypes") or obj.get("campaign_types") or []
    proposition_types = [p.get("type") for p in obj.get("propositions") or []]
    for t in [*campaign_types, *proposition_types]:
        if t and t not in types:
            types.append(t)

    if not types:
        return ""
    if len(types) == 1:
        return f"campaign type: {types[0]},"
    return f"campaign types: {', '.join(types)},"


def format_campaign_object(obj: dict[str, Any], host: str) -> str:
    label = campaign_types_label(obj)
    parts = [f"name: {obj.get('name', '')},"]
    if label:
        parts.append(label)
    parts.append(f"link: https://{host}/object/{obj.get('author_permlink', '')}")
    return " ".join(parts)


async def resolve_authorities(host: str, platform_api: PlatformApiClient) -> list[str] | None:
    """Owner accounts a tenant restricts its content to, or None when unrestricted."""
    configuration = await platform_api.get_site_configuration(host)
    authorities = [a for a in configuration.get("authorities") or [] if a]
    return authorities or None


async def search_campaigns_by_keywords(
    keywords: list[str],
    host: str,
    repository: CampaignRepository,
    platform_api: PlatformApiClient,
    limit: int = PER_KEYWORD_LIMIT,
) -> str:
    """
    Search active campaigns for each keyword concurrently.

    A failing keyword search is logged and omitted; keywords without
    matches are omitted silently.

    Returns:
        Formatted summary, or a "no campaigns" message when nothing matched
    """
    cleaned = []
    for keyword in keywords:
        keyword = keyword.strip()
        if keyword and keyword not in cleaned:
            cleaned.append(keyword)
    if not cleaned:
        return "No keywords provided"

    authorities = await resolve_authorities(host, platform_api)

    async def _one(keyword: str) -> list[dict[str, Any]]:
        try:
            return await repository.find_by_keyword(keyword, authorities=authorities, limit=limit)
        except Exception as e:
            logger.warning(f"Campaign search for '{keyword}' failed: {e}")
            return []

    results = await asyncio.gather(*(_one(k) for k in cleaned))

    sections = []
    for keyword, objects in zip(cleaned, results):
        if not objects:
            continue
        lines = "\n".join(f"- {format_campaign_object(o, host)}" for o in objects)
        sections.append(f"[{keyword}]\n{lines}")

    if not sections:
        return "No active campaigns found for these keywords"
    return "\n\n".join(sections)
