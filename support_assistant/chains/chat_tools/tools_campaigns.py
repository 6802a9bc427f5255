"""Campaign capabilities: tenant-wide listing and keyword-scoped search."""

from __future__ import annotations

from typing import Any

from support_assistant.core.campaign_search import format_campaign_object, search_campaigns_by_keywords

from .definitions import NO_ARGS_SCHEMA, Capability, CapabilityDeps, CapabilityScope

HOST_CAMPAIGN_TOOL = "hostCampaignTool"
CAMPAIGN_KEYWORD_TOOL = "campaignKeywordSearchTool"


def render_rewards(objects: list[dict[str, Any]], host: str) -> str:
    """Rewards block with goal text, or a pointer to the rewards page when empty."""
    if objects:
        listing = "\n".join(format_campaign_object(o, host) for o in objects)
        return (
            f"\n[Relevant Rewards]\n- Here are recent objects with active rewards: {listing}\n"
            "\n[Your Goals]\n- Motivate the user to participate in campaigns to earn WAIV tokens.\n"
            "- Use the provided rewards info to personalize your suggestions."
        )
    return (
        "\n[Relevant Rewards]\n- No active rewards found at this time.\n"
        "\n[Your Goals]\n- Motivate the user to check the rewards page and participate "
        "when new campaigns are available.\n"
        f"- Direct the user to https://{host}/rewards/global.\n"
    )


def _host_campaign_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        objects = await deps.platform_api.get_active_campaign_objects(scope.host)
        return render_rewards(objects, scope.host)

    return Capability(
        name=HOST_CAMPAIGN_TOOL,
        description="Get campaigns (rewards) that are currently active on this site",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def _keyword_campaign_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        keywords = args.get("keywords") or []
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        return await search_campaigns_by_keywords(
            keywords, scope.host, deps.campaigns, deps.platform_api
        )

    return Capability(
        name=CAMPAIGN_KEYWORD_TOOL,
        description=(
            "Find active campaigns for specific products, places or topics. "
            "Pass one keyword per item the user mentioned."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "keywords": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Keywords to search campaigns for",
                }
            },
            "required": ["keywords"],
        },
        handler=_run,
    )


def build_campaign_capabilities(scope: CapabilityScope, deps: CapabilityDeps) -> list[Capability]:
    capabilities = [_host_campaign_capability(scope, deps)]
    if deps.campaigns is not None:
        capabilities.append(_keyword_campaign_capability(scope, deps))
    return capabilities
