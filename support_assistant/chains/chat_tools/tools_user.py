"""User-fact capabilities and the page-context capability.

Every user capability answers ``NOT_LOGGED_IN`` without touching any
service when the request carries no authenticated user.
"""

from __future__ import annotations

import json
from typing import Any

from .definitions import NO_ARGS_SCHEMA, NOT_LOGGED_IN, Capability, CapabilityDeps, CapabilityScope

VOTE_POWER_TOOL = "userVotePowerTool"
RESOURCE_CREDIT_TOOL = "userResourceCreditTool"
PROFILE_TOOL = "userProfileTool"
RECENT_TITLES_TOOL = "userRecentPostTitlesTool"
CHECK_IMPORT_TOOL = "userCheckImportTool"
PAGE_CONTEXT_TOOL = "userPageContextTool"


def _percent(basis_points: float) -> str:
    return f"{basis_points / 100:.2f}".rstrip("0").rstrip(".")


async def _guest_mana_text(scope: CapabilityScope, deps: CapabilityDeps) -> str:
    mana = await deps.platform_api.get_guest_mana(scope.user)
    if mana is None:
        return "Guest users have only mana, mana is not available right now"
    return f"Guest users have only mana, your mana is {mana}"


def _voting_power_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.user:
            return NOT_LOGGED_IN
        if scope.is_guest:
            return await _guest_mana_text(scope, deps)
        power = await deps.hive.get_voting_power(scope.user)
        return f"Current voting power is {_percent(power)}%"

    return Capability(
        name=VOTE_POWER_TOOL,
        description="Get user voting power (vp), min 0% max 100%",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def _resource_credit_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.user:
            return NOT_LOGGED_IN
        if scope.is_guest:
            return await _guest_mana_text(scope, deps)
        rc = await deps.hive.get_rc_percentage(scope.user)
        return f"Current resource credits is {_percent(rc)}%"

    return Capability(
        name=RESOURCE_CREDIT_TOOL,
        description="Get user resource credits (mana), min 0% max 100%",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def _profile_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.user:
            return NOT_LOGGED_IN

        user = await deps.platform_api.get_user(scope.user)
        if not user:
            return "user not found"

        try:
            metadata = json.loads(user.get("posting_json_metadata") or "{}")
        except json.JSONDecodeError:
            return "error during parsing profile"
        profile = metadata.get("profile") if isinstance(metadata, dict) else None
        if not profile:
            return "no profile info found"
        return f"profile data {json.dumps(profile)}"

    return Capability(
        name=PROFILE_TOOL,
        description="Get user profile info such as social links, about, cover and profile image",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def _recent_titles_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.user:
            return NOT_LOGGED_IN
        titles = await deps.platform_api.get_recent_titles(scope.user, scope.host)
        if not titles:
            return "posts not found"
        return f"[User recent post titles]: {titles}"

    return Capability(
        name=RECENT_TITLES_TOOL,
        description="Get user recent post titles",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def _check_import_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        if not scope.user:
            return NOT_LOGGED_IN
        if scope.is_guest:
            active = await deps.platform_api.is_guest_import_active(scope.user)
        else:
            active = await deps.hive.is_import_active(scope.user, deps.settings.IMPORT_BOT_ACCOUNT)
        return "Import is enabled" if active else "Import is disabled"

    return Capability(
        name=CHECK_IMPORT_TOOL,
        description="Check if the user activated the object import service",
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def page_context_capability(page_context: str) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        return page_context

    return Capability(
        name=PAGE_CONTEXT_TOOL,
        description=(
            "See the content of the page the user is currently on (to proofread a post "
            "or answer about data on that page)"
        ),
        input_schema=NO_ARGS_SCHEMA,
        handler=_run,
    )


def build_user_capabilities(scope: CapabilityScope, deps: CapabilityDeps) -> list[Capability]:
    return [
        _voting_power_capability(scope, deps),
        _resource_credit_capability(scope, deps),
        _profile_capability(scope, deps),
        _recent_titles_capability(scope, deps),
        _check_import_capability(scope, deps),
    ]
