"""Knowledge and platform search capabilities."""

from __future__ import annotations

import asyncio
from typing import Any

from support_assistant.core.logging import get_logger
from support_assistant.core.retrieval import format_documents

from .definitions import Capability, CapabilityDeps, CapabilityScope, query_schema

logger = get_logger(__name__)

SITE_COLLECTION_TOOL = "siteProductInfo"
GENERAL_SEARCH_TOOL = "generalSearchTool"
USER_SEARCH_TOOL = "userSearchTool"
OBJECTS_MAP_TOOL = "objectsMapTool"
OWNER_CONTACT_TOOL = "ownerContactTool"

NOT_FOUND = "Not found"


def _knowledge_capability(
    name: str, description: str, collection: str, k: int, deps: CapabilityDeps
) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        query = args.get("query", "")
        docs = await deps.knowledge.search(query, k=k, collection=collection)
        if not docs:
            return NOT_FOUND
        return format_documents(docs)

    return Capability(
        name=name,
        description=description,
        input_schema=query_schema("A fully formed question"),
        handler=_run,
    )


def _format_objects(objects: list[dict[str, Any]], host: str) -> str:
    blocks = []
    for obj in objects:
        lines = [f"name: {obj.get('name', '')}"]
        if obj.get("description"):
            lines.append(f"description: {obj['description']}")
        if obj.get("avatar"):
            lines.append(f"avatar: {obj['avatar']}")
        lines.append(f"objectType: {obj.get('object_type', '')}")
        link = obj.get("defaultShowLink") or f"/object/{obj.get('author_permlink', '')}"
        lines.append(f"link: https://{host}{link}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _format_users(users: list[dict[str, Any]], host: str) -> str:
    blocks = []
    for user in users:
        lines = [f"account: {user.get('account', '')}"]
        if user.get("posting_json_metadata"):
            lines.append(f"posting_json_metadata: {user['posting_json_metadata']}")
        lines.append(f"link: https://{host}/@{user.get('account', '')}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _general_search_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        result = await deps.platform_api.general_search(scope.host, args.get("query", ""))
        if result is None:
            return "Error during request"

        objects = result.get("wobjects") or []
        users = result.get("users") or []
        if not objects and not users:
            return NOT_FOUND

        response = ""
        if objects:
            response += f"here is objects i found:\n{_format_objects(objects, scope.host)}\n"
        if users:
            response += (
                f"here is user accounts i found:\n{_format_users(users, scope.host)}\n"
                "posting_json_metadata holds account settings, additional info can be found there"
            )
        return response

    return Capability(
        name=GENERAL_SEARCH_TOOL,
        description="Search objects (products, books, shops, recipes, businesses etc) and user accounts",
        input_schema=query_schema("Name or keywords of the object or account"),
        handler=_run,
    )


def _user_search_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        query = args.get("query", "").strip().lstrip("@")
        result = await deps.platform_api.general_search(scope.host, query, user_limit=10, wobjects_limit=0)
        if result is None:
            return "Error during request"
        users = result.get("users") or []
        if not users:
            return NOT_FOUND
        return f"here is user accounts i found:\n{_format_users(users, scope.host)}"

    return Capability(
        name=USER_SEARCH_TOOL,
        description="Find user accounts by name, e.g. when asked 'who is @name'",
        input_schema=query_schema("Account name, with or without @"),
        handler=_run,
    )


def _objects_map_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        box = {
            "topPoint": [args["top_right_lon"], args["top_right_lat"]],
            "bottomPoint": [args["bottom_left_lon"], args["bottom_left_lat"]],
        }
        objects = await deps.platform_api.search_objects_in_area(
            scope.host, box, object_type=args.get("object_type"), limit=args.get("limit", 20)
        )
        if not objects:
            return NOT_FOUND
        return _format_objects(objects, scope.host)

    coordinate = {"type": "number"}
    return Capability(
        name=OBJECTS_MAP_TOOL,
        description="Find places (restaurants, businesses) inside a map area given by its corners",
        input_schema={
            "type": "object",
            "properties": {
                "top_right_lat": coordinate,
                "top_right_lon": coordinate,
                "bottom_left_lat": coordinate,
                "bottom_left_lon": coordinate,
                "object_type": {"type": "string", "description": "e.g. restaurant, business"},
                "limit": {"type": "integer", "default": 20},
            },
            "required": ["top_right_lat", "top_right_lon", "bottom_left_lat", "bottom_left_lon"],
        },
        handler=_run,
    )


def _owner_contact_capability(scope: CapabilityScope, deps: CapabilityDeps) -> Capability:
    async def _run(args: dict[str, Any]) -> str:
        contact = await deps.platform_api.get_owner_contact(scope.host)
        if not contact:
            return NOT_FOUND
        return "site owner contact: " + ", ".join(f"{k}: {v}" for k, v in contact.items() if v)

    return Capability(
        name=OWNER_CONTACT_TOOL,
        description="Get contact information of this site's owner or customer support",
        input_schema={"type": "object", "properties": {}},
        handler=_run,
    )


async def build_search_capabilities(scope: CapabilityScope, deps: CapabilityDeps) -> list[Capability]:
    """Topic searches for existing collections, tenant search, and platform lookups."""
    topics, site_collection = await asyncio.gather(
        deps.knowledge.existing_topic_collections(),
        deps.knowledge.tenant_collection(scope.host),
    )

    capabilities = [
        _knowledge_capability(
            name=collection,
            description=(
                f"Useful for when you need to answer {description}. "
                "Input should be a fully formed question."
            ),
            collection=collection,
            k=deps.settings.TOPIC_SEARCH_K,
            deps=deps,
        )
        for collection, description in topics.items()
    ]

    if site_collection:
        capabilities.append(
            _knowledge_capability(
                name=SITE_COLLECTION_TOOL,
                description="Information about this site's products, recipes, books and business object catalog",
                collection=site_collection,
                k=deps.settings.SITE_SEARCH_K,
                deps=deps,
            )
        )

    capabilities.extend(
        [
            _general_search_capability(scope, deps),
            _user_search_capability(scope, deps),
            _objects_map_capability(scope, deps),
            _owner_contact_capability(scope, deps),
        ]
    )
    logger.debug(
        f"Search capabilities for {scope.host}: {len(topics)} topics, site collection={site_collection}"
    )
    return capabilities
