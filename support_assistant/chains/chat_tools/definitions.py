"""Capability descriptor and per-request scope."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from support_assistant.core.config import Settings
from support_assistant.core.hive_service import HiveClient
from support_assistant.core.image_service import ImageService
from support_assistant.core.platform_api import PlatformApiClient
from support_assistant.core.retrieval import KnowledgeRouter
from support_assistant.db.campaigns import CampaignRepository

NO_ARGS_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}

NOT_LOGGED_IN = "user is not logged in"


def query_schema(description: str = "Search query") -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"query": {"type": "string", "description": description}},
        "required": ["query"],
    }


@dataclass(frozen=True)
class Capability:
    """A named, schema-described callable the model may request."""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: Callable[[dict[str, Any]], Awaitable[str]]

    def to_tool_definition(self) -> dict[str, Any]:
        """OpenAI function-tool format accepted by ``bind_tools``."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }

    async def invoke(self, args: dict[str, Any]) -> str:
        result = await self.handler(args or {})
        return result if isinstance(result, str) else str(result)


@dataclass(frozen=True)
class CapabilityScope:
    """Request-scoped values captured by capability closures. Already sanitized."""

    host: str
    user: str | None = None
    images: tuple[str, ...] = ()
    page_context: str | None = None

    @property
    def is_guest(self) -> bool:
        return bool(self.user and "_" in self.user)


@dataclass
class CapabilityDeps:
    """Client handles injected into capability builders."""

    settings: Settings
    knowledge: KnowledgeRouter
    platform_api: PlatformApiClient
    hive: HiveClient
    images: ImageService
    campaigns: CampaignRepository | None = None
