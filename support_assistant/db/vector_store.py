"""Vector search over knowledge collections stored in Supabase pgvector.

Each knowledge collection (topic collections, the curated Q&A collection and
one collection per tenant) is a set of rows in ``knowledge_documents`` keyed
by ``collection``. Collections are registered in ``knowledge_collections``;
tenants' collections are created out-of-band, so existence is always checked
against the table rather than cached.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from supabase import Client

from support_assistant.core.errors import VectorSearchError
from support_assistant.core.logging import get_logger

logger = get_logger(__name__)

MATCH_RPC = "match_knowledge_documents"
COLLECTIONS_TABLE = "knowledge_collections"


@dataclass
class VectorHit:
    """A raw hit from a collection. distance is cosine distance (lower is better)."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    distance: float | None = None


class VectorStore(Protocol):
    """Vector search service contract used by the retrieval router."""

    async def similarity_search(self, collection: str, query: str, k: int) -> list[VectorHit]: ...

    async def similarity_search_with_score(
        self, collection: str, query: str, k: int
    ) -> list[VectorHit]: ...

    async def collection_exists(self, name: str) -> bool: ...

    async def list_collections(self) -> list[str]: ...


class SupabaseVectorStore:
    """VectorStore backed by the ``match_knowledge_documents`` RPC."""

    def __init__(
        self,
        supabase: Client,
        embedder: Callable[[str], Awaitable[list[float]]],
    ):
        self._sb = supabase
        self._embed = embedder

    async def _match(self, collection: str, query: str, k: int) -> list[dict[str, Any]]:
        if not query.strip() or k <= 0:
            return []

        try:
            embedding = await self._embed(query)
            response = await asyncio.to_thread(
                lambda: self._sb.rpc(
                    MATCH_RPC,
                    {
                        "query_embedding": embedding,
                        "match_count": k,
                        "filter_collection": collection,
                    },
                ).execute()
            )
        except Exception as e:
            raise VectorSearchError(collection, str(e)) from e

        return response.data or []

    async def similarity_search(self, collection: str, query: str, k: int) -> list[VectorHit]:
        rows = await self._match(collection, query, k)
        return [
            VectorHit(text=row.get("content") or "", metadata=row.get("metadata") or {})
            for row in rows
        ]

    async def similarity_search_with_score(
        self, collection: str, query: str, k: int
    ) -> list[VectorHit]:
        rows = await self._match(collection, query, k)
        hits = []
        for row in rows:
            similarity = float(row.get("similarity") or 0.0)
            hits.append(
                VectorHit(
                    text=row.get("content") or "",
                    metadata=row.get("metadata") or {},
                    distance=1.0 - similarity,
                )
            )
        return hits

    async def collection_exists(self, name: str) -> bool:
        if not name:
            return False
        try:
            response = await asyncio.to_thread(
                lambda: self._sb.table(COLLECTIONS_TABLE)
                .select("name")
                .eq("name", name)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Collection lookup failed for {name}: {e}")
            return False
        return bool(response.data)

    async def list_collections(self) -> list[str]:
        try:
            response = await asyncio.to_thread(
                lambda: self._sb.table(COLLECTIONS_TABLE).select("name").execute()
            )
        except Exception as e:
            logger.warning(f"Failed to list knowledge collections: {e}")
            return []

        names: list[str] = []
        for row in response.data or []:
            name = row.get("name")
            if name and name not in names:
                names.append(name)
        return names
