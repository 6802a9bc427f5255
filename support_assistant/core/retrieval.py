"""Knowledge retrieval router.

Two lanes feed a single-tenant search:

1. Curated lane: hand-authored Q&A pairs, always queried first and capped
   at ``min(k, CURATED_LANE_CAP)``. Curated hits are never displaced.
2. Fallback lane: one topic collection or the tenant's own collection,
   queried only for the residual capacity with progressively looser
   strategies (direct, over-fetch, query variants).

A separate cross-tenant aggregation searches every tenant collection at
once, dedupes by the leading ``[label]`` of each document and ranks by score.

Usage:
    router = KnowledgeRouter(vector_store, curated_collection="WaivioQnA")
    docs = await router.search("how do I create a campaign", k=4, collection="CampaignManagement")
"""

from __future__ import annotations

import asyncio
import re

from support_assistant.core.content_sanitizer import collection_name_for_host
from support_assistant.core.logging import get_logger
from support_assistant.core.schemas_assistant import DerivedFrom, RetrievalDocument
from support_assistant.db.vector_store import VectorHit, VectorStore

logger = get_logger(__name__)


# Topic collections and the description the model sees for each search tool
TOPIC_COLLECTIONS: dict[str, str] = {
    "UserTools": (
        "questions related to user tools, including account settings, notifications, "
        "profile management, wallet, WAIV token, drafts, bookmarks, user affiliate codes, "
        "new accounts (VIP tickets), inviting other users, managing user shops, and favorites"
    ),
    "CampaignManagement": "questions related to the creation and management of campaigns",
    "EarnCampaign": "questions related to how create review post and earn crypto",
    "ObjectImport": "questions related to how import objects to waivio",
    "SitesManagement": (
        "questions about how to create and manage sites, including basic information about "
        "social site views, features, peculiarities, and structure, also some info about "
        "existing sites"
    ),
    "WaivioObjects": (
        "questions related to how objects works, how create objects, how to fill objects "
        "with info, object types"
    ),
    "WaivioGeneral": (
        "general questions related to waivio how it works, what it is, about posts, "
        "newsfeeds, shops, hive account"
    ),
}

_LABEL_RE = re.compile(r"^\[([^\]]+)\]")


def canonical_key(text: str) -> str:
    """Dedup key of a tenant document: its exact leading [label], else the stripped text.

    Labels are case-sensitive: ``[Pizza]`` and ``[PIZZA]`` are different objects.
    """
    match = _LABEL_RE.match(text)
    if match:
        return match.group(1)
    return text.strip()


def query_variants(query: str) -> list[str]:
    """Case and whitespace variants of a query, excluding the query itself."""
    collapsed = " ".join(query.split())
    candidates = [collapsed, collapsed.lower(), collapsed.capitalize(), collapsed.title()]
    variants: list[str] = []
    for candidate in candidates:
        if candidate and candidate != query and candidate not in variants:
            variants.append(candidate)
    return variants


def format_documents(docs: list[RetrievalDocument]) -> str:
    """Render documents for a tool result."""
    return "\n\n".join(doc.text for doc in docs)


class KnowledgeRouter:
    """Resolves collections for a query and merges ranked results across them."""

    def __init__(
        self,
        vector_store: VectorStore,
        curated_collection: str,
        curated_cap: int = 3,
        topic_collections: dict[str, str] | None = None,
    ):
        self._store = vector_store
        self.curated_collection = curated_collection
        self.curated_cap = curated_cap
        self.topic_collections = topic_collections if topic_collections is not None else TOPIC_COLLECTIONS

    # ------------------------------------------------------------------
    # Collection resolution
    # ------------------------------------------------------------------

    async def collection_exists(self, name: str) -> bool:
        try:
            return await self._store.collection_exists(name)
        except Exception as e:
            logger.warning(f"Collection existence check failed for {name}: {e}")
            return False

    async def existing_topic_collections(self) -> dict[str, str]:
        """Topic collections that currently exist, in registry order."""
        names = list(self.topic_collections)
        flags = await asyncio.gather(*(self.collection_exists(n) for n in names))
        existing = {}
        for name, exists in zip(names, flags):
            if exists:
                existing[name] = self.topic_collections[name]
            else:
                logger.info(f"Collection {name} does not exist, skipping")
        return existing

    async def tenant_collection(self, host: str) -> str | None:
        """The tenant's own collection, if it has been created."""
        name = collection_name_for_host(host)
        if not name or name in self.topic_collections or name == self.curated_collection:
            return None
        if await self.collection_exists(name):
            return name
        return None

    async def tenant_collections(self) -> list[str]:
        """All collections other than topic collections and the curated one."""
        try:
            names = await self._store.list_collections()
        except Exception as e:
            logger.warning(f"Failed to list collections: {e}")
            return []
        excluded = set(self.topic_collections) | {self.curated_collection}
        return [n for n in names if n not in excluded]

    # ------------------------------------------------------------------
    # Single-tenant two-lane search
    # ------------------------------------------------------------------

    async def search(self, query: str, k: int, collection: str) -> list[RetrievalDocument]:
        """
        Curated-first search with fallback to one collection.

        Args:
            query: Free-text query
            k: Max documents to return
            collection: Fallback collection (topic or tenant)

        Returns:
            Up to k documents, curated hits first
        """
        if k <= 0:
            return []

        curated = await self._search_curated(query, min(k, self.curated_cap))
        remaining = max(0, k - len(curated))
        if remaining == 0:
            return curated

        fallback = await self._search_fallback(collection, query, remaining)
        return curated + fallback

    async def _search_curated(self, query: str, k: int) -> list[RetrievalDocument]:
        if k <= 0:
            return []
        try:
            hits = await self._store.similarity_search_with_score(self.curated_collection, query, k)
        except Exception as e:
            logger.warning(f"Curated lane failed, continuing with fallback: {e}")
            return []

        return [
            _to_document(hit, self.curated_collection, DerivedFrom.CURATED_QA)
            for hit in hits[:k]
        ]

    async def _search_fallback(self, collection: str, query: str, k: int) -> list[RetrievalDocument]:
        strategies = (
            ("direct", self._direct),
            ("over_fetch", self._over_fetch),
            ("variants", self._variants),
        )
        for label, strategy in strategies:
            try:
                hits = await strategy(collection, query, k)
            except Exception as e:
                logger.warning(f"Fallback strategy {label} failed on {collection}: {e}")
                continue
            if hits:
                logger.debug(f"Fallback strategy {label} returned {len(hits)} hits from {collection}")
                return [_to_document(h, collection, DerivedFrom.VECTOR) for h in hits[:k]]
        return []

    async def _direct(self, collection: str, query: str, k: int) -> list[VectorHit]:
        return await self._store.similarity_search(collection, query, k)

    async def _over_fetch(self, collection: str, query: str, k: int) -> list[VectorHit]:
        hits = await self._store.similarity_search(collection, query, k * 2)
        return hits[:k]

    async def _variants(self, collection: str, query: str, k: int) -> list[VectorHit]:
        variants = query_variants(query)
        if not variants:
            return []

        async def _one(variant: str) -> list[VectorHit]:
            try:
                return await self._store.similarity_search(collection, variant, k)
            except Exception as e:
                logger.debug(f"Variant search '{variant}' failed on {collection}: {e}")
                return []

        results = await asyncio.gather(*(_one(v) for v in variants))

        seen: set[str] = set()
        merged: list[VectorHit] = []
        for hits in results:
            for hit in hits:
                if hit.text in seen:
                    continue
                seen.add(hit.text)
                merged.append(hit)
        return merged[:k]

    # ------------------------------------------------------------------
    # Cross-tenant aggregation
    # ------------------------------------------------------------------

    async def search_all_tenants(self, query: str, limit: int) -> list[RetrievalDocument]:
        """
        Search every tenant collection, keep the best hit per canonical key,
        and return up to ``limit`` documents sorted by score descending.

        A failing collection is logged and skipped.
        """
        if limit <= 0:
            return []

        collections = await self.tenant_collections()
        if not collections:
            return []

        async def _one(collection: str) -> list[RetrievalDocument]:
            try:
                hits = await self._store.similarity_search_with_score(collection, query, limit)
            except Exception as e:
                logger.warning(f"Skipping collection {collection} in aggregation: {e}")
                return []
            return [_to_document(h, collection, DerivedFrom.VECTOR) for h in hits]

        per_collection = await asyncio.gather(*(_one(c) for c in collections))

        best: dict[str, RetrievalDocument] = {}
        for docs in per_collection:
            for doc in docs:
                key = canonical_key(doc.text)
                current = best.get(key)
                if current is None or _score(doc) > _score(current):
                    best[key] = doc

        ranked = sorted(best.values(), key=_score, reverse=True)
        return ranked[:limit]


def _score(doc: RetrievalDocument) -> float:
    return doc.relevance_score if doc.relevance_score is not None else 0.0


def _to_document(hit: VectorHit, collection: str, derived_from: DerivedFrom) -> RetrievalDocument:
    score = None if hit.distance is None else 1.0 - hit.distance
    return RetrievalDocument(
        text=hit.text,
        metadata=dict(hit.metadata),
        source_collection=collection,
        relevance_score=score,
        distance=hit.distance,
        derived_from=derived_from,
    )
