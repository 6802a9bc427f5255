"""Assistant turn orchestration.

One turn: read history → build capabilities → decide on tool reinforcement
→ run the assistant graph → persist the human/assistant pair. The engine
receives every client handle at construction time; ``from_settings`` is
the production wiring.
"""

from __future__ import annotations

import asyncio
import uuid

from langchain_core.language_models import BaseChatModel
from openai import AsyncOpenAI
from supabase import Client

from support_assistant.chains.chat_tools import (
    IMAGE_TOOL,
    CapabilityDeps,
    CapabilityScope,
    build_capabilities,
    build_scope,
    run_image_request,
)
from support_assistant.context.prompt_blocks import build_fallback_prompt, build_system_prompt
from support_assistant.core.config import Settings, get_settings
from support_assistant.core.content_sanitizer import strip_angle_brackets
from support_assistant.core.embeddings import Embedder
from support_assistant.core.hive_service import HiveClient
from support_assistant.core.image_service import ImageService
from support_assistant.core.llm import get_llm
from support_assistant.core.logging import get_logger
from support_assistant.core.platform_api import PlatformApiClient
from support_assistant.core.retrieval import KnowledgeRouter
from support_assistant.core.schemas_assistant import (
    ConversationTurn,
    HistoryItem,
    RetrievalDocument,
    TurnRequest,
    TurnResult,
    TurnRole,
)
from support_assistant.core.tool_policy import last_assistant_turn, needs_tools, parse_keywords
from support_assistant.db.agent_statistics import AgentStatisticsRepository
from support_assistant.db.campaigns import CampaignRepository
from support_assistant.db.session_history import SessionHistoryStore, create_redis, turns_to_messages
from support_assistant.db.supabase_client import create_supabase
from support_assistant.db.vector_store import SupabaseVectorStore
from support_assistant.graphs.assistant_graph import AssistantGraph, AssistantTurnState

logger = get_logger(__name__)

IMAGINE_COMMAND = "/imagine"


class AssistantEngine:
    """Handles assistant turns for every tenant."""

    def __init__(
        self,
        settings: Settings,
        history: SessionHistoryStore,
        llm: BaseChatModel,
        deps: CapabilityDeps,
        statistics: AgentStatisticsRepository | None = None,
    ):
        self._settings = settings
        self._history = history
        self._deps = deps
        self._statistics = statistics
        self._keywords = parse_keywords(settings.TOOL_FORCING_KEYWORDS)
        self._graph = AssistantGraph(llm, tool_timeout=settings.TOOL_CALL_TIMEOUT_SECONDS)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, supabase: Client | None = None) -> AssistantEngine:
        """Wire production clients from settings, optionally sharing a Supabase client."""
        settings = settings or get_settings()
        supabase = supabase or create_supabase(settings)
        platform_api = PlatformApiClient(settings.APP_HOST, timeout=settings.PLATFORM_API_TIMEOUT_SECONDS)
        openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

        embedder = Embedder(openai_client, settings.EMBEDDING_MODEL, settings.EMBEDDING_DIM)
        knowledge = KnowledgeRouter(
            SupabaseVectorStore(supabase, embedder=embedder),
            curated_collection=settings.CURATED_QA_COLLECTION,
            curated_cap=settings.CURATED_LANE_CAP,
        )
        images = ImageService(
            openai_client,
            platform_api,
            model=settings.IMAGE_MODEL,
            vision_model=settings.VISION_MODEL,
            quality=settings.IMAGE_QUALITY,
            timeout=settings.IMAGE_TIMEOUT_SECONDS,
        )
        deps = CapabilityDeps(
            settings=settings,
            knowledge=knowledge,
            platform_api=platform_api,
            hive=HiveClient(settings.hive_nodes, timeout=settings.HIVE_TIMEOUT_SECONDS),
            images=images,
            campaigns=CampaignRepository(supabase),
        )
        history = SessionHistoryStore(
            create_redis(settings),
            ttl_seconds=settings.SESSION_TTL_SECONDS,
            key_prefix=settings.SESSION_KEY_PREFIX,
        )
        return cls(
            settings=settings,
            history=history,
            llm=get_llm(settings=settings),
            deps=deps,
            statistics=AgentStatisticsRepository(supabase),
        )

    async def aclose(self) -> None:
        """Release the Redis connection pool and the HTTP clients."""
        await self._history.aclose()
        await self._deps.platform_api.aclose()
        await self._deps.hive.aclose()
        await self._deps.images.aclose()
        logger.info("Assistant engine closed")

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def _scope(self, request: TurnRequest) -> CapabilityScope:
        return build_scope(
            host=request.tenant,
            user=request.user_identity,
            images=request.images,
            page_context=request.page_context,
            max_images=self._settings.MAX_ATTACHED_IMAGES,
        )

    async def handle_turn(self, request: TurnRequest) -> TurnResult:
        """
        Answer one user utterance and append the exchange to the session.

        Args:
            request: Utterance, tenant, session and optional user/images/page context

        Returns:
            TurnResult with the answer and the capability names used

        Raises:
            SessionStoreUnavailable: If history cannot be read or written
            ModelServiceUnavailable: If no answer could be produced at all
        """
        scope = self._scope(request)
        utterance = request.utterance.strip()
        log_extra = {"session_id": request.session_id, "host": scope.host}

        history = await self._history.read(request.session_id)

        if utterance.lower().startswith(IMAGINE_COMMAND):
            return await self._handle_imagine(request.session_id, utterance, scope)

        capabilities, site_description = await asyncio.gather(
            build_capabilities(scope, self._deps),
            self._deps.platform_api.get_site_description(scope.host),
        )
        reinforce = needs_tools(utterance, last_assistant_turn(history), self._keywords)

        logger.info(
            f"Handling turn with {len(capabilities)} capabilities, {len(history)} prior turns, "
            f"reinforce={reinforce}",
            extra=log_extra,
        )

        state = AssistantTurnState(
            utterance=utterance,
            system_prompt=build_system_prompt(
                host=scope.host,
                site_description=strip_angle_brackets(site_description),
                user=scope.user,
                page_context=scope.page_context,
            ),
            fallback_prompt=build_fallback_prompt(scope.host, scope.user),
            history=turns_to_messages(history),
            capabilities=capabilities,
            reinforce=reinforce,
            session_id=request.session_id,
        )
        final_state = await self._graph.run(state)

        answer = final_state.get("answer", "")
        used = list(final_state.get("capabilities_used") or [])
        if final_state.get("fallback_used"):
            logger.warning("Turn answered by fallback", extra=log_extra)

        await self._history.append(
            request.session_id,
            [
                ConversationTurn(role=TurnRole.HUMAN, content=utterance),
                ConversationTurn(role=TurnRole.ASSISTANT, content=answer, capabilities_used=used),
            ],
        )

        logger.info(
            "Turn completed",
            extra={
                **log_extra,
                "extra_data": {
                    "capabilities_used": used,
                    "fallback_used": bool(final_state.get("fallback_used")),
                },
            },
        )
        return TurnResult(answer=answer, capabilities_used=used)

    async def _handle_imagine(self, session_id: str, utterance: str, scope: CapabilityScope) -> TurnResult:
        """``/imagine <prompt>`` goes straight to the image capability."""
        prompt = utterance[len(IMAGINE_COMMAND):].strip() or utterance
        answer = await run_image_request(prompt, scope, self._deps, size=self._settings.IMAGE_SIZE)

        await self._history.append(
            session_id,
            [
                ConversationTurn(role=TurnRole.HUMAN, content=utterance),
                ConversationTurn(role=TurnRole.ASSISTANT, content=answer, capabilities_used=[IMAGE_TOOL]),
            ],
        )
        logger.info("Handled /imagine command", extra={"session_id": session_id, "host": scope.host})
        return TurnResult(answer=answer, capabilities_used=[IMAGE_TOOL])

    async def record_usage(self, user_name: str | None, capabilities_used: list[str]) -> None:
        """Per-user daily statistics; a no-op without a user or repository."""
        if self._statistics is None or not user_name:
            return
        await self._statistics.record_turn(
            user_name,
            capabilities_used,
            image_request=IMAGE_TOOL in capabilities_used,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_history(self, session_id: str) -> list[HistoryItem]:
        """Human and assistant turns of a session. Ids are generated per read."""
        turns = await self._history.read(session_id)
        return [
            HistoryItem(id=str(uuid.uuid4()), text=turn.content, role=turn.role)
            for turn in turns
            if turn.role in (TurnRole.HUMAN, TurnRole.ASSISTANT)
        ]

    async def search_all_tenants(self, query: str, limit: int = 10) -> list[RetrievalDocument]:
        """Platform-wide lookup across every tenant collection."""
        return await self._deps.knowledge.search_all_tenants(query, limit)
