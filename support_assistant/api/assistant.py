"""API endpoints for the support assistant."""

from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, Header, HTTPException, Query, Request

from support_assistant.core.chat_turn import AssistantEngine
from support_assistant.core.config import get_settings
from support_assistant.core.content_sanitizer import host_from_headers
from support_assistant.core.errors import ModelServiceUnavailable, SessionStoreUnavailable
from support_assistant.core.logging import get_logger
from support_assistant.core.schemas_assistant import (
    HistoryOut,
    MessageIn,
    MessageOut,
    RetrievalDocument,
    TurnRequest,
)

logger = get_logger(__name__)

router = APIRouter()


def get_engine(request: Request) -> AssistantEngine:
    """Engine built by the application lifespan."""
    return request.app.state.engine


def get_host(
    origin: str | None = Header(default=None),
    referer: str | None = Header(default=None),
) -> str:
    return host_from_headers(origin, referer, default=get_settings().APP_HOST)


@router.post("", response_model=MessageOut)
async def write_message(
    body: MessageIn,
    background_tasks: BackgroundTasks,
    host: str = Depends(get_host),
    current_user: str | None = Cookie(default=None, alias="currentUser"),
    engine: AssistantEngine = Depends(get_engine),
) -> MessageOut:
    """
    Send a message to the assistant.

    ``/imagine`` at the start of the query triggers image generation; with
    images in the body the images are edited instead.

    Raises:
        HTTPException 503: If the session store is unavailable
        HTTPException 502: If the language model could not answer
    """
    request = TurnRequest(
        utterance=body.query,
        tenant=host,
        session_id=body.id,
        user_identity=current_user,
        images=body.images,
        page_context=body.current_page_content,
    )

    try:
        result = await engine.handle_turn(request)
    except SessionStoreUnavailable as e:
        logger.error(f"Session store unavailable: {e}", extra={"session_id": body.id, "host": host})
        raise HTTPException(status_code=503, detail="Conversation history is unavailable") from e
    except ModelServiceUnavailable as e:
        logger.error(f"Model service unavailable: {e}", extra={"session_id": body.id, "host": host})
        raise HTTPException(status_code=502, detail="Assistant is unavailable") from e

    background_tasks.add_task(engine.record_usage, current_user, result.capabilities_used)
    return MessageOut(result=result)


@router.get("/history/{session_id}", response_model=HistoryOut)
async def get_history(
    session_id: str,
    engine: AssistantEngine = Depends(get_engine),
) -> HistoryOut:
    """Stored turns of a session, oldest first."""
    try:
        items = await engine.get_history(session_id)
    except SessionStoreUnavailable as e:
        raise HTTPException(status_code=503, detail="Conversation history is unavailable") from e
    return HistoryOut(result=items)


@router.get("/search", response_model=list[RetrievalDocument])
async def search_all_sites(
    query: str = Query(..., min_length=1),
    limit: int = Query(default=10, ge=1, le=50),
    engine: AssistantEngine = Depends(get_engine),
) -> list[RetrievalDocument]:
    """Platform-wide knowledge search across every tenant collection."""
    return await engine.search_all_tenants(query, limit)
