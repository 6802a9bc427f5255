"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from support_assistant.api import router as api_router
from support_assistant.core.chat_turn import AssistantEngine
from support_assistant.core.config import get_settings
from support_assistant.core.logging import get_logger
from support_assistant.core.statistics_service import StatisticsService
from support_assistant.db.agent_statistics import AgentStatisticsRepository
from support_assistant.db.supabase_client import create_supabase

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine and the statistics reports once per process."""
    settings = get_settings()
    supabase = create_supabase(settings)
    app.state.engine = AssistantEngine.from_settings(settings, supabase=supabase)
    app.state.statistics = StatisticsService(AgentStatisticsRepository(supabase))
    logger.info("Support assistant started")

    yield

    await app.state.engine.aclose()


app = FastAPI(
    title="Support Assistant",
    description="Tool-calling support assistant with multi-source knowledge retrieval",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


app.include_router(api_router, prefix="/v1", tags=["v1"])
