"""API router for assistant and statistics endpoints."""

from fastapi import APIRouter

from support_assistant.api import assistant, statistics

router = APIRouter()

router.include_router(assistant.router, prefix="/assistant", tags=["assistant"])
router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
