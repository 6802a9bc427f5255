"""Pydantic schemas for assistant turns, history and retrieval."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TurnRole(str, Enum):
    """Author of a conversation turn."""

    SYSTEM = "system"
    HUMAN = "human"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ConversationTurn(BaseModel):
    """One immutable entry of a session's message log."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str
    tool_call_id: str | None = None
    # Capability names invoked while producing an assistant turn
    capabilities_used: list[str] = Field(default_factory=list)


class DerivedFrom(str, Enum):
    """Retrieval lane a document came from."""

    CURATED_QA = "curated-qa"
    VECTOR = "vector"


class RetrievalDocument(BaseModel):
    """A ranked knowledge hit. Higher score is better, lower distance is better."""

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_collection: str
    relevance_score: float | None = None
    distance: float | None = None
    derived_from: DerivedFrom = DerivedFrom.VECTOR


class TurnRequest(BaseModel):
    """Input to one assistant turn."""

    utterance: str = Field(..., min_length=1)
    tenant: str
    session_id: str
    user_identity: str | None = None
    images: list[str] = Field(default_factory=list)
    page_context: str | None = None


class TurnResult(BaseModel):
    """Output of one assistant turn."""

    answer: str
    capabilities_used: list[str] = Field(default_factory=list)


class HistoryItem(BaseModel):
    """Presentation form of a stored turn."""

    id: str
    text: str
    role: TurnRole


# HTTP payloads


class MessageIn(BaseModel):
    """Request body for posting a message to the assistant."""

    query: str = Field(..., min_length=1)
    id: str = Field(..., description="Session id chosen by the client")
    images: list[str] = Field(default_factory=list)
    current_page_content: str | None = Field(default=None, alias="currentPageContent")

    model_config = ConfigDict(populate_by_name=True)


class MessageOut(BaseModel):
    """Assistant answer returned to the HTTP client."""

    result: TurnResult


class HistoryOut(BaseModel):
    """Stored turns of a session."""

    result: list[HistoryItem]
