"""
Pydantic models for API request and response schemas.

These models provide automatic validation and OpenAPI documentation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Request schema for the /chat endpoint."""

    message: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="Operator question or instruction",
        examples=["Why is order PRE_SEK-20260206-B00119 stuck in Allocated?"],
    )
    session_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Existing session id; a new session is created if omitted",
    )


class ChatResponse(BaseModel):
    """Response schema for the /chat endpoint."""

    response: str = Field(description="The agent's answer")
    session_id: str = Field(description="Session id to send with follow-up messages")
    rounds: int = Field(ge=0, description="Model/tool rounds used for this turn")


class DeleteSessionResponse(BaseModel):
    deleted: bool = Field(description="Whether a session with this id existed")


class IngestRequest(BaseModel):
    """Request schema for the /ingest endpoint."""

    content: str = Field(..., min_length=1, description="Document text to ingest")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata copied onto every chunk (source, category, title)",
        examples=[{"source": "troubleshooting.md", "category": "troubleshooting"}],
    )


class IngestResponse(BaseModel):
    success: bool = True
    chunks_stored: int = Field(ge=0, description="Number of chunks written")


class SearchRequest(BaseModel):
    """Request schema for the /search endpoint."""

    query: str = Field(..., min_length=1, max_length=1000)
    match_count: Optional[int] = Field(default=None, ge=1, le=50)
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class SearchResultSchema(BaseModel):
    id: str
    content: str
    similarity: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    results: list[SearchResultSchema] = Field(default_factory=list)


class KnowledgeStatsResponse(BaseModel):
    total_documents: int
    categories: dict[str, int]


class HealthResponse(BaseModel):
    """Response schema for the /health endpoint."""

    status: str = Field(
        description="Health status",
        examples=["ok"],
    )
    model: str = Field(description="Chat model used by the agent")
    sessions: int = Field(ge=0, description="Number of active sessions")


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: str = Field(
        description="Error code",
        examples=["upstream_error", "internal_error"],
    )
    message: str = Field(
        description="Human-readable error message",
    )
