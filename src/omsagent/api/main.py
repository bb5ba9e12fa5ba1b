"""
FastAPI application for the OMS agent REST API.

Run with:
    uvicorn omsagent.api.main:app --reload

Or use the CLI:
    omsagent serve
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

import httpx
import requests
from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from omsagent import __version__
from omsagent.api.models import (
    ChatRequest,
    ChatResponse,
    DeleteSessionResponse,
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    KnowledgeStatsResponse,
    SearchRequest,
    SearchResponse,
    SearchResultSchema,
)
from omsagent.config import configure_logging, settings
from omsagent.retrieval.graph_data import GraphData
from omsagent.retrieval.store import StoreError
from omsagent.service import AgentService

logger = logging.getLogger(__name__)

UPSTREAM_ERRORS = (httpx.HTTPError, requests.RequestException, StoreError)

ERROR_RESPONSES = {
    500: {"model": ErrorResponse, "description": "Internal error"},
    502: {"model": ErrorResponse, "description": "Upstream gateway or store failure"},
}


@lru_cache(maxsize=1)
def get_service() -> AgentService:
    """Shared AgentService used by every request."""
    return AgentService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Configure logging
        - Log the upstream endpoints in use
    """
    configure_logging()
    logger.info(f"OMS agent starting (model: {settings.llm_model})")
    logger.info(f"Supabase: {settings.supabase_url}")

    yield

    logger.info("Shutting down OMS agent...")


def _fail(exc: Exception, operation: str) -> HTTPException:
    """Map an exception from the service layer to an HTTP error."""
    logger.error(f"{operation} error: {exc}")
    if isinstance(exc, UPSTREAM_ERRORS):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "upstream_error", "message": str(exc)},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "internal_error", "message": str(exc)},
    )


router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(service: AgentService = Depends(get_service)) -> HealthResponse:
    """Liveness check with the configured model and active session count."""
    return HealthResponse(status="ok", model=settings.llm_model, sessions=service.session_count)


@router.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES, tags=["Agent"])
def chat_endpoint(
    request: ChatRequest,
    service: AgentService = Depends(get_service),
) -> ChatResponse:
    """
    Send a message to the agent.

    The agent may run several model/tool rounds (SQL queries and knowledge
    base searches) before answering.

    Raises:
        HTTPException: 502 if the LLM gateway or Supabase fails
        HTTPException: 500 for any other failure
    """
    try:
        reply = service.chat(request.session_id, request.message)
    except Exception as e:
        raise _fail(e, "Chat") from e

    return ChatResponse(response=reply.response, session_id=reply.session_id, rounds=reply.rounds)


@router.delete("/session/{session_id}", response_model=DeleteSessionResponse, tags=["Agent"])
def delete_session(
    session_id: str,
    service: AgentService = Depends(get_service),
) -> DeleteSessionResponse:
    """Forget a conversation."""
    return DeleteSessionResponse(deleted=service.delete_session(session_id))


@router.post("/ingest", response_model=IngestResponse, responses=ERROR_RESPONSES, tags=["Knowledge"])
def ingest_endpoint(
    request: IngestRequest,
    service: AgentService = Depends(get_service),
) -> IngestResponse:
    """Chunk, embed and store a document in the knowledge base."""
    try:
        result = service.ingest(request.content, request.metadata)
    except Exception as e:
        raise _fail(e, "Ingest") from e

    return IngestResponse(success=True, chunks_stored=result.chunks_stored)


@router.post("/search", response_model=SearchResponse, responses=ERROR_RESPONSES, tags=["Knowledge"])
def search_endpoint(
    request: SearchRequest,
    service: AgentService = Depends(get_service),
) -> SearchResponse:
    """Semantic search over the knowledge base."""
    try:
        results = service.search(request.query, request.match_count, request.threshold)
    except Exception as e:
        raise _fail(e, "Search") from e

    return SearchResponse(
        results=[
            SearchResultSchema(
                id=r.id, content=r.content, similarity=r.similarity, metadata=r.metadata
            )
            for r in results
        ]
    )


@router.get(
    "/knowledge/stats",
    response_model=KnowledgeStatsResponse,
    responses=ERROR_RESPONSES,
    tags=["Knowledge"],
)
def knowledge_stats(service: AgentService = Depends(get_service)) -> KnowledgeStatsResponse:
    """Chunk counts per knowledge base category."""
    try:
        stats = service.knowledge_stats()
    except Exception as e:
        raise _fail(e, "Stats") from e

    return KnowledgeStatsResponse(**stats)


@router.get("/graph-data", response_model=GraphData, responses=ERROR_RESPONSES, tags=["Knowledge"])
def graph_data(service: AgentService = Depends(get_service)) -> GraphData:
    """Knowledge base nodes and links for the graph visualizer."""
    try:
        return service.graph_data()
    except Exception as e:
        raise _fail(e, "Graph data") from e


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Meteo OMS Agent",
        description="Tool-calling assistant over the OMS database and knowledge base",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware (the graph visualizer is served from another origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


# Create app instance
app = create_app()
