"""
Agent service: the surface the API and CLI talk to.

Wraps the session registry, the agent graph and the knowledge base
pipeline behind a handful of calls:
    - chat(session_id, message)
    - ingest(content, metadata)
    - search(query, match_count, threshold)
    - delete_session(session_id)
    - knowledge_stats() / graph_data()
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from omsagent.config import settings
from omsagent.graph.workflow import run_turn
from omsagent.retrieval.graph_data import GraphData, build_graph_data
from omsagent.retrieval.ingestion import IngestResult, ingest_document, search_documents
from omsagent.tools import ToolContext

if TYPE_CHECKING:
    from omsagent.llm.factory import LLMProtocol
    from omsagent.retrieval.embeddings import EmbeddingClient
    from omsagent.retrieval.store import SearchResult, SupabaseStore
    from omsagent.sessions import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    """The agent's answer to one user message."""

    session_id: str
    response: str
    rounds: int


class AgentService:
    """
    Host-facing agent operations.

    Every collaborator is optional; missing ones come from the shared
    resources in omsagent.resources.

    Example:
        >>> service = AgentService()
        >>> reply = service.chat(None, "How many orders are Allocated?")
        >>> reply.response
        'There are 8 orders in Allocated status.'
    """

    def __init__(
        self,
        registry: Optional["SessionRegistry"] = None,
        llm: Optional["LLMProtocol"] = None,
        store: Optional["SupabaseStore"] = None,
        embedder: Optional["EmbeddingClient"] = None,
        max_rounds: Optional[int] = None,
    ) -> None:
        from omsagent.resources import get_session_registry

        self.registry = registry if registry is not None else get_session_registry()
        self._llm = llm
        self._store = store
        self._embedder = embedder
        self.max_rounds = max_rounds or settings.max_tool_rounds

    @property
    def llm(self) -> "LLMProtocol":
        if self._llm is None:
            from omsagent.resources import get_llm

            self._llm = get_llm()
        return self._llm

    @property
    def store(self) -> "SupabaseStore":
        if self._store is None:
            from omsagent.resources import get_store

            self._store = get_store()
        return self._store

    @property
    def embedder(self) -> "EmbeddingClient":
        if self._embedder is None:
            from omsagent.resources import get_embedder

            self._embedder = get_embedder()
        return self._embedder

    def tool_context(self) -> ToolContext:
        return ToolContext(
            store=self.store,
            embedder=self.embedder,
            match_count=settings.search_match_count,
            similarity_threshold=settings.similarity_threshold,
            enforce_query_limit=settings.enforce_query_limit,
            max_query_rows=settings.max_query_rows,
        )

    def chat(self, session_id: Optional[str], message: str) -> ChatReply:
        """
        Send a user message to a session, creating the session if needed.

        The session log is replaced with the turn's log only when the turn
        completes; if the turn raises, the session is left as it was.
        A session evicted while its turn ran is put back with the new log;
        one deleted meanwhile stays deleted.

        Args:
            session_id: Existing or new session id (a fresh id if None)
            message: The user's message

        Returns:
            ChatReply with the session id, answer and rounds used
        """
        session = self.registry.get_or_create(session_id)
        short_id = session.session_id[:8]

        with session.lock:
            logger.info(f"[{short_id}] User: {message[:100]}")
            result = run_turn(
                session.messages,
                message,
                llm=self.llm,
                tool_context=self.tool_context(),
                max_rounds=self.max_rounds,
            )
            session.messages = result.messages
            if not self.registry.reattach(session):
                logger.info(f"[{short_id}] Session was deleted or replaced during the turn; log not kept")
            logger.info(f"[{short_id}] Agent: {result.answer[:100]}")

        return ChatReply(session_id=session.session_id, response=result.answer, rounds=result.rounds)

    def delete_session(self, session_id: str) -> bool:
        """Forget a session. Returns False if it did not exist."""
        return self.registry.delete(session_id)

    @property
    def session_count(self) -> int:
        return len(self.registry)

    def ingest(self, content: str, metadata: Optional[dict[str, Any]] = None) -> IngestResult:
        """Chunk, embed and store a document in the knowledge base."""
        return ingest_document(content, metadata or {}, embedder=self.embedder, store=self.store)

    def search(
        self,
        query: str,
        match_count: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> list["SearchResult"]:
        """Semantic search over the knowledge base."""
        return search_documents(
            query,
            match_count=match_count,
            threshold=threshold,
            embedder=self.embedder,
            store=self.store,
        )

    def knowledge_stats(self) -> dict[str, Any]:
        """Number of stored chunks, total and per category."""
        return self.store.category_stats()

    def graph_data(self, similarity_threshold: Optional[float] = None) -> GraphData:
        """Node/link data for the knowledge graph visualizer."""
        documents = self.store.list_documents(include_embeddings=True)
        return build_graph_data(
            documents,
            similarity_threshold=(
                settings.graph_similarity_threshold
                if similarity_threshold is None
                else similarity_threshold
            ),
        )
