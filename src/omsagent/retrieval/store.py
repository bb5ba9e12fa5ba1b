"""
Supabase store adapter.

Talks to the Supabase PostgREST layer for:
    - Read-only SQL through the `execute_oms_query` RPC
    - Vector similarity search through the `match_documents` RPC
    - Chunk persistence into the `documents` table
    - Document listing and per-category statistics
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import httpx

from omsagent.config import settings

logger = logging.getLogger(__name__)

STATS_QUERY = (
    "SELECT metadata->>'category' as category, count(*) as count "
    "FROM documents GROUP BY 1"
)


class StoreError(RuntimeError):
    """Raised when Supabase rejects a persistence or search request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SearchResult:
    """A knowledge base chunk returned by similarity search."""

    id: str
    """Row identifier in the documents table."""

    content: str
    """The chunk text."""

    similarity: float
    """Cosine similarity to the query (0.0 to 1.0)."""

    metadata: dict[str, Any] = field(default_factory=dict)
    """Metadata stored at ingestion (source, category, chunk_index, ...)."""

    @property
    def source(self) -> str:
        return str(self.metadata.get("source") or "unknown")

    @property
    def category(self) -> Optional[str]:
        return self.metadata.get("category")


class SupabaseStore:
    """
    Client for the hosted Postgres REST layer.

    Example:
        >>> store = SupabaseStore()
        >>> store.execute_query("SELECT order_id FROM oms.orders LIMIT 1")
        [{'order_id': 'PRE_SEK-20260206-B00119'}]
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the store client.

        Args:
            url: Supabase project URL (default from settings)
            key: Supabase service key (default from settings)
            timeout: Request timeout in seconds
        """
        self.url = (url or settings.supabase_url).rstrip("/")
        self.key = key or settings.supabase_key_value
        self.timeout = timeout or settings.request_timeout

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self.key or "",
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def execute_query(self, sql: str) -> Any:
        """
        Run a read-only SQL statement through the `execute_oms_query` RPC.

        The caller is responsible for only passing SELECT statements.

        Args:
            sql: SQL text

        Returns:
            Rows as a list of dicts, or {"error": ...} if Supabase rejected
            the statement

        Raises:
            httpx.HTTPError: If a network error occurs
        """
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.rest_url}/rpc/execute_oms_query",
                json={"query_text": sql},
                headers=self._headers(prefer="return=representation"),
            )

        if response.is_error:
            logger.warning(f"Query rejected by Supabase ({response.status_code})")
            return {"error": f"Supabase error {response.status_code}: {response.text}"}

        return response.json()

    def match_documents(
        self,
        query_embedding: Sequence[float],
        match_count: int = 5,
        threshold: float = 0.5,
    ) -> list[SearchResult]:
        """
        Find the chunks most similar to an embedding.

        Args:
            query_embedding: Query vector
            match_count: Maximum number of results
            threshold: Minimum similarity score

        Returns:
            Results sorted by similarity, highest first

        Raises:
            StoreError: If the RPC returns a non-success status
        """
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.rest_url}/rpc/match_documents",
                json={
                    "query_embedding": [float(x) for x in query_embedding],
                    "match_threshold": threshold,
                    "match_count": match_count,
                },
                headers=self._headers(),
            )

        if response.is_error:
            raise StoreError(
                f"match_documents failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        results = [
            SearchResult(
                id=str(row.get("id", "")),
                content=row.get("content", ""),
                similarity=float(row.get("similarity", 0.0)),
                metadata=row.get("metadata") or {},
            )
            for row in response.json()
        ]
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results

    def store_chunk(
        self,
        content: str,
        metadata: dict[str, Any],
        embedding: Sequence[float],
    ) -> None:
        """
        Persist one chunk with its embedding.

        Raises:
            StoreError: If the insert returns a non-success status
        """
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.rest_url}/documents",
                json={
                    "content": content,
                    "metadata": metadata,
                    "embedding": [float(x) for x in embedding],
                },
                headers=self._headers(prefer="return=minimal"),
            )

        if response.is_error:
            raise StoreError(
                f"Failed to store document: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

    def list_documents(self, include_embeddings: bool = False) -> list[dict[str, Any]]:
        """
        Fetch stored chunks.

        Args:
            include_embeddings: Also return the embedding column

        Returns:
            Rows with id, content, metadata (and embedding)

        Raises:
            StoreError: If the request returns a non-success status
        """
        columns = "id,content,metadata"
        if include_embeddings:
            columns += ",embedding"

        with httpx.Client(timeout=self.timeout) as client:
            response = client.get(
                f"{self.rest_url}/documents",
                params={"select": columns},
                headers=self._headers(),
            )

        if response.is_error:
            raise StoreError(
                f"Failed to list documents: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    def category_stats(self) -> dict[str, Any]:
        """
        Count stored chunks per category.

        Uses an aggregate query when the RPC allows it, otherwise counts
        over the document metadata.

        Returns:
            {"total_documents": int, "categories": {category: count}}
        """
        rows = self.execute_query(STATS_QUERY)

        categories: dict[str, int] = {}
        if isinstance(rows, list):
            for row in rows:
                categories[row.get("category") or "unknown"] = int(row.get("count", 0))
        else:
            logger.info("Aggregate stats query unavailable, counting document metadata")
            for doc in self.list_documents():
                category = (doc.get("metadata") or {}).get("category") or "unknown"
                categories[category] = categories.get(category, 0) + 1

        return {"total_documents": sum(categories.values()), "categories": categories}
