"""
Knowledge base ingestion and search.

Ingestion chunks a document, embeds every chunk in one batched call and
stores the chunks one by one. There is no transaction: if a store call
fails partway, the chunks already written stay written.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from omsagent.config import settings
from omsagent.retrieval.chunker import Chunk, chunk_text

if TYPE_CHECKING:
    from omsagent.retrieval.embeddings import EmbeddingClient
    from omsagent.retrieval.store import SearchResult, SupabaseStore

logger = logging.getLogger(__name__)

# Seed file stem -> knowledge base category
CATEGORY_MAP: dict[str, str] = {
    "oms-schema": "schema",
    "order-status-flow": "process",
    "troubleshooting": "troubleshooting",
    "inventory-guide": "inventory",
}
DEFAULT_CATEGORY = "general"


@dataclass
class IngestResult:
    """Outcome of ingesting one document."""

    chunks_stored: int


def build_chunks(
    content: str,
    metadata: dict[str, Any],
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
) -> list[Chunk]:
    """
    Chunk a document and attach enriched metadata to every chunk.

    Each chunk gets the caller's metadata plus its ordinal (`chunk_index`)
    and an ISO-8601 UTC ingestion timestamp (`ingested_at`).
    """
    texts = chunk_text(
        content,
        chunk_size=chunk_size or settings.chunk_size,
        overlap=settings.chunk_overlap if overlap is None else overlap,
    )
    return [
        Chunk(
            content=text,
            metadata={
                **metadata,
                "chunk_index": i,
                "ingested_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        for i, text in enumerate(texts)
    ]


def ingest_document(
    content: str,
    metadata: Optional[dict[str, Any]] = None,
    embedder: Optional["EmbeddingClient"] = None,
    store: Optional["SupabaseStore"] = None,
) -> IngestResult:
    """
    Chunk, embed and persist a document.

    Args:
        content: Document text
        metadata: Metadata copied onto every chunk (source, category, title)
        embedder: Embedding client (default: shared instance)
        store: Store client (default: shared instance)

    Returns:
        IngestResult with the number of chunks stored

    Raises:
        httpx.HTTPError: If the embedding call fails
        StoreError: If persisting a chunk fails
    """
    from omsagent.resources import get_embedder, get_store

    embedder = embedder or get_embedder()
    store = store or get_store()

    chunks = build_chunks(content, metadata or {})
    embeddings = embedder.embed_texts([chunk.content for chunk in chunks])

    for chunk, embedding in zip(chunks, embeddings):
        store.store_chunk(chunk.content, chunk.metadata, embedding.tolist())

    logger.info(
        f"Ingested {len(chunks)} chunks from {(metadata or {}).get('source', 'document')}"
    )
    return IngestResult(chunks_stored=len(chunks))


def search_documents(
    query: str,
    match_count: Optional[int] = None,
    threshold: Optional[float] = None,
    embedder: Optional["EmbeddingClient"] = None,
    store: Optional["SupabaseStore"] = None,
) -> list["SearchResult"]:
    """
    Embed a query and return the most similar knowledge base chunks.

    Args:
        query: Natural language query
        match_count: Maximum number of results (default from settings)
        threshold: Minimum similarity (default from settings)
        embedder: Embedding client (default: shared instance)
        store: Store client (default: shared instance)

    Returns:
        Results sorted by similarity, highest first
    """
    from omsagent.resources import get_embedder, get_store

    embedder = embedder or get_embedder()
    store = store or get_store()

    query_embedding = embedder.embed_query(query)
    return store.match_documents(
        query_embedding.tolist(),
        match_count=match_count or settings.search_match_count,
        threshold=settings.similarity_threshold if threshold is None else threshold,
    )


def category_for(path: Path) -> str:
    """Map a seed file to its knowledge base category."""
    return CATEGORY_MAP.get(path.stem, DEFAULT_CATEGORY)


def seed_knowledge_base(
    directory: Optional[Path] = None,
    embedder: Optional["EmbeddingClient"] = None,
    store: Optional["SupabaseStore"] = None,
) -> dict[str, int]:
    """
    Ingest every markdown file in a directory.

    Args:
        directory: Folder with *.md files (default: settings.knowledge_dir)
        embedder: Embedding client (default: shared instance)
        store: Store client (default: shared instance)

    Returns:
        Mapping of file name to chunks stored

    Raises:
        FileNotFoundError: If the directory does not exist
    """
    directory = Path(directory or settings.knowledge_dir)
    if not directory.is_dir():
        raise FileNotFoundError(f"Knowledge directory not found: {directory}")

    counts: dict[str, int] = {}
    for path in sorted(directory.glob("*.md")):
        category = category_for(path)
        logger.info(f"Ingesting {path.name} (category: {category})")
        result = ingest_document(
            path.read_text(encoding="utf-8"),
            {
                "source": path.name,
                "category": category,
                "title": path.stem.replace("-", " "),
            },
            embedder=embedder,
            store=store,
        )
        counts[path.name] = result.chunks_stored

    return counts
