"""
Knowledge base retrieval components.

Components:
    - chunker: Split documents into bounded, overlapping chunks
    - embeddings: Generate vector embeddings via the LLM gateway
    - store: Supabase SQL, similarity search and chunk persistence
    - ingestion: Chunk -> embed -> store pipeline and knowledge base search
    - graph_data: Node/link export for the knowledge graph visualizer
"""

from omsagent.retrieval.chunker import Chunk, chunk_text
from omsagent.retrieval.embeddings import EmbeddingClient
from omsagent.retrieval.ingestion import IngestResult, ingest_document, search_documents
from omsagent.retrieval.store import SearchResult, StoreError, SupabaseStore

__all__ = [
    "Chunk",
    "chunk_text",
    "EmbeddingClient",
    "IngestResult",
    "ingest_document",
    "search_documents",
    "SearchResult",
    "StoreError",
    "SupabaseStore",
]
