"""
OMS Agent: Tool-calling assistant for order management operations

This package provides a chat agent that answers operator questions about a
Meteo OMS dataset by interleaving read-only SQL queries against Supabase
with semantic search over an ingested knowledge base.

Key Components:
    - retrieval: Chunking, embeddings, Supabase store, ingestion, graph export
    - tools: Tool declarations, argument validation and dispatch
    - nodes: LangGraph nodes (model, tools)
    - graph: LangGraph workflow definition and state management
    - sessions: Session registry with pluggable eviction
    - service: Host-facing chat/ingest/search operations
    - api: FastAPI REST endpoints

Example:
    >>> from omsagent.service import AgentService
    >>> reply = AgentService().chat(None, "How many orders are Allocated?")
    >>> print(reply.response)
"""

__version__ = "0.1.0"

from omsagent.config import settings

__all__ = [
    "__version__",
    "settings",
]
