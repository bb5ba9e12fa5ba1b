"""
FastAPI REST API for the OMS agent.

Endpoints:
    POST   /chat             - Send a message to the agent
    DELETE /session/{id}     - Forget a conversation
    POST   /ingest           - Add a document to the knowledge base
    POST   /search           - Semantic search over the knowledge base
    GET    /knowledge/stats  - Chunk counts per category
    GET    /graph-data       - Nodes and links for the graph visualizer
    GET    /health           - Health check
"""

from omsagent.api.main import app, create_app

__all__ = ["app", "create_app"]
