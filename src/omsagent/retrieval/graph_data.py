"""
Knowledge base graph export for the force-directed visualizer.

Builds node/link data from stored chunks:
    - one "source" node per ingested file, one "chunk" node per chunk
    - "contains" links from each source to its chunks
    - "similarity" links between sources whose mean chunk embeddings are close
"""

import json
from collections import defaultdict
from typing import Any, Literal, Optional

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

CATEGORY_COLORS: dict[str, str] = {
    "schema": "#3b82f6",
    "process": "#22c55e",
    "troubleshooting": "#f59e0b",
    "inventory": "#a855f7",
    "uncategorized": "#6b7280",
}

SOURCE_NODE_SIZE = 8
CHUNK_NODE_SIZE = 3


class GraphNode(BaseModel):
    """A source document or chunk node."""

    id: str
    type: Literal["source", "chunk"]
    label: str
    category: str
    color: str
    chunkCount: Optional[int] = None
    totalChars: Optional[int] = None
    sourceId: Optional[str] = None
    contentLength: Optional[int] = None
    content: Optional[str] = None
    val: int = Field(description="Node size hint for the force layout")


class GraphLink(BaseModel):
    """An edge between two nodes."""

    source: str
    target: str
    type: Literal["contains", "similarity"]
    strength: float


class GraphStats(BaseModel):
    totalDocs: int
    totalSources: int
    categories: dict[str, str]


class GraphData(BaseModel):
    """Everything the visualizer needs to render the knowledge base."""

    nodes: list[GraphNode]
    links: list[GraphLink]
    stats: GraphStats


def color_for(category: str) -> str:
    return CATEGORY_COLORS.get(category, CATEGORY_COLORS["uncategorized"])


def _parse_embedding(raw: Any) -> Optional[NDArray[np.float32]]:
    """pgvector columns come back from PostgREST as '[0.1,0.2,...]' strings."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    return np.asarray(raw, dtype=np.float32)


def build_graph_data(
    documents: list[dict[str, Any]],
    similarity_threshold: float = 0.75,
) -> GraphData:
    """
    Build visualizer graph data from stored document rows.

    Args:
        documents: Rows with id, content, metadata and optionally embedding
        similarity_threshold: Minimum cosine similarity between two sources'
            mean embeddings for a "similarity" link

    Returns:
        GraphData with nodes, links and stats
    """
    by_source: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for doc in documents:
        metadata = doc.get("metadata") or {}
        by_source[str(metadata.get("source") or "unknown")].append(doc)

    nodes: list[GraphNode] = []
    links: list[GraphLink] = []
    categories: dict[str, str] = {}
    source_vectors: dict[str, NDArray[np.float32]] = {}

    for source, docs in by_source.items():
        first_meta = docs[0].get("metadata") or {}
        category = first_meta.get("category") or "uncategorized"
        categories[category] = color_for(category)
        source_id = f"source:{source}"

        nodes.append(
            GraphNode(
                id=source_id,
                type="source",
                label=first_meta.get("title") or source,
                category=category,
                color=color_for(category),
                chunkCount=len(docs),
                totalChars=sum(len(d.get("content") or "") for d in docs),
                val=SOURCE_NODE_SIZE,
            )
        )

        vectors = []
        ordered = sorted(docs, key=lambda d: (d.get("metadata") or {}).get("chunk_index", 0))
        for doc in ordered:
            metadata = doc.get("metadata") or {}
            content = doc.get("content") or ""
            chunk_id = f"chunk:{doc.get('id')}"
            nodes.append(
                GraphNode(
                    id=chunk_id,
                    type="chunk",
                    label=f"{first_meta.get('title') or source} #{metadata.get('chunk_index', 0)}",
                    category=category,
                    color=color_for(category),
                    sourceId=source_id,
                    contentLength=len(content),
                    content=content,
                    val=CHUNK_NODE_SIZE,
                )
            )
            links.append(
                GraphLink(source=source_id, target=chunk_id, type="contains", strength=1.0)
            )
            embedding = _parse_embedding(doc.get("embedding"))
            if embedding is not None:
                vectors.append(embedding)

        if vectors:
            source_vectors[source_id] = np.mean(np.vstack(vectors), axis=0)

    links.extend(_similarity_links(source_vectors, similarity_threshold))

    return GraphData(
        nodes=nodes,
        links=links,
        stats=GraphStats(
            totalDocs=len(documents),
            totalSources=len(by_source),
            categories=categories,
        ),
    )


def _similarity_links(
    source_vectors: dict[str, NDArray[np.float32]],
    threshold: float,
) -> list[GraphLink]:
    """Link every pair of sources whose mean embeddings are similar enough."""
    if len(source_vectors) < 2:
        return []

    ids = list(source_vectors)
    matrix = np.vstack([source_vectors[i] for i in ids])
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1, norms)
    normalized = matrix / norms
    similarities = normalized @ normalized.T

    links: list[GraphLink] = []
    for a in range(len(ids)):
        for b in range(a + 1, len(ids)):
            score = float(similarities[a, b])
            if score >= threshold:
                links.append(
                    GraphLink(
                        source=ids[a],
                        target=ids[b],
                        type="similarity",
                        strength=round(score, 3),
                    )
                )
    return links
