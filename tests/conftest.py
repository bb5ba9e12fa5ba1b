"""
Pytest configuration and shared fixtures.

Provides common fixtures for:
    - Configuration with test values
    - Scripted LLM replies
    - Fake Supabase store and embedding clients
    - Sample knowledge base documents
"""

import json
from pathlib import Path
from typing import Any, Optional
from unittest.mock import patch

import numpy as np
import pytest

from omsagent.graph.state import Message, ToolCall
from omsagent.retrieval.store import SearchResult


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """Provide test settings without requiring .env file."""
    with patch.dict(
        "os.environ",
        {
            "LLM_API_KEY": "test-api-key",
            "LLM_BASE_URL": "https://gateway.test/api/v1/",
            "LLM_MODEL": "test/chat-model",
            "SUPABASE_URL": "https://project.supabase.test",
            "SUPABASE_KEY": "test-service-key",
            "CHUNK_SIZE": "500",
            "CHUNK_OVERLAP": "50",
        },
    ):
        from omsagent.config import Settings
        yield Settings()


# =============================================================================
# Fake Upstream Clients
# =============================================================================

class ScriptedLLM:
    """Chat client that returns pre-scripted replies and records every call."""

    def __init__(self, replies: list[Optional[Message]]):
        self.replies = list(replies)
        self.calls: list[list[Message]] = []
        self.tools_seen: list[Any] = []

    def complete(self, messages, tools=None, temperature=None):
        self.calls.append(list(messages))
        self.tools_seen.append(tools)
        return self.replies.pop(0)


class RepeatingLLM:
    """Chat client that requests the same tool call on every round."""

    def __init__(self, call_name: str = "execute_oms_query"):
        self.call_name = call_name
        self.calls = 0

    def complete(self, messages, tools=None, temperature=None):
        self.calls += 1
        return Message(
            role="assistant",
            content=None,
            tool_calls=[
                ToolCall(
                    id=f"call_{self.calls}",
                    name=self.call_name,
                    arguments=json.dumps({"query": "SELECT 1"}),
                )
            ],
        )


class FakeEmbedder:
    """Embedding client that returns deterministic unit vectors."""

    def __init__(self, dimension: int = 8):
        self.dimension = dimension
        self.texts: list[str] = []

    def embed_texts(self, texts: list[str]):
        self.texts.extend(texts)
        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for i in range(len(texts)):
            vectors[i, i % self.dimension] = 1.0
        return vectors

    def embed_query(self, query: str):
        return self.embed_texts([query])[0]


class FakeStore:
    """In-memory stand-in for SupabaseStore."""

    def __init__(
        self,
        rows: Any = None,
        matches: Optional[list[SearchResult]] = None,
    ):
        self.rows = [{"count": 8}] if rows is None else rows
        self.matches = matches or []
        self.queries: list[str] = []
        self.match_calls: list[dict[str, Any]] = []
        self.stored: list[dict[str, Any]] = []

    def execute_query(self, sql: str):
        self.queries.append(sql)
        return self.rows

    def match_documents(self, query_embedding, match_count=5, threshold=0.5):
        self.match_calls.append(
            {"embedding": list(query_embedding), "match_count": match_count, "threshold": threshold}
        )
        return list(self.matches)

    def store_chunk(self, content, metadata, embedding):
        self.stored.append({"content": content, "metadata": metadata, "embedding": embedding})

    def list_documents(self, include_embeddings=False):
        return [
            {"id": i, "content": doc["content"], "metadata": doc["metadata"]}
            for i, doc in enumerate(self.stored)
        ]

    def category_stats(self):
        categories: dict[str, int] = {}
        for doc in self.stored:
            category = doc["metadata"].get("category", "unknown")
            categories[category] = categories.get(category, 0) + 1
        return {"total_documents": len(self.stored), "categories": categories}


def assistant_text(content: str) -> Message:
    return Message(role="assistant", content=content)


def assistant_calls(*calls: tuple[str, str, dict[str, Any]]) -> Message:
    """Build an assistant message requesting (id, name, arguments) tool calls."""
    return Message(
        role="assistant",
        content=None,
        tool_calls=[ToolCall(id=cid, name=name, arguments=json.dumps(args)) for cid, name, args in calls],
    )


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm([reply, ...]) -> ScriptedLLM."""
    return ScriptedLLM


@pytest.fixture
def repeating_llm() -> RepeatingLLM:
    return RepeatingLLM()


@pytest.fixture
def text_reply():
    return assistant_text


@pytest.fixture
def calls_reply():
    return assistant_calls


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def tool_context(fake_store, fake_embedder):
    """ToolContext wired to the in-memory fakes."""
    from omsagent.tools import ToolContext

    return ToolContext(store=fake_store, embedder=fake_embedder)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def system_history() -> list[Message]:
    return [Message.system("You are the Meteo OMS AI Assistant.")]


@pytest.fixture
def sample_results() -> list[SearchResult]:
    return [
        SearchResult(
            id="1",
            content="Orders stay in Allocated until a release is created.",
            similarity=0.91,
            metadata={"source": "order-status-flow.md", "category": "process"},
        ),
        SearchResult(
            id="2",
            content="If a release never reaches the store, check the carrier code.",
            similarity=0.82,
            metadata={"source": "troubleshooting.md", "category": "troubleshooting"},
        ),
    ]


@pytest.fixture
def sample_markdown_files() -> dict[str, str]:
    """Provide sample OMS knowledge base content."""
    return {
        "order-status-flow.md": """# Order Status Flow

Orders move from Allocated to Released once a release is created.

Released orders are picked in store and then Fulfilled on delivery.
""",
        "troubleshooting.md": """# Troubleshooting

An order stuck in Allocated usually has no release record.

Check oms.releases for the order_id before escalating.
""",
        "faq.md": "# FAQ\n\nStores 004, 005 and 007 report inventory hourly.\n",
    }


@pytest.fixture
def tmp_knowledge_dir(tmp_path: Path, sample_markdown_files) -> Path:
    """Provide temporary directory with sample markdown files."""
    knowledge_dir = tmp_path / "knowledge"
    knowledge_dir.mkdir()

    for filename, content in sample_markdown_files.items():
        (knowledge_dir / filename).write_text(content, encoding="utf-8")

    (knowledge_dir / "notes.txt").write_text("not markdown", encoding="utf-8")
    return knowledge_dir
