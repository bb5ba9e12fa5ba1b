"""
Singleton resource management for upstream clients and the session registry.

Uses the same @lru_cache pattern as the config.py settings singleton so
every request in a process shares one embedder, one store client, one
LLM client and one session registry.

Usage:
    embedder = get_embedder()  # First call creates, subsequent calls reuse
    registry = get_session_registry()

    # In tests (reset cache)
    clear_resource_cache()
"""

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from omsagent.config import settings

if TYPE_CHECKING:
    from omsagent.llm.client import ChatCompletionClient
    from omsagent.retrieval.embeddings import EmbeddingClient
    from omsagent.retrieval.store import SupabaseStore
    from omsagent.sessions import SessionRegistry

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_embedder() -> "EmbeddingClient":
    """Get or create the global embedding client."""
    from omsagent.retrieval.embeddings import EmbeddingClient

    logger.info(f"Initializing embedding client for model: {settings.embedding_model}")
    return EmbeddingClient()


@lru_cache(maxsize=1)
def get_store() -> "SupabaseStore":
    """Get or create the global Supabase store client."""
    from omsagent.retrieval.store import SupabaseStore

    logger.info(f"Initializing Supabase store at {settings.supabase_url}")
    return SupabaseStore()


@lru_cache(maxsize=1)
def get_llm() -> "ChatCompletionClient":
    """Get or create the global chat completion client."""
    from omsagent.llm.factory import create_llm

    logger.info(f"Initializing chat client for model: {settings.llm_model}")
    return create_llm()


@lru_cache(maxsize=1)
def get_session_registry() -> "SessionRegistry":
    """
    Get or create the process-wide session registry.

    The eviction policy follows settings: a TTL policy when
    session_ttl_seconds is set, an LRU policy when max_sessions is set,
    both when both are set.
    """
    from omsagent.sessions import (
        CompositeEvictionPolicy,
        LRUEvictionPolicy,
        SessionRegistry,
        TTLEvictionPolicy,
    )

    policies = []
    if settings.session_ttl_seconds is not None:
        policies.append(TTLEvictionPolicy(settings.session_ttl_seconds))
    if settings.max_sessions is not None:
        policies.append(LRUEvictionPolicy(settings.max_sessions))

    if not policies:
        policy = None
    elif len(policies) == 1:
        policy = policies[0]
    else:
        policy = CompositeEvictionPolicy(policies)

    return SessionRegistry(eviction_policy=policy)


def clear_resource_cache() -> None:
    """
    Clear all cached resources.

    Used in tests to reset state between test cases.
    """
    get_embedder.cache_clear()
    get_store.cache_clear()
    get_llm.cache_clear()
    get_session_registry.cache_clear()
    logger.debug("Resource cache cleared")
