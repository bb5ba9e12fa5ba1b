"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Use a .env file for local development.

Environment Variables:
    LLM_API_KEY: API key for the OpenAI-compatible gateway (OpenRouter)
    LLM_BASE_URL: Base URL of the gateway
    LLM_MODEL: Chat model used by the agent
    EMBEDDING_MODEL: Embedding model used for the knowledge base
    SUPABASE_URL: Supabase project URL
    SUPABASE_KEY: Supabase service key
    CHUNK_SIZE: Character size for document chunks
    CHUNK_OVERLAP: Overlap between chunks
    MAX_TOOL_ROUNDS: Round cap for the tool-calling loop
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # LLM Gateway (OpenAI-compatible, used for chat and embeddings)
    # ==========================================================================
    llm_api_key: Optional[SecretStr] = Field(
        default=None,
        description="API key for the OpenAI-compatible gateway",
    )
    llm_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible gateway",
    )
    llm_model: str = Field(
        default="anthropic/claude-sonnet-4",
        description="Chat completion model used by the agent",
    )
    llm_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Temperature for LLM generation (lower = more deterministic)",
    )
    llm_max_tokens: int = Field(
        default=2048,
        ge=1,
        le=16384,
        description="Maximum tokens for LLM response",
    )

    # ==========================================================================
    # Embeddings
    # ==========================================================================
    embedding_model: str = Field(
        default="openai/text-embedding-3-small",
        description="Embedding model for document/query embeddings",
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Dimension of embedding vectors (must match model and table)",
    )
    embedding_batch_size: int = Field(
        default=64,
        ge=1,
        le=2048,
        description="Number of texts per embedding request",
    )

    # ==========================================================================
    # Supabase
    # ==========================================================================
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Supabase project URL",
    )
    supabase_key: Optional[SecretStr] = Field(
        default=None,
        description="Supabase service role key",
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0.0,
        description="Timeout in seconds for every upstream HTTP call",
    )

    # ==========================================================================
    # Chunking Configuration
    # ==========================================================================
    chunk_size: int = Field(
        default=800,
        ge=100,
        le=8000,
        description="Target size in characters for document chunks",
    )
    chunk_overlap: int = Field(
        default=120,
        ge=0,
        le=2000,
        description="Characters carried over between consecutive chunks",
    )

    # ==========================================================================
    # Retrieval Configuration
    # ==========================================================================
    search_match_count: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of knowledge base matches to retrieve",
    )
    similarity_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for retrieved chunks",
    )
    graph_similarity_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum source-to-source similarity for graph links",
    )

    # ==========================================================================
    # Agent Configuration
    # ==========================================================================
    max_tool_rounds: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum model/tool rounds per conversation turn",
    )
    enforce_query_limit: bool = Field(
        default=False,
        description="Rewrite SQL queries so they never return more than max_query_rows",
    )
    max_query_rows: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Row cap suggested to (or enforced on) the query tool",
    )
    session_ttl_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Evict sessions idle for longer than this (unset = never)",
    )
    max_sessions: Optional[int] = Field(
        default=None,
        ge=1,
        description="Evict least recently used sessions beyond this count (unset = unbounded)",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind API server",
    )
    api_port: int = Field(
        default=3001,
        ge=1,
        le=65535,
        description="Port for API server",
    )

    # ==========================================================================
    # Observability Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # ==========================================================================
    # Data Paths
    # ==========================================================================
    knowledge_dir: Path = Field(
        default=Path("knowledge"),
        description="Directory with markdown files used to seed the knowledge base",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int, info) -> int:
        """Ensure overlap is less than chunk size."""
        chunk_size = info.data.get("chunk_size", 800)
        if v >= chunk_size:
            raise ValueError(f"chunk_overlap ({v}) must be less than chunk_size ({chunk_size})")
        return v

    @field_validator("llm_base_url", "supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended directly."""
        return v.rstrip("/")

    @field_validator("knowledge_dir")
    @classmethod
    def resolve_path(cls, v: Path) -> Path:
        """Resolve paths to absolute paths."""
        return v.resolve()

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def llm_api_key_value(self) -> Optional[str]:
        """Get the actual gateway key value (use sparingly)."""
        if self.llm_api_key:
            return self.llm_api_key.get_secret_value()
        return None

    @property
    def supabase_key_value(self) -> Optional[str]:
        """Get the actual Supabase key value (use sparingly)."""
        if self.supabase_key:
            return self.supabase_key.get_secret_value()
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    Call `get_settings.cache_clear()` to reload settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Convenience alias
settings = get_settings()
