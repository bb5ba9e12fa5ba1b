"""
Embedding generation via an OpenAI-compatible embeddings endpoint.

The gateway (OpenRouter by default) exposes `/embeddings`; texts are sent
in batches and the vectors are returned as a float32 matrix in input order.
"""

import logging
from typing import Optional

import httpx
import numpy as np
from numpy.typing import NDArray

from omsagent.config import settings

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """
    Generate embeddings using an OpenAI-compatible API.

    Example:
        >>> embedder = EmbeddingClient()
        >>> vectors = embedder.embed_texts(["How does allocation work?"])
        >>> vectors.shape
        (1, 1536)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        dimension: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the embedder.

        Args:
            model: Embedding model ID (default from settings)
            api_key: Gateway API key (default from settings)
            base_url: Gateway base URL (default from settings)
            batch_size: Number of texts per API call
            dimension: Expected vector dimension
            timeout: Request timeout in seconds
        """
        self.model = model or settings.embedding_model
        self.api_key = api_key or settings.llm_api_key_value
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.batch_size = batch_size or settings.embedding_batch_size
        self.dimension = dimension or settings.embedding_dimension
        self.timeout = timeout or settings.request_timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}/embeddings"

    def embed_texts(self, texts: list[str]) -> NDArray[np.float32]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of texts to embed

        Returns:
            Array of shape (len(texts), embedding_dimension)

        Raises:
            httpx.HTTPStatusError: If the API returns a non-success status
            httpx.HTTPError: If a network error occurs
            ValueError: If the API returns the wrong number or size of vectors
        """
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        all_embeddings: list[NDArray[np.float32]] = []

        with httpx.Client(timeout=self.timeout) as client:
            for i in range(0, len(texts), self.batch_size):
                batch = texts[i : i + self.batch_size]
                all_embeddings.append(self._embed_batch(client, batch))

        return np.vstack(all_embeddings)

    def _embed_batch(self, client: httpx.Client, texts: list[str]) -> NDArray[np.float32]:
        """
        Embed a single batch of texts.

        Args:
            client: Open HTTP client
            texts: List of texts to embed (should be <= batch_size)

        Returns:
            Array of embeddings in input order
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self.model, "input": texts}

        response = client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()

        # The API may return items out of order; "index" maps back to the input
        data = sorted(response.json()["data"], key=lambda item: item.get("index", 0))
        if len(data) != len(texts):
            raise ValueError(
                f"Embedding API returned {len(data)} vectors for {len(texts)} inputs"
            )

        embeddings = np.array([item["embedding"] for item in data], dtype=np.float32)
        if embeddings.shape[1] != self.dimension:
            raise ValueError(
                f"Embeddings must have dimension {self.dimension}, "
                f"got {embeddings.shape[1]}"
            )

        logger.debug(f"Embedded batch of {len(texts)} texts with {self.model}")
        return embeddings

    def embed_query(self, query: str) -> NDArray[np.float32]:
        """
        Generate embedding for a single query.

        Args:
            query: Query text

        Returns:
            Array of shape (embedding_dimension,)
        """
        result = self.embed_texts([query])
        return result[0]
