"""Unit tests for retrieval.embeddings module."""

import json

import httpx
import numpy as np
import pytest
from pytest_httpx import HTTPXMock

from omsagent.retrieval.embeddings import EmbeddingClient

BASE_URL = "https://gateway.test/api/v1"
EMBEDDINGS_URL = f"{BASE_URL}/embeddings"


def _embedder(**kwargs) -> EmbeddingClient:
    options = {
        "model": "openai/text-embedding-3-small",
        "api_key": "test-key",
        "base_url": BASE_URL,
        "batch_size": 16,
        "dimension": 4,
        "timeout": 5.0,
    }
    options.update(kwargs)
    return EmbeddingClient(**options)


def _data(vectors: list[list[float]], order: list[int] = None) -> dict:
    order = order if order is not None else list(range(len(vectors)))
    return {"data": [{"index": i, "embedding": vectors[i]} for i in order]}


@pytest.mark.unit
class TestEmbeddingClient:
    """Tests for EmbeddingClient class."""

    def test_init_with_defaults(self):
        """Initialization falls back to settings."""
        embedder = EmbeddingClient()

        assert embedder.model is not None
        assert embedder.batch_size >= 1
        assert embedder.dimension > 0
        assert embedder.url.endswith("/embeddings")

    def test_init_with_custom_values(self):
        embedder = _embedder(base_url=f"{BASE_URL}/", batch_size=8)

        assert embedder.api_key == "test-key"
        assert embedder.batch_size == 8
        assert embedder.url == EMBEDDINGS_URL

    def test_embed_texts_single_text(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, method="POST", json=_data([[0.1, 0.2, 0.3, 0.4]]))

        result = _embedder().embed_texts(["How does allocation work?"])

        assert isinstance(result, np.ndarray)
        assert result.shape == (1, 4)
        assert result.dtype == np.float32

    def test_embed_texts_sends_model_and_input(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[0.0] * 4, [1.0] * 4]))

        _embedder().embed_texts(["first", "second"])

        request = httpx_mock.get_request()
        assert json.loads(request.content) == {
            "model": "openai/text-embedding-3-small",
            "input": ["first", "second"],
        }
        assert request.headers["Authorization"] == "Bearer test-key"

    def test_embed_texts_restores_input_order(self, httpx_mock: HTTPXMock):
        vectors = [[0.0] * 4, [1.0] * 4, [2.0] * 4]
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data(vectors, order=[2, 0, 1]))

        result = _embedder().embed_texts(["a", "b", "c"])

        np.testing.assert_allclose(result[:, 0], [0.0, 1.0, 2.0])

    def test_embed_texts_batches_requests(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[1.0] * 4, [2.0] * 4]))
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[3.0] * 4]))

        result = _embedder(batch_size=2).embed_texts(["a", "b", "c"])

        assert result.shape == (3, 4)
        np.testing.assert_allclose(result[:, 0], [1.0, 2.0, 3.0])
        requests = httpx_mock.get_requests()
        assert [json.loads(r.content)["input"] for r in requests] == [["a", "b"], ["c"]]

    def test_embed_texts_empty_makes_no_request(self):
        result = _embedder().embed_texts([])

        assert result.shape == (0, 4)

    def test_embed_query_returns_vector(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[0.5, 0.5, 0.5, 0.5]]))

        result = _embedder().embed_query("stuck order")

        assert result.shape == (4,)

    def test_dimension_mismatch_raises(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[0.1, 0.2, 0.3]]))

        with pytest.raises(ValueError, match="dimension 4"):
            _embedder().embed_texts(["text"])

    def test_count_mismatch_raises(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, json=_data([[0.1] * 4]))

        with pytest.raises(ValueError, match="1 vectors for 2 inputs"):
            _embedder().embed_texts(["a", "b"])

    def test_http_error_propagates(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=EMBEDDINGS_URL, status_code=500, text="upstream down")

        with pytest.raises(httpx.HTTPStatusError):
            _embedder().embed_texts(["text"])
