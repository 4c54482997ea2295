# =============================================================================
# Unit Tests — Embedder
# =============================================================================
#
# The OpenAI client is mocked; no embedding server is contacted.
# =============================================================================

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from pdf_chat.services import embedder as embedder_module
from pdf_chat.services.embedder import OpenAIEmbedder


def _response(vectors_by_index: dict[int, list[float]]):
    """Fake embeddings response; items deliberately out of order."""
    data = [
        SimpleNamespace(index=i, embedding=v)
        for i, v in sorted(vectors_by_index.items(), reverse=True)
    ]
    return SimpleNamespace(data=data)


def _make_embedder(mock_openai_cls, **kwargs) -> OpenAIEmbedder:
    client = MagicMock()
    mock_openai_cls.return_value = client
    defaults = {"model": "test-model", "base_url": "http://localhost:11434/v1",
                "api_key": "key"}
    defaults.update(kwargs)
    return OpenAIEmbedder(**defaults)


class TestOpenAIEmbedder:
    @patch("pdf_chat.services.embedder.OpenAI")
    def test_preserves_input_order(self, mock_openai_cls):
        embedder = _make_embedder(mock_openai_cls, batch_size=10)
        embedder._client.embeddings.create.return_value = _response(
            {0: [0.0], 1: [1.0], 2: [2.0]}
        )

        vectors = embedder.embed_documents(["a", "b", "c"])

        assert vectors == [[0.0], [1.0], [2.0]]

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_batches_requests(self, mock_openai_cls):
        embedder = _make_embedder(mock_openai_cls, batch_size=2)
        embedder._client.embeddings.create.side_effect = [
            _response({0: [0.0], 1: [1.0]}),
            _response({0: [2.0]}),
        ]

        vectors = embedder.embed_documents(["a", "b", "c"])

        assert vectors == [[0.0], [1.0], [2.0]]
        assert embedder._client.embeddings.create.call_count == 2
        second = embedder._client.embeddings.create.call_args_list[1].kwargs
        assert second["input"] == ["c"]

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_empty_input_makes_no_call(self, mock_openai_cls):
        embedder = _make_embedder(mock_openai_cls)
        assert embedder.embed_documents([]) == []
        embedder._client.embeddings.create.assert_not_called()

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_dimensions_sent_only_when_set(self, mock_openai_cls):
        embedder = _make_embedder(mock_openai_cls)
        embedder.dimensions = None
        embedder._client.embeddings.create.return_value = _response({0: [1.0]})
        embedder.embed_query("q")
        assert "dimensions" not in embedder._client.embeddings.create.call_args.kwargs

        embedder.dimensions = 256
        embedder.embed_query("q")
        assert embedder._client.embeddings.create.call_args.kwargs["dimensions"] == 256

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_embed_query_returns_single_vector(self, mock_openai_cls):
        embedder = _make_embedder(mock_openai_cls)
        embedder._client.embeddings.create.return_value = _response({0: [0.5, 0.5]})

        assert embedder.embed_query("hello") == [0.5, 0.5]

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_local_server_gets_placeholder_key(self, mock_openai_cls):
        settings = embedder_module.settings
        with patch.object(settings, "embedding_api_key", None), \
                patch.object(settings, "openai_api_key", ""):
            OpenAIEmbedder(base_url="http://localhost:11434/v1")

        kwargs = mock_openai_cls.call_args.kwargs
        assert kwargs["api_key"] == "ollama"
        assert kwargs["base_url"] == "http://localhost:11434/v1"

    @patch("pdf_chat.services.embedder.OpenAI")
    def test_missing_key_without_base_url_raises(self, mock_openai_cls):
        settings = embedder_module.settings
        with patch.object(settings, "embedding_api_key", None), \
                patch.object(settings, "openai_api_key", ""), \
                patch.object(settings, "embedding_base_url", None):
            with pytest.raises(ValueError, match="API key"):
                OpenAIEmbedder()
