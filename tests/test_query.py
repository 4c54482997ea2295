# =============================================================================
# Unit Tests — Query Pipeline (retrieve → generate)
# =============================================================================
#
# In-memory Qdrant, the fake embedder and an AsyncMock LLM. No API keys.
# =============================================================================

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import MagicMock

import pytest

from pdf_chat.agents.analyst import (
    NO_RESULTS_MESSAGE,
    build_context,
    build_prompt,
    extract_sources,
)
from pdf_chat.agents.orchestrator import AnswerResult, answer
from pdf_chat.errors import CollectionNotFound, GenerationFailed, VectorStoreUnavailable
from pdf_chat.services.vectorstore import VectorRecord, VectorSearchResult


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _hit(text: str, **metadata) -> VectorSearchResult:
    return VectorSearchResult(record_id=str(uuid.uuid4()), text=text, score=0.9,
                              metadata=metadata)


def _seed(store, embedder, corpus_id: str, docs: list[tuple[str, str, int]]) -> None:
    """docs: (text, filename, page_number)"""
    store.ensure_collection(corpus_id, embedder.dim)
    store.upsert(corpus_id, [
        VectorRecord(
            record_id=str(uuid.uuid4()),
            vector=embedder.embed_query(text),
            text=text,
            metadata={"filename": filename, "page_number": page, "chunk_index": i},
        )
        for i, (text, filename, page) in enumerate(docs)
    ])


def _ask(query, store, embedder, llm, corpus_id) -> AnswerResult:
    return _run(answer(query, corpus_id=corpus_id, llm=llm, embedder=embedder,
                       vector_store=store))


# ---------------------------------------------------------------------------
# Test: Prompt Construction
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_context_blocks_numbered_from_one(self):
        context = build_context([
            _hit("first text", filename="a.pdf"),
            _hit("second text", filename="b.pdf"),
        ])
        assert context == (
            "Document 1 (a.pdf): first text\n\n"
            "Document 2 (b.pdf): second text"
        )

    def test_prompt_layout(self):
        prompt = build_prompt("What grew?", [_hit("Revenue grew", filename="a.pdf")])

        assert prompt.startswith(
            "Based on the following context from uploaded PDF documents"
        )
        assert "say so clearly" in prompt
        assert "Context:\nDocument 1 (a.pdf): Revenue grew\n\n" in prompt
        assert prompt.endswith("Question: What grew?\n\nAnswer:")


class TestExtractSources:
    def test_excerpt_is_truncated_with_ellipsis(self):
        [source] = extract_sources([_hit("x" * 500, filename="a.pdf", page_number=3)])

        assert source.content == "x" * 200 + "..."
        assert source.page == 3
        assert source.filename == "a.pdf"

    def test_short_text_still_gets_ellipsis(self):
        [source] = extract_sources([_hit("short", filename="a.pdf", page_number=1)])
        assert source.content == "short..."

    def test_missing_page_is_unknown(self):
        [source] = extract_sources([_hit("text", filename="a.pdf")])
        assert source.page == "Unknown"

    def test_order_follows_hits(self):
        sources = extract_sources([
            _hit("one", filename="a.pdf", page_number=2),
            _hit("two", filename="b.pdf", page_number=1),
        ])
        assert [s.filename for s in sources] == ["a.pdf", "b.pdf"]


# ---------------------------------------------------------------------------
# Test: Full Graph
# ---------------------------------------------------------------------------


class TestAnswer:
    def test_missing_collection(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        with pytest.raises(CollectionNotFound) as exc_info:
            _ask("anything?", qdrant_store, fake_embedder, fake_llm, corpus_id)

        assert exc_info.value.corpus_id == corpus_id
        fake_llm.complete.assert_not_awaited()
        assert fake_embedder.query_calls == []

    def test_zero_hits_skips_llm(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        qdrant_store.ensure_collection(corpus_id, fake_embedder.dim)

        result = _ask("anything?", qdrant_store, fake_embedder, fake_llm, corpus_id)

        assert result.answer == NO_RESULTS_MESSAGE
        assert result.sources == []
        assert fake_llm.complete.await_count == 0

    def test_answer_is_stripped(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        _seed(qdrant_store, fake_embedder, corpus_id, [("Revenue grew 15%", "a.pdf", 1)])

        result = _ask("How much did revenue grow?", qdrant_store, fake_embedder,
                      fake_llm, corpus_id)

        assert result.answer == "The answer."
        assert result.query == "How much did revenue grow?"

    def test_llm_called_once_with_grounded_prompt(
        self, qdrant_store, fake_embedder, fake_llm, corpus_id,
    ):
        _seed(qdrant_store, fake_embedder, corpus_id, [("Revenue grew 15%", "a.pdf", 1)])

        _ask("How much did revenue grow?", qdrant_store, fake_embedder, fake_llm, corpus_id)

        fake_llm.complete.assert_awaited_once()
        [prompt] = fake_llm.complete.call_args.args
        assert "Document 1 (a.pdf): Revenue grew 15%" in prompt
        assert "Question: How much did revenue grow?" in prompt

    def test_query_embedded_with_same_embedder(
        self, qdrant_store, fake_embedder, fake_llm, corpus_id,
    ):
        _seed(qdrant_store, fake_embedder, corpus_id, [("Revenue grew 15%", "a.pdf", 1)])
        fake_embedder.query_calls.clear()

        _ask("revenue?", qdrant_store, fake_embedder, fake_llm, corpus_id)

        assert fake_embedder.query_calls == ["revenue?"]

    def test_top_k_limits_sources(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        _seed(qdrant_store, fake_embedder, corpus_id, [
            (f"Fact number {i} about revenue", "a.pdf", i) for i in range(1, 6)
        ])

        result = _ask("revenue", qdrant_store, fake_embedder, fake_llm, corpus_id)

        assert len(result.sources) == 3

    def test_to_dict_shape(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        _seed(qdrant_store, fake_embedder, corpus_id, [("Revenue grew 15%", "a.pdf", 2)])

        body = _ask("revenue?", qdrant_store, fake_embedder, fake_llm, corpus_id).to_dict()

        assert set(body) == {"response", "sources", "query"}
        assert body["sources"][0] == {
            "filename": "a.pdf", "page": 2, "content": "Revenue grew 15%...",
        }

    def test_llm_failure(self, qdrant_store, fake_embedder, fake_llm, corpus_id):
        _seed(qdrant_store, fake_embedder, corpus_id, [("Revenue grew 15%", "a.pdf", 1)])
        fake_llm.complete.side_effect = ConnectionError("model server down")

        with pytest.raises(GenerationFailed):
            _ask("revenue?", qdrant_store, fake_embedder, fake_llm, corpus_id)

    def test_embedding_failure(self, qdrant_store, fake_llm, corpus_id):
        qdrant_store.ensure_collection(corpus_id, 4)
        embedder = MagicMock()
        embedder.embed_query.side_effect = TimeoutError("embedding timeout")

        with pytest.raises(GenerationFailed):
            _ask("revenue?", qdrant_store, embedder, fake_llm, corpus_id)
        fake_llm.complete.assert_not_awaited()


class TestVectorStoreFailures:
    def test_unreachable_when_opening_collection(self, fake_embedder, fake_llm, corpus_id):
        store = MagicMock()
        store.collection_exists.side_effect = ConnectionError("qdrant down")

        with pytest.raises(VectorStoreUnavailable, match="qdrant down"):
            _ask("revenue?", store, fake_embedder, fake_llm, corpus_id)
        assert fake_embedder.query_calls == []
        fake_llm.complete.assert_not_awaited()

    def test_search_failure(self, fake_embedder, fake_llm, corpus_id):
        store = MagicMock()
        store.collection_exists.return_value = True
        store.search.side_effect = ConnectionError("qdrant timeout")

        with pytest.raises(VectorStoreUnavailable, match="qdrant timeout"):
            _ask("revenue?", store, fake_embedder, fake_llm, corpus_id)
        fake_llm.complete.assert_not_awaited()
