# =============================================================================
# LangGraph Orchestrator — Query Pipeline Assembly
# =============================================================================
#
# GRAPH TOPOLOGY:
#
#   START ──▶ retrieve ──┬──▶ generate ───▶ END
#                        └──▶ no_results ─▶ END     (zero hits)
#
# The no_results branch answers with a fixed message and never calls the
# LLM. A missing collection is not a branch: retrieve raises
# CollectionNotFound and the caller maps it to "no documents available".
#
# Plain TypedDict state, graph compiled once at module level and reused
# across concurrent requests. The pipeline is stateless across calls.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from pdf_chat.agents.analyst import (
    NO_RESULTS_MESSAGE,
    SourceSnippet,
    extract_sources,
    generate,
)
from pdf_chat.agents.search import retrieve
from pdf_chat.config import settings
from pdf_chat.services.embedder import Embedder
from pdf_chat.services.llm import LLMProvider, get_llm_provider
from pdf_chat.services.vectorstore import VectorSearchResult, VectorStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class AnswerResult:
    answer: str
    query: str
    sources: list[SourceSnippet] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "response": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "query": self.query,
        }


# ---------------------------------------------------------------------------
# Graph State Schema
# ---------------------------------------------------------------------------


class QueryState(TypedDict, total=False):
    """
    State that flows through the graph.

    total=False so nodes only return the keys they update.
    """

    # --- Input (set by caller) ---
    query: str
    corpus_id: str
    top_k: int

    # --- Client overrides ---
    # Not JSON-serialisable; fine while the graph has no checkpointer.
    llm_override: LLMProvider | None
    embedder_override: Embedder | None
    vector_store_override: VectorStore | None

    # --- Intermediate ---
    hits: list[VectorSearchResult]

    # --- Output ---
    answer: str
    sources: list[SourceSnippet]


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def retrieve_node(state: QueryState) -> dict:
    hits = await retrieve(
        query=state["query"],
        corpus_id=state["corpus_id"],
        top_k=state.get("top_k"),
        embedder=state.get("embedder_override"),
        vector_store=state.get("vector_store_override"),
    )
    return {"hits": hits}


async def no_results_node(state: QueryState) -> dict:
    logger.info("No matching records for query; skipping generation")
    return {"answer": NO_RESULTS_MESSAGE, "sources": []}


async def generate_node(state: QueryState) -> dict:
    llm = state.get("llm_override") or get_llm_provider()
    hits = state["hits"]
    answer_text = await generate(state["query"], hits, llm)
    return {"answer": answer_text, "sources": extract_sources(hits)}


def _route_after_retrieve(state: QueryState) -> str:
    return "generate" if state.get("hits") else "no_results"


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(QueryState)
_builder.add_node("retrieve", retrieve_node)
_builder.add_node("no_results", no_results_node)
_builder.add_node("generate", generate_node)

_builder.add_edge(START, "retrieve")
_builder.add_conditional_edges(
    "retrieve",
    _route_after_retrieve,
    {"generate": "generate", "no_results": "no_results"},
)
_builder.add_edge("no_results", END)
_builder.add_edge("generate", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def answer(
    query: str,
    corpus_id: str | None = None,
    top_k: int | None = None,
    llm: LLMProvider | None = None,
    embedder: Embedder | None = None,
    vector_store: VectorStore | None = None,
) -> AnswerResult:
    """
    Answer a question from the corpus.

    Args:
        query: The user's question.
        corpus_id: Collection to search (default: settings.collection_name).
        top_k: Records to retrieve (default: settings.retrieval_top_k).
        llm, embedder, vector_store: Optional client overrides; the
            configured singletons are used otherwise.

    Raises:
        CollectionNotFound: Nothing has been ingested into the corpus.
        GenerationFailed: Embedding the question or generating failed.
    """
    initial_state: QueryState = {
        "query": query,
        "corpus_id": corpus_id or settings.collection_name,
        "top_k": top_k or settings.retrieval_top_k,
    }
    if llm is not None:
        initial_state["llm_override"] = llm
    if embedder is not None:
        initial_state["embedder_override"] = embedder
    if vector_store is not None:
        initial_state["vector_store_override"] = vector_store

    logger.info(
        "Invoking query graph: query='%s', corpus=%s",
        query[:80], initial_state["corpus_id"],
    )
    result = await graph.ainvoke(initial_state)

    return AnswerResult(
        answer=result["answer"],
        query=query,
        sources=list(result.get("sources", [])),
    )
