"""
Tests for multi-hop retrieval: follow-up queries, dedup, termination and fallback.
"""

from __future__ import annotations

from typing import Callable, List

import pytest

from librarian.rag import (
    Fragment,
    MultiHopController,
    QueryExpander,
    RetrievalSession,
    ScoredResult,
    SearchEngine,
    extract_follow_up_query,
)
from librarian.rag.multihop import HopState, dedup_key


class _FakeRetriever:
    """Returns results from a callable and records every query it sees."""

    def __init__(self, produce: Callable[[str, int], List[ScoredResult]]):
        self.produce = produce
        self.search_queries: List[str] = []
        self.rerank_queries: List[str] = []

    async def search(self, query: str, top_k: int) -> List[ScoredResult]:
        self.search_queries.append(query)
        return self.produce(query, top_k)[:top_k]

    def rerank(self, query: str, results: List[ScoredResult], top_k: int) -> List[ScoredResult]:
        self.rerank_queries.append(query)
        return results[:top_k]


def _result(fid: str, text: str, source: str = "book.pdf", **meta) -> ScoredResult:
    return ScoredResult(fragment=Fragment(id=fid, text=text, source=source, **meta), score=1.0, source="hybrid")


# --- Follow-up extraction ---


def test_extract_follow_up_query_picks_frequent_new_terms():
    context = ["Foxes jumping jumping quickly foxes jumping over fences"]
    assert extract_follow_up_query("lazy", context) == "lazy jumping foxes quickly"


def test_extract_follow_up_query_skips_query_words_and_stopwords():
    context = ["treaty treaty treaty which which which which sovereignty"]
    assert extract_follow_up_query("Treaty terms", context) == "Treaty terms sovereignty"


def test_extract_follow_up_query_without_candidates_returns_original():
    assert extract_follow_up_query("cats", ["the cat sat on a mat"]) == "cats"


# --- Session ---


def test_session_dedups_by_source_and_prefix():
    session = RetrievalSession(original_query="q", current_query="q")
    prefix = "x" * 50
    assert session.add(_result("1", prefix + " first tail"))
    assert not session.add(_result("2", prefix + " second tail"))
    assert session.add(_result("3", prefix + " first tail", source="other.pdf"))
    assert len(session.context) == 2
    assert dedup_key(_result("9", "abc", source="s")) == "s:abc"


def test_session_formats_metadata_prefixes():
    session = RetrievalSession(original_query="q", current_query="q")
    session.add(_result("1", "Body text", section="Sec", chapter="Chap"))
    assert session.context == ["[Sec] [Chap] Body text"]


# --- Controller ---


@pytest.mark.anyio
async def test_first_hop_uses_expanded_query():
    retriever = _FakeRetriever(lambda q, k: [_result(str(i), f"passage {i} " + "x" * 60) for i in range(k)])
    expander = QueryExpander()
    controller = MultiHopController(retriever=retriever, expander=expander)

    await controller.run("war cause", max_hops=1, top_k=2)

    assert retriever.search_queries[0] == expander.expand("war cause")
    assert retriever.rerank_queries[0] == "war cause"


@pytest.mark.anyio
async def test_stops_when_no_new_direction():
    retriever = _FakeRetriever(lambda q, k: [_result("1", "the cat sat on a mat")])
    controller = MultiHopController(retriever=retriever, expander=QueryExpander(synonyms={}))

    context = await controller.run("cat facts", max_hops=5, top_k=3)

    assert context == ["the cat sat on a mat"]
    # one hop, then the two rephrasing variants as fallback
    assert retriever.search_queries == ["cat facts", "what is cat facts", "how does cat facts"]


@pytest.mark.anyio
async def test_follow_up_hops_use_derived_query():
    def produce(query: str, k: int) -> List[ScoredResult]:
        if "telescope" in query:
            return [_result("b", "Galileo improved the telescope design in Padua")]
        return [_result("a", "Astronomy telescope telescope observations")]

    retriever = _FakeRetriever(produce)
    controller = MultiHopController(retriever=retriever, expander=QueryExpander(synonyms={}))

    context = await controller.run("astronomy history", max_hops=2, top_k=2)

    assert retriever.search_queries[1] == "astronomy history telescope observations"
    assert context == [
        "Astronomy telescope telescope observations",
        "Galileo improved the telescope design in Padua",
    ]


@pytest.mark.anyio
async def test_context_capped_at_top_k():
    retriever = _FakeRetriever(
        lambda q, k: [_result(f"{q}-{i}", f"{q} unique passage {i} " + "y" * 60) for i in range(k)]
    )
    controller = MultiHopController(retriever=retriever, expander=QueryExpander())

    context = await controller.run("ocean currents", max_hops=3, top_k=3)

    assert len(context) == 3
    assert len(set(context)) == 3


@pytest.mark.anyio
async def test_terminates_within_bounded_calls():
    counter = {"n": 0}

    def produce(query: str, k: int) -> List[ScoredResult]:
        counter["n"] += 1
        return [_result(f"id{counter['n']}", f"fresh{counter['n']} " + "z" * 60 + f" term{counter['n']}abc")]

    retriever = _FakeRetriever(produce)
    expander = QueryExpander()
    controller = MultiHopController(retriever=retriever, expander=expander)

    max_hops = 4
    await controller.run("glacier retreat", max_hops=max_hops, top_k=10)

    variants = expander.generate_variants("glacier retreat")
    assert len(retriever.search_queries) <= max_hops + len(variants) - 1


@pytest.mark.anyio
async def test_zero_hops_and_zero_k():
    retriever = _FakeRetriever(lambda q, k: [_result("1", f"text for {q}")])
    controller = MultiHopController(retriever=retriever, expander=QueryExpander(synonyms={}))

    assert await controller.run("rivers", max_hops=3, top_k=0) == []
    assert retriever.search_queries == []

    context = await controller.run("rivers", max_hops=0, top_k=2)
    assert retriever.search_queries == ["what is rivers", "how does rivers"]
    assert context == ["text for what is rivers", "text for how does rivers"]


def test_hop_states():
    assert [s.value for s in HopState] == ["hop0", "hopN", "exhausted"]


# --- Engine integration ---


@pytest.mark.anyio
async def test_engine_multi_hop_retrieve(history_fragments, config, fake_embedder):
    engine = SearchEngine(config=config, embedder=fake_embedder)
    await engine.build_index(history_fragments)

    context = await engine.multi_hop_retrieve("revolution monarchy", max_hops=2, top_k=3)

    assert 0 < len(context) <= 3
    assert len(set(context)) == len(context)
    assert any("French Revolution" in c for c in context)


@pytest.mark.anyio
async def test_engine_retrieve_single_hop(history_fragments, config):
    engine = SearchEngine(config=config)
    await engine.build_index(history_fragments)

    results = await engine.retrieve("Cold War tension", top_k=2)

    assert len(results) == 2
    assert results[0].fragment.id == "h5"
    assert results[0].source == "reranked"
