"""
Search engine: owns the loaded corpus and vectors and exposes retrieval operations.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .bm25 import BM25Index
from .config import RetrievalConfig
from .dense import VectorIndex
from .embedding import EmbeddingProvider, ProgressCallback, SerializedEmbedder
from .errors import ModelNotReadyError
from .hybrid import HybridRanker, align_scores
from .index import Fragment, load_fragments, save_fragments
from .multihop import MultiHopController
from .query_expander import QueryExpander
from .reranker import HeuristicReranker
from .retriever import ScoredResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """An immutable generation of the index. Rebuilds replace it whole."""

    fragments: List[Fragment]
    bm25: BM25Index
    vectors: VectorIndex
    by_id: Dict[str, Fragment] = field(default_factory=dict)

    @classmethod
    def build(
        cls, fragments: List[Fragment], vectors: VectorIndex, *, k1: float, b: float
    ) -> "IndexSnapshot":
        by_id = {f.id: f for f in fragments}
        unknown = [vid for vid in vectors.ids if vid not in by_id]
        if unknown:
            logger.warning("%d stored vectors have no matching fragment", len(unknown))
        return cls(
            fragments=list(fragments),
            bm25=BM25Index.from_fragments(fragments, k1=k1, b=b),
            vectors=vectors,
            by_id=by_id,
        )

    @classmethod
    def empty(cls) -> "IndexSnapshot":
        return cls.build([], VectorIndex.empty(), k1=1.5, b=0.75)


class SearchEngine:
    """
    Single owner of the retrieval index.

    Searches read whichever snapshot is current when they start; build_index
    and load_index construct a new snapshot off to the side and swap it in with
    one assignment, so callers never observe a partial index.
    """

    def __init__(
        self,
        config: Optional[RetrievalConfig] = None,
        embedder: Optional[EmbeddingProvider] = None,
        expander: Optional[QueryExpander] = None,
        reranker: Optional[HeuristicReranker] = None,
    ):
        self.config = config or RetrievalConfig()
        if embedder is not None and not isinstance(embedder, SerializedEmbedder):
            embedder = SerializedEmbedder(embedder)
        self.embedder = embedder
        if expander is None:
            if self.config.synonyms_path is not None:
                expander = QueryExpander.from_file(self.config.synonyms_path)
            else:
                expander = QueryExpander()
        self.expander = expander
        self.reranker = reranker or HeuristicReranker()
        self.ranker = HybridRanker(weight=self.config.hybrid_weight)
        self._snapshot = IndexSnapshot.empty()
        self._swap_lock = asyncio.Lock()

    # State

    @property
    def fragment_count(self) -> int:
        return len(self._snapshot.fragments)

    @property
    def has_embeddings(self) -> bool:
        return not self._snapshot.vectors.is_empty

    @property
    def embedding_count(self) -> int:
        return len(self._snapshot.vectors)

    @property
    def dimensions(self) -> int:
        return self._snapshot.vectors.dimension

    def available_sources(self) -> List[str]:
        return sorted({f.source for f in self._snapshot.fragments if f.source})

    # Index management

    def _new_snapshot(self, fragments: List[Fragment], vectors: VectorIndex) -> IndexSnapshot:
        return IndexSnapshot.build(fragments, vectors, k1=self.config.k1, b=self.config.b)

    def _persist(self, frags: List[Fragment], vectors: VectorIndex) -> None:
        """Write the corpus and vector record to staging files, then move both into place."""
        frag_path = self.config.fragments_path
        vec_path = self.config.embeddings_path
        staged_frags = frag_path.with_name(frag_path.name + ".staged")
        staged_vecs = vec_path.with_name(vec_path.name + ".staged")
        try:
            save_fragments(frags, staged_frags)
            vectors.save(staged_vecs)
        except Exception:
            staged_frags.unlink(missing_ok=True)
            staged_vecs.unlink(missing_ok=True)
            raise
        os.replace(staged_vecs, vec_path)
        os.replace(staged_frags, frag_path)

    async def build_index(
        self,
        fragments: Iterable[Fragment],
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Index fragments, persist them with their vectors, then swap the new index in.

        Without an embedding provider the index is lexical-only. A failure
        anywhere leaves the previous index in place.
        """
        frags = list(fragments)
        async with self._swap_lock:
            vectors = VectorIndex.empty()
            if self.embedder is not None:
                if not self.embedder.is_ready:
                    raise ModelNotReadyError()
                logger.info("Generating embeddings for %d fragments", len(frags))
                embeddings = await self.embedder.embed_batch([f.text for f in frags], on_progress)
                vectors = VectorIndex.from_records(
                    [f.id for f in frags], [f.text for f in frags], embeddings
                )

            snapshot = self._new_snapshot(frags, vectors)
            self._persist(frags, vectors)
            self._snapshot = snapshot

        logger.info(
            "Index built: %d fragments, %d embeddings (%d dimensions)",
            len(frags),
            len(vectors),
            vectors.dimension,
        )

    async def load_index(self) -> None:
        """Load the persisted corpus and vectors; a missing or unreadable vector file means lexical-only."""
        async with self._swap_lock:
            fragments = load_fragments(self.config.fragments_path)
            vectors = VectorIndex.load(self.config.embeddings_path)
            if not fragments and not vectors.is_empty:
                logger.info("No fragment file; rebuilding corpus from stored vectors")
                fragments = [
                    Fragment(id=fid, text=text, source="")
                    for fid, text in zip(vectors.ids, vectors.texts)
                ]
            self._snapshot = self._new_snapshot(fragments, vectors)

        logger.info(
            "Index loaded: %d fragments, %d embeddings",
            len(fragments),
            len(vectors),
        )

    # Retrieval

    def search_lexical_only(self, query: str, top_k: Optional[int] = None) -> List[ScoredResult]:
        """Rank by raw BM25 score alone."""
        if top_k is None:
            top_k = self.config.top_k
        snapshot = self._snapshot
        return [
            ScoredResult(fragment=frag, score=score, source="lexical", metadata={"bm25": score})
            for frag, score in snapshot.bm25.search(query, top_k=top_k)
        ]

    async def _embed_query(self, query: str) -> List[float]:
        if self.embedder is None:
            raise ModelNotReadyError("No embedding provider configured")
        return await self.embedder.embed(query)

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        use_hybrid: bool = True,
    ) -> List[ScoredResult]:
        """
        Search for top-k fragments matching the query.

        Blends BM25 and vector similarity over the whole corpus. Falls back to
        search_lexical_only when hybrid is off, no vectors are loaded or no
        embedding provider is configured.

        Implements the Retriever protocol.
        """
        if top_k is None:
            top_k = self.config.top_k
        snapshot = self._snapshot
        if not use_hybrid or snapshot.vectors.is_empty or self.embedder is None:
            return self.search_lexical_only(query, top_k)
        if top_k <= 0 or not snapshot.fragments:
            return []

        query_vec = await self._embed_query(query)
        bm25_scores = snapshot.bm25.scores(query)
        vector_scores = align_scores(snapshot.fragments, snapshot.vectors.similarities(query_vec))
        return self.ranker.rank(snapshot.fragments, bm25_scores, vector_scores, top_k)

    async def search_vector_only(self, query: str, top_k: Optional[int] = None) -> List[ScoredResult]:
        """Rank by embedding similarity alone; empty when no vectors are loaded."""
        if top_k is None:
            top_k = self.config.top_k
        snapshot = self._snapshot
        if snapshot.vectors.is_empty or self.embedder is None or top_k <= 0:
            return []

        query_vec = await self._embed_query(query)
        results: List[ScoredResult] = []
        for fid, score in snapshot.vectors.top_k(query_vec, top_k):
            frag = snapshot.by_id.get(fid)
            if frag is None:
                continue
            results.append(
                ScoredResult(fragment=frag, score=score, source="vector", metadata={"vector": score})
            )
        return results

    def rerank(
        self,
        query: str,
        results: List[ScoredResult],
        top_k: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Rescore a shortlist with the heuristic reranker."""
        if top_k is None:
            top_k = self.config.top_k
        return self.reranker.rerank(query, results, top_k)

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> List[ScoredResult]:
        """Single-hop retrieval: oversampled search followed by reranking."""
        if top_k is None:
            top_k = self.config.top_k
        results = await self.search(query, top_k * self.config.oversample)
        return self.rerank(query, results, top_k)

    async def multi_hop_retrieve(
        self,
        query: str,
        max_hops: Optional[int] = None,
        top_k: Optional[int] = None,
    ) -> List[str]:
        """Iterative retrieval for compound questions; returns formatted context strings."""
        if max_hops is None:
            max_hops = self.config.max_hops
        if top_k is None:
            top_k = self.config.top_k
        controller = MultiHopController(
            retriever=self,
            expander=self.expander,
            oversample=self.config.oversample,
        )
        return await controller.run(query, max_hops=max_hops, top_k=top_k)
