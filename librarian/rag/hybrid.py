"""
Hybrid ranking: blends min-max normalized BM25 and vector similarity scores.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from .index import Fragment
from .retriever import ScoredResult


def min_max_normalize(scores: Sequence[float]) -> np.ndarray:
    """Scale scores into [0, 1]; a constant vector maps to 0.5 everywhere."""
    arr = np.asarray(scores, dtype=float)
    if arr.size == 0:
        return arr
    lo = float(arr.min())
    hi = float(arr.max())
    if hi == lo:
        return np.full(arr.shape, 0.5)
    return (arr - lo) / (hi - lo)


def align_scores(fragments: Sequence[Fragment], scores_by_id: Dict[str, float]) -> np.ndarray:
    """Per-fragment scores in corpus order; fragments without a score get 0."""
    return np.array([scores_by_id.get(f.id, 0.0) for f in fragments], dtype=float)


@dataclass
class HybridRanker:
    """Linear blend: ``(1 - weight) * norm_bm25 + weight * norm_vector``."""

    weight: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError("weight must be between 0 and 1")

    def rank(
        self,
        fragments: Sequence[Fragment],
        bm25_scores: Sequence[float],
        vector_scores: Sequence[float],
        top_k: int,
    ) -> List[ScoredResult]:
        """
        Blend both score vectors over the whole corpus and keep the top-k.

        Args:
            fragments: Corpus, in the order the score vectors are aligned to
            bm25_scores: Raw BM25 score per fragment
            vector_scores: Raw similarity per fragment (zeros when no vectors)
            top_k: Number of results to return

        Returns:
            Results sorted by hybrid score, ties kept in corpus order.
        """
        if top_k <= 0 or not fragments:
            return []

        norm_bm25 = min_max_normalize(bm25_scores)
        norm_vector = min_max_normalize(vector_scores)
        hybrid = (1.0 - self.weight) * norm_bm25 + self.weight * norm_vector

        order = np.argsort(-hybrid, kind="stable")[:top_k]
        results: List[ScoredResult] = []
        for idx in order:
            i = int(idx)
            results.append(
                ScoredResult(
                    fragment=fragments[i],
                    score=float(hybrid[i]),
                    source="hybrid",
                    metadata={
                        "bm25": float(bm25_scores[i]),
                        "vector": float(vector_scores[i]),
                    },
                )
            )
        return results
