"""
Heuristic reranker for second-stage re-ranking of retrieved fragments.

Scores a shortlist with lexical-overlap signals instead of a second neural
pass. The weights are untuned and meant to be adjusted per corpus.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .retriever import ScoredResult
from .utils import bigrams, tokenize


def score_signals(query_terms: Sequence[str], tokens: Sequence[str]) -> Dict[str, float]:
    """
    Compute the relevance signals for one fragment.

    Args:
        query_terms: Tokenized query
        tokens: Tokenized fragment text

    Returns:
        Dictionary with overlap, bigram, density, position, coverage and
        length_penalty, each in [0, 1].
    """
    token_set = set(tokens)
    distinct_query = set(query_terms)

    overlap = 0.0
    if query_terms:
        overlap = sum(1 for t in query_terms if t in token_set) / len(query_terms)

    coverage = 0.0
    if distinct_query:
        coverage = len(distinct_query & token_set) / len(distinct_query)

    bigram = 0.0
    query_pairs = bigrams(query_terms)
    if query_pairs:
        bigram = len(query_pairs & bigrams(tokens)) / len(query_pairs)

    positions = [i for i, tok in enumerate(tokens) if tok in distinct_query]
    density = 0.0
    position = 0.0
    if positions:
        span = positions[-1] - positions[0] + 1
        density = len(positions) / span
        position = 1.0 / (1.0 + positions[0] / 50.0)

    length_penalty = 1.0 / (1.0 + len(tokens) / 500.0)

    return {
        "overlap": overlap,
        "bigram": bigram,
        "density": density,
        "position": position,
        "coverage": coverage,
        "length_penalty": length_penalty,
    }


@dataclass
class HeuristicReranker:
    """Weighted blend of the original retrieval score and lexical relevance signals."""

    original_weight: float = 0.30
    overlap_weight: float = 0.20
    bigram_weight: float = 0.15
    density_weight: float = 0.15
    coverage_weight: float = 0.10
    position_weight: float = 0.05
    length_weight: float = 0.05

    def rerank(
        self,
        query: str,
        candidates: Iterable[ScoredResult],
        top_k: int,
    ) -> List[ScoredResult]:
        """
        Re-rank candidates and keep the top-k.

        The original retrieval score enters the blend as given.
        """
        pairs: List[ScoredResult] = list(candidates)
        if not pairs or top_k <= 0:
            return []

        query_terms = tokenize(query)

        reranked: List[ScoredResult] = []
        for result in pairs:
            signals = score_signals(query_terms, tokenize(result.fragment.text))
            combined = (
                self.original_weight * result.score
                + self.overlap_weight * signals["overlap"]
                + self.bigram_weight * signals["bigram"]
                + self.density_weight * signals["density"]
                + self.coverage_weight * signals["coverage"]
                + self.position_weight * signals["position"]
                + self.length_weight * signals["length_penalty"]
            )
            metadata = dict(result.metadata)
            metadata["original"] = result.score
            metadata.update(signals)
            reranked.append(
                ScoredResult(
                    fragment=result.fragment,
                    score=combined,
                    source="reranked",
                    metadata=metadata,
                )
            )

        reranked.sort(key=lambda x: x.score, reverse=True)
        return reranked[:top_k]
