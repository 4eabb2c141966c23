"""
BM25 sparse retriever over document fragments.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from rank_bm25 import BM25

from .index import Fragment
from .utils import tokenize


class SmoothedBM25(BM25):
    """
    Okapi BM25 with the smoothed idf ``ln((N - df + 0.5) / (df + 0.5) + 1)``.

    The idf is never negative, and terms unseen in the corpus score with
    ``df = 0`` rather than being dropped.
    """

    def __init__(self, corpus: Sequence[Sequence[str]], k1: float = 1.5, b: float = 0.75):
        self.k1 = k1
        self.b = b
        super().__init__(corpus)

    def idf_for(self, doc_freq: int) -> float:
        return math.log((self.corpus_size - doc_freq + 0.5) / (doc_freq + 0.5) + 1.0)

    def _calc_idf(self, nd: Dict[str, int]) -> None:
        for word, freq in nd.items():
            self.idf[word] = self.idf_for(freq)

    def get_scores(self, query: Sequence[str]) -> np.ndarray:
        score = np.zeros(self.corpus_size)
        doc_len = np.array(self.doc_len, dtype=float)
        avgdl = self.avgdl or 1.0
        length_norm = self.k1 * (1 - self.b + self.b * doc_len / avgdl)
        for q in query:
            q_freq = np.array([doc.get(q, 0) for doc in self.doc_freqs], dtype=float)
            idf = self.idf.get(q)
            if idf is None:
                idf = self.idf_for(0)
            score += idf * (q_freq * (self.k1 + 1) / (q_freq + length_norm))
        return score


@dataclass
class BM25Index:
    """BM25 sparse retrieval index. ``bm25`` is None for an empty corpus."""

    bm25: Optional[SmoothedBM25]
    fragments: List[Fragment]

    @classmethod
    def from_fragments(
        cls, fragments: List[Fragment], *, k1: float = 1.5, b: float = 0.75
    ) -> "BM25Index":
        """Build BM25 index from fragments."""
        if not fragments:
            return cls(bm25=None, fragments=[])
        tokenized_docs = [tokenize(f.text) for f in fragments]
        bm25 = SmoothedBM25(tokenized_docs, k1=k1, b=b)
        return cls(bm25=bm25, fragments=list(fragments))

    def __len__(self) -> int:
        return len(self.fragments)

    def scores(self, query: str) -> np.ndarray:
        """Raw BM25 score for every fragment, in corpus order."""
        if self.bm25 is None:
            return np.zeros(0)
        return self.bm25.get_scores(tokenize(query))

    def search(self, query: str, top_k: int = 5) -> List[Tuple[Fragment, float]]:
        """Search for top-k fragments; zero-score fragments are kept in corpus order."""
        if top_k <= 0:
            return []
        scores = self.scores(query)
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [(self.fragments[int(i)], float(scores[i])) for i in order]
