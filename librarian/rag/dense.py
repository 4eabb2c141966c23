"""
Dense vector index over fragment embeddings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two unit vectors; 0.0 when lengths differ or either is empty."""
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return 0.0
    return float(np.dot(va, vb))


def _unit(vec: Sequence[float]) -> np.ndarray:
    arr = np.asarray(vec, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr
    return arr / norm


@dataclass
class VectorIndex:
    """
    Unit vectors keyed by fragment id, stored as parallel arrays.

    Rows whose dimension differs from the first vector are a corpus-consistency
    fault; they are kept as zero rows so they score 0 against any query.
    """

    ids: List[str]
    texts: List[str]
    embeddings: np.ndarray  # shape: (n_fragments, dim), float32

    @classmethod
    def empty(cls) -> "VectorIndex":
        return cls(ids=[], texts=[], embeddings=np.zeros((0, 0), dtype=np.float32))

    @classmethod
    def from_records(
        cls,
        ids: Sequence[str],
        texts: Sequence[str],
        vectors: Sequence[Sequence[float]],
    ) -> "VectorIndex":
        """Build an index from parallel id/text/vector sequences."""
        if not (len(ids) == len(texts) == len(vectors)):
            raise ValueError("ids, texts and vectors must have the same length")
        if not vectors:
            return cls.empty()

        dim = len(vectors[0])
        matrix = np.zeros((len(vectors), dim), dtype=np.float32)
        for row, vec in enumerate(vectors):
            if len(vec) != dim:
                logger.warning(
                    "Embedding for %s has dimension %d, expected %d; it will score 0",
                    ids[row],
                    len(vec),
                    dim,
                )
                continue
            matrix[row] = _unit(vec)
        return cls(ids=list(ids), texts=list(texts), embeddings=matrix)

    @property
    def is_empty(self) -> bool:
        return len(self.ids) == 0

    @property
    def dimension(self) -> int:
        if self.is_empty:
            return 0
        return int(self.embeddings.shape[1])

    def __len__(self) -> int:
        return len(self.ids)

    def _scores(self, vector: Sequence[float]) -> np.ndarray:
        q = np.asarray(vector, dtype=np.float32)
        if q.ndim != 1 or q.size == 0 or q.shape[0] != self.dimension:
            logger.warning(
                "Query vector dimension %d does not match index dimension %d",
                q.size,
                self.dimension,
            )
            return np.zeros(len(self.ids), dtype=np.float32)
        return self.embeddings @ q

    def similarities(self, vector: Sequence[float]) -> Dict[str, float]:
        """Similarity of the vector against every stored fragment."""
        if self.is_empty:
            return {}
        sims = self._scores(vector)
        return dict(zip(self.ids, (float(s) for s in sims)))

    def top_k(self, vector: Sequence[float], k: int = 5) -> List[Tuple[str, float]]:
        """Ids of the k most similar fragments, ties kept in stored order."""
        if self.is_empty or k <= 0:
            return []
        sims = self._scores(vector)
        idxs = np.argsort(-sims, kind="stable")[:k]
        return [(self.ids[int(i)], float(sims[i])) for i in idxs]

    def save(self, path: Path) -> None:
        """Persist ids, texts and embeddings together, replacing the file in one step."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with tmp.open("wb") as f:
            np.savez(
                f,
                ids=np.array(self.ids, dtype=object),
                texts=np.array(self.texts, dtype=object),
                embeddings=self.embeddings,
            )
        os.replace(tmp, path)

    @classmethod
    def load(cls, path: Path) -> "VectorIndex":
        """Load a persisted index; any failure yields an empty index."""
        if not path.exists():
            logger.info("No cached embeddings found at %s", path)
            return cls.empty()
        try:
            with np.load(path, allow_pickle=True) as data:
                ids = [str(i) for i in data["ids"].tolist()]
                texts = [str(t) for t in data["texts"].tolist()]
                embeddings = np.asarray(data["embeddings"], dtype=np.float32)
        except Exception as e:
            logger.warning("Failed to load embedding cache: %s", e)
            return cls.empty()

        if not ids:
            return cls.empty()
        if embeddings.ndim != 2 or not (len(ids) == len(texts) == embeddings.shape[0]):
            logger.warning("Embedding cache at %s has inconsistent shapes; ignoring it", path)
            return cls.empty()

        logger.info(
            "Loaded %d cached embeddings (%d dimensions)", len(ids), embeddings.shape[1]
        )
        return cls(ids=ids, texts=texts, embeddings=embeddings)
