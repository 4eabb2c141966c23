"""
Embedding providers: the text -> unit vector contract and its adapters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Sequence, runtime_checkable

from sentence_transformers import SentenceTransformer

from .config import DEFAULT_EMBEDDING_MODEL
from .errors import ModelNotReadyError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding implementations. Vectors must be unit-normalized."""

    @property
    def is_ready(self) -> bool:
        ...

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(
        self,
        texts: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[List[float]]:
        """
        Embed texts in order.

        Args:
            texts: Texts to embed
            on_progress: Called with (completed, total) as work finishes

        Returns:
            One vector per input text.
        """
        ...


class SentenceTransformerEmbedder:
    """Embedding provider backed by a sentence-transformers model."""

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL, batch_size: int = 32):
        self.model_name = model_name
        self.batch_size = max(1, batch_size)
        self._model: SentenceTransformer | None = None

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        logger.info("Loading embedding model: %s", self.model_name)
        self._model = SentenceTransformer(self.model_name)
        logger.info("Embedding model loaded")

    def _require_model(self) -> SentenceTransformer:
        if self._model is None:
            raise ModelNotReadyError()
        return self._model

    async def embed(self, text: str) -> List[float]:
        model = self._require_model()
        emb = await asyncio.to_thread(
            model.encode,
            [text],
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return emb[0].tolist()

    async def embed_batch(
        self,
        texts: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[List[float]]:
        model = self._require_model()
        total = len(texts)
        vectors: List[List[float]] = []
        for start in range(0, total, self.batch_size):
            batch = list(texts[start : start + self.batch_size])
            emb = await asyncio.to_thread(
                model.encode,
                batch,
                batch_size=self.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
            vectors.extend(row.tolist() for row in emb)
            if on_progress is not None:
                on_progress(len(vectors), total)
        return vectors


class SerializedEmbedder:
    """
    Funnels calls into a provider one at a time.

    The loaded model is not safe to share between concurrent inference calls,
    so every embed/embed_batch waits for the previous one to finish.
    """

    def __init__(self, provider: EmbeddingProvider):
        self.provider = provider
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.provider.is_ready

    async def embed(self, text: str) -> List[float]:
        async with self._lock:
            return await self.provider.embed(text)

    async def embed_batch(
        self,
        texts: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[List[float]]:
        async with self._lock:
            return await self.provider.embed_batch(texts, on_progress)
