"""
Shared fixtures: small corpora and a deterministic embedding provider.
"""

from __future__ import annotations

import asyncio
import zlib
from pathlib import Path
from typing import List, Sequence

import numpy as np
import pytest

from librarian.rag import Fragment, ModelNotReadyError, RetrievalConfig, tokenize


@pytest.fixture
def anyio_backend() -> str:
    """The library and the fakes are asyncio-based."""
    return "asyncio"


class FakeEmbedder:
    """Hashed bag-of-words unit vectors; tracks concurrent calls."""

    def __init__(self, dim: int = 64, ready: bool = True, delay: float = 0.0, fail_after: int | None = None):
        self.dim = dim
        self.ready = ready
        self.delay = delay
        self.fail_after = fail_after
        self.calls = 0
        self.active = 0
        self.max_active = 0

    @property
    def is_ready(self) -> bool:
        return self.ready

    def vector(self, text: str) -> List[float]:
        vec = np.zeros(self.dim, dtype=np.float32)
        for tok in tokenize(text):
            vec[zlib.crc32(tok.encode("utf-8")) % self.dim] += 1.0
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return vec.tolist()

    async def _one(self, text: str) -> List[float]:
        if not self.ready:
            raise ModelNotReadyError()
        if self.fail_after is not None and self.calls >= self.fail_after:
            raise RuntimeError("inference failed")
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            return self.vector(text)
        finally:
            self.active -= 1

    async def embed(self, text: str) -> List[float]:
        return await self._one(text)

    async def embed_batch(self, texts: Sequence[str], on_progress=None) -> List[List[float]]:
        out: List[List[float]] = []
        for text in texts:
            out.append(await self._one(text))
            if on_progress is not None:
                on_progress(len(out), len(texts))
        return out


@pytest.fixture
def animal_fragments() -> list[Fragment]:
    """Four short fragments: two mention 'lazy'."""
    return [
        Fragment(id="1", text="The quick brown fox jumps over the lazy dog", source="test.txt"),
        Fragment(id="2", text="A lazy cat sleeps all day long", source="test.txt"),
        Fragment(id="3", text="The brown bear runs through the forest", source="test.txt"),
        Fragment(id="4", text="Swift programming language is great for iOS development", source="code.txt"),
    ]


@pytest.fixture
def history_fragments() -> list[Fragment]:
    """History passages with section/chapter metadata."""
    return [
        Fragment(
            id="h1",
            text="The Treaty of Westphalia was signed in 1648, ending the Thirty Years' War. It established state sovereignty in Europe.",
            source="history.pdf",
            page=12,
            section="Peace Treaties",
            chapter="Early Modern Europe",
        ),
        Fragment(
            id="h2",
            text="Napoleon Bonaparte crowned himself Emperor of France in 1804. His military campaigns reshaped the map of Europe.",
            source="history.pdf",
            page=40,
            chapter="Revolutionary Era",
        ),
        Fragment(
            id="h3",
            text="The Industrial Revolution began in Britain in the late 18th century. Steam power and mechanization transformed manufacturing.",
            source="industry.pdf",
        ),
        Fragment(
            id="h4",
            text="The French Revolution of 1789 overthrew the monarchy. It was driven by ideals of liberty, equality, and fraternity.",
            source="history.pdf",
            chapter="Revolutionary Era",
        ),
        Fragment(
            id="h5",
            text="The Cold War was a period of geopolitical tension between the United States and Soviet Union from 1947 to 1991.",
            source="modern.pdf",
        ),
    ]


@pytest.fixture
def config(tmp_path: Path) -> RetrievalConfig:
    return RetrievalConfig(data_dir=tmp_path / "data")


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def embedder_factory():
    """Build FakeEmbedder instances with custom readiness, delay or failure point."""
    return FakeEmbedder
