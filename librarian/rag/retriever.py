"""
Result types shared by the retrieval stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Protocol

from .index import Fragment


@dataclass
class ScoredResult:
    """Result from a retrieval operation."""

    fragment: Fragment
    score: float
    source: str
    metadata: Dict[str, float] = field(default_factory=dict)


def format_result(result: ScoredResult) -> str:
    """Render a result as a context string, prefixed with its section and chapter."""
    ctx = result.fragment.text
    if result.fragment.chapter:
        ctx = f"[{result.fragment.chapter}] " + ctx
    if result.fragment.section:
        ctx = f"[{result.fragment.section}] " + ctx
    return ctx


class Retriever(Protocol):
    """Protocol for retrieval implementations driven by the multi-hop controller."""

    async def search(self, query: str, top_k: int) -> List[ScoredResult]:
        """
        Search for fragments matching the query.

        Args:
            query: User query string
            top_k: Number of results to return

        Returns:
            List of ScoredResult objects sorted by score (descending)
        """
        ...

    def rerank(self, query: str, results: List[ScoredResult], top_k: int) -> List[ScoredResult]:
        ...
