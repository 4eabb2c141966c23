"""
Answer generator: retrieves context, builds the prompt, calls the completion function.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Union

from librarian.rag.engine import SearchEngine
from librarian.rag.retriever import format_result

from .config import GenerationConfig
from .prompts import build_prompt

Completion = Callable[[str], Union[str, Awaitable[str]]]


@dataclass
class GeneratedAnswer:
    """Result of RAG answer generation."""

    answer: str
    context: List[str]


class AnswerGenerator:
    """Generate answers from a query using retrieved context and an opaque completion function."""

    def __init__(self, engine: SearchEngine, complete: Completion):
        self.engine = engine
        self.complete = complete

    async def retrieve_context(self, query: str, config: GenerationConfig) -> List[str]:
        """Single-hop (search + rerank) or multi-hop context, as formatted strings."""
        if config.use_multi_hop:
            return await self.engine.multi_hop_retrieve(
                query, max_hops=config.max_hops, top_k=config.top_k
            )
        results = await self.engine.retrieve(query, top_k=config.top_k)
        return [format_result(r) for r in results]

    async def generate(
        self,
        query: str,
        config: Optional[GenerationConfig] = None,
    ) -> GeneratedAnswer:
        """Retrieve context, call the completion function, return the trimmed answer."""
        config = config or GenerationConfig()
        context = await self.retrieve_context(query, config)
        output = self.complete(build_prompt(query, context))
        if inspect.isawaitable(output):
            output = await output
        return GeneratedAnswer(answer=(output or "").strip(), context=context)
