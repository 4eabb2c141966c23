"""Prompt templates for RAG answer generation."""

from __future__ import annotations

from typing import List

SYSTEM_PROMPT = """You are a knowledgeable research assistant. Answer questions based on the provided context.
If the context doesn't contain relevant information, say so and provide general knowledge.
Be concise and accurate."""

CONTEXT_TEMPLATE = """Use the following context to answer the question:

{context}

---
"""


def build_prompt(query: str, context: List[str]) -> str:
    """Assemble the full prompt; the context block is omitted when nothing was retrieved."""
    context_text = CONTEXT_TEMPLATE.format(context="\n\n".join(context)) if context else ""
    return f"{SYSTEM_PROMPT}\n\n{context_text}\nQuestion: {query}"
