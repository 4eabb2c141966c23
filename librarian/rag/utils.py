"""
Utility functions for RAG module.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Set, Tuple

TOKEN_RE = re.compile(r"[^\W_]+")

STOPWORDS = {
    "the", "and", "for", "that", "this", "with", "from", "have", "has",
    "been", "were", "was", "are", "will", "would", "could", "should",
    "their", "there", "they", "them", "these", "those", "which", "what",
    "when", "where", "about", "into", "over", "also", "more", "some",
    "such", "than", "then", "only", "other", "being", "made", "many",
}


def iter_tokens(text: str) -> Iterable[str]:
    """Extract normalized terms: lowercase alphanumeric runs longer than two characters."""
    for match in TOKEN_RE.finditer(text.lower()):
        tok = match.group(0)
        if len(tok) <= 2:
            continue
        yield tok


def tokenize(text: str) -> List[str]:
    """Tokenize text into the vocabulary shared by BM25 and the reranker."""
    return list(iter_tokens(text))


def bigrams(tokens: Sequence[str]) -> Set[Tuple[str, str]]:
    """Adjacent token pairs."""
    return {(tokens[i], tokens[i + 1]) for i in range(len(tokens) - 1)}
