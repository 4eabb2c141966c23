"""
Multi-hop retrieval: iterates search + rerank with follow-up queries mined
from the context gathered so far.
"""

from __future__ import annotations

import enum
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Set

from .query_expander import QueryExpander
from .retriever import Retriever, ScoredResult, format_result
from .utils import STOPWORDS, tokenize

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[^\W_]+")

FOLLOW_UP_TERMS = 3
MIN_FOLLOW_UP_TERM_LEN = 5


class HopState(enum.Enum):
    HOP_0 = "hop0"
    HOP_N = "hopN"
    EXHAUSTED = "exhausted"


def dedup_key(result: ScoredResult) -> str:
    """Identity used to drop repeated passages across hops."""
    return f"{result.fragment.source}:{result.fragment.text[:50]}"


@dataclass
class RetrievalSession:
    """Per-call multi-hop state; discarded when the call returns."""

    original_query: str
    current_query: str
    seen: Set[str] = field(default_factory=set)
    context: List[str] = field(default_factory=list)
    hop: int = 0
    state: HopState = HopState.HOP_0

    def add(self, result: ScoredResult) -> bool:
        key = dedup_key(result)
        if key in self.seen:
            return False
        self.seen.add(key)
        self.context.append(format_result(result))
        return True

    def add_all(self, results: Iterable[ScoredResult]) -> int:
        return sum(1 for r in results if self.add(r))


def extract_follow_up_query(original_query: str, context: List[str]) -> str:
    """
    Append the most frequent new terms from the context to the original query.

    Candidate terms are longer than four characters, not stopwords and not
    already in the query; ties go to the term seen first.
    """
    query_words = set(tokenize(original_query))
    term_freq: Counter[str] = Counter()
    for word in _WORD_RE.findall(" ".join(context).lower()):
        if len(word) < MIN_FOLLOW_UP_TERM_LEN:
            continue
        if word in query_words or word in STOPWORDS:
            continue
        term_freq[word] += 1

    top_terms = [term for term, _ in term_freq.most_common(FOLLOW_UP_TERMS)]
    if not top_terms:
        return original_query
    return original_query + " " + " ".join(top_terms)


@dataclass
class MultiHopController:
    """Runs retrieval hops until max_hops or until no new query direction appears."""

    retriever: Retriever
    expander: QueryExpander
    oversample: int = 2

    async def run(self, query: str, max_hops: int, top_k: int) -> List[str]:
        """
        Retrieve context for a compound question.

        Args:
            query: Original user query
            max_hops: Maximum number of search + rerank passes
            top_k: Number of context strings wanted

        Returns:
            Formatted context strings in first-seen order, at most top_k.
        """
        if top_k <= 0:
            return []

        session = RetrievalSession(original_query=query, current_query=query)
        variants = self.expander.generate_variants(query)
        candidate_k = top_k * self.oversample

        for hop in range(max(0, max_hops)):
            session.hop = hop
            session.state = HopState.HOP_0 if hop == 0 else HopState.HOP_N
            search_query = (
                self.expander.expand(session.current_query) if hop == 0 else session.current_query
            )

            results = await self.retriever.search(search_query, candidate_k)
            reranked = self.retriever.rerank(session.current_query, results, top_k)
            added = session.add_all(reranked)
            logger.debug("Hop %d query=%r added=%d total=%d", hop, search_query, added, len(session.context))

            if hop < max_hops - 1 and session.context:
                follow_up = extract_follow_up_query(query, session.context)
                if follow_up == session.current_query:
                    logger.debug("No new direction after hop %d", hop)
                    break
                session.current_query = follow_up

        session.state = HopState.EXHAUSTED

        if len(session.context) < top_k:
            for variant in variants[1:]:
                for result in await self.retriever.search(variant, top_k):
                    session.add(result)
                    if len(session.context) >= candidate_k:
                        break
                if len(session.context) >= candidate_k:
                    break

        return session.context[:top_k]
