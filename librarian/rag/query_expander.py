"""
Query expansion utilities for hybrid retrieval.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from .utils import tokenize

DEFAULT_SYNONYMS: Dict[str, List[str]] = {
    "explain": ["describe", "clarify"],
    "cause": ["reason", "origin"],
    "effect": ["impact", "consequence"],
    "war": ["conflict", "battle"],
    "treaty": ["agreement", "pact"],
    "king": ["monarch", "ruler"],
    "leader": ["ruler", "commander"],
    "country": ["nation", "state"],
    "important": ["significant", "key"],
    "method": ["technique", "approach"],
    "problem": ["issue", "challenge"],
    "result": ["outcome", "consequence"],
    "example": ["instance", "case"],
    "fast": ["quick", "rapid"],
    "big": ["large", "major"],
    "start": ["begin", "origin"],
    "end": ["finish", "conclusion"],
    "create": ["build", "make"],
    "error": ["mistake", "fault"],
    "function": ["method", "routine"],
}

INTERROGATIVES = (
    "what", "how", "why", "when", "where", "who", "which", "whose", "whom",
    "is", "are", "does", "do", "can", "should",
)


@dataclass
class QueryExpander:
    """Rule-based query expander backed by an injected synonym table."""

    synonyms: Dict[str, List[str]] | None = None

    def __post_init__(self) -> None:
        """Initialize default synonyms if not provided."""
        if self.synonyms is None:
            self.synonyms = {k: list(v) for k, v in DEFAULT_SYNONYMS.items()}
        else:
            self.synonyms = {k.lower(): [s.lower() for s in v] for k, v in self.synonyms.items()}

    @classmethod
    def from_file(cls, path: Path) -> "QueryExpander":
        """Load a synonym table from a JSON object mapping term -> list of synonyms."""
        with Path(path).open("r", encoding="utf-8") as f:
            table = json.load(f)
        if not isinstance(table, dict):
            raise ValueError(f"Synonym table at {path} must be a JSON object")
        return cls(synonyms={str(k): [str(s) for s in v] for k, v in table.items()})

    def expand(self, query: str) -> str:
        """Tokenize the query and append the synonyms of every known term, repeats included."""
        tokens = tokenize(query)
        expanded = list(tokens)
        for tok in tokens:
            expanded.extend((self.synonyms or {}).get(tok, []))
        return " ".join(expanded)

    def generate_variants(self, query: str) -> List[str]:
        """
        Return alternative phrasings of the query.

        Returns:
            [original, expanded form (only when synonyms were added), and two
            rephrasings "what is X" / "how does X" unless the query already
            opens with an interrogative word]
        """
        base = query.strip()
        variants = [base]

        expanded = self.expand(base)
        if expanded != " ".join(tokenize(base)):
            variants.append(expanded)

        words = base.lower().split()
        if words and words[0] not in INTERROGATIVES:
            variants.append(f"what is {base}")
            variants.append(f"how does {base}")
        return variants
