"""Configuration for answer generation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GenerationConfig:
    """Settings for RAG answer generation."""

    top_k: int = 5
    use_multi_hop: bool = False
    max_hops: int = 2
