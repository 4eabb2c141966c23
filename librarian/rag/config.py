"""
Configuration for RAG retrieval pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR = ROOT / "data"
DEFAULT_EMBEDDING_MODEL = "BAAI/bge-small-en-v1.5"

FRAGMENTS_FILENAME = "fragments.jsonl"
EMBEDDINGS_FILENAME = "embeddings.npz"


@dataclass
class RetrievalConfig:
    """Configuration for RAG retrieval."""

    k1: float = 1.5
    b: float = 0.75
    hybrid_weight: float = 0.5
    top_k: int = 5
    oversample: int = 2
    max_hops: int = 2
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    synonyms_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.hybrid_weight <= 1.0:
            raise ValueError("hybrid_weight must be between 0 and 1")
        self.data_dir = Path(self.data_dir)
        if self.synonyms_path is not None:
            self.synonyms_path = Path(self.synonyms_path)

    @property
    def fragments_path(self) -> Path:
        return self.data_dir / FRAGMENTS_FILENAME

    @property
    def embeddings_path(self) -> Path:
        return self.data_dir / EMBEDDINGS_FILENAME

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        """Build a config from environment variables (and a project-root .env if present)."""
        env_file = ROOT / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        synonyms = os.getenv("LIBRARIAN_SYNONYMS_PATH")
        return cls(
            hybrid_weight=float(os.getenv("LIBRARIAN_HYBRID_WEIGHT", "0.5")),
            top_k=int(os.getenv("LIBRARIAN_TOP_K", "5")),
            max_hops=int(os.getenv("LIBRARIAN_MAX_HOPS", "2")),
            data_dir=Path(os.getenv("LIBRARIAN_DATA_DIR", str(DEFAULT_DATA_DIR))),
            embedding_model=os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            synonyms_path=Path(synonyms) if synonyms else None,
        )
