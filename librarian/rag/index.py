"""
Core data loading utilities for RAG over document fragments.
"""

from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .config import RetrievalConfig


@dataclasses.dataclass(frozen=True)
class Fragment:
    """Represents a single retrievable fragment of a source document."""

    id: str
    text: str
    source: str
    page: Optional[int] = None
    section: Optional[str] = None
    chapter: Optional[str] = None

    @property
    def metadata(self) -> Dict[str, str]:
        meta = {"source": self.source}
        if self.page is not None:
            meta["page"] = str(self.page)
        if self.section:
            meta["section"] = self.section
        if self.chapter:
            meta["chapter"] = self.chapter
        return meta

    def to_dict(self) -> Dict[str, object]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, obj: Dict[str, object]) -> "Fragment":
        page = obj.get("page")
        return cls(
            id=str(obj["id"]),
            text=str(obj["text"]),
            source=str(obj.get("source", "")),
            page=int(page) if page is not None else None,
            section=obj.get("section"),
            chapter=obj.get("chapter"),
        )


def load_fragments(path: Path | None = None) -> List[Fragment]:
    """
    Load fragments from a JSONL file.

    A missing file is an empty corpus. A malformed line raises ValueError
    naming the line, since it means ingestion produced a broken corpus.
    """
    if path is None:
        path = RetrievalConfig().fragments_path
    if not path.exists():
        return []

    fragments: List[Fragment] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                fragments.append(Fragment.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Malformed fragment at {path}:{lineno}: {e}") from e
    return fragments


def save_fragments(fragments: Iterable[Fragment], path: Path) -> None:
    """Write fragments as JSONL, replacing the file in one step."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        for frag in fragments:
            f.write(json.dumps(frag.to_dict(), ensure_ascii=False) + "\n")
    os.replace(tmp, path)

