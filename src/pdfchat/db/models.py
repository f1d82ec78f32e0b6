"""Domain models for the pdfchat retrieval core."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any


@dataclass(frozen=True)
class Chunk:
    text: str
    chunk_index: int
    total_chunks: int


@dataclass
class ChunkMetadata:
    """Fixed-field metadata stored with every index record.

    ``text`` always carries the full chunk text so query results can be
    shaped without a second lookup.
    """

    text: str = ""
    title: str = ""
    file_name: str = ""
    author: str = "Unknown"
    description: str = ""
    chunk_index: int = 0
    total_chunks: int = 0
    source: str = ""
    page_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChunkMetadata:
        """Build from a stored dict; unknown keys are ignored, missing keys default."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})


@dataclass
class IndexRecord:
    id: str
    vector: list[float]
    metadata: ChunkMetadata


@dataclass
class ScoredRecord:
    """A query hit. ``score`` is cosine similarity (higher = more similar)."""

    id: str
    score: float
    metadata: ChunkMetadata


@dataclass
class Collection:
    name: str
    dimension: int
    vec_table: str
    created_at: str | None = None


@dataclass
class RetrievedPassage:
    text: str
    score: float
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
