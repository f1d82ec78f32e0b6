"""Base chunker interface and strategy selection."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pdfchat.db.models import Chunk

STRATEGIES = ("paragraph", "window")


class BaseChunker(ABC):
    """Abstract base for chunking strategies.

    Subclasses implement ``chunk()`` and build their result with
    ``_make_chunks()`` so that ``total_chunks`` is fixed on every chunk.
    Sizes are character counts.
    """

    @abstractmethod
    def chunk(self, full_text: str) -> list[Chunk]:
        """Split *full_text* into ordered Chunk objects.

        Returns:
            Chunks with sequential ``chunk_index`` starting at 0. Empty or
            whitespace-only text yields an empty list.
        """

    @staticmethod
    def _make_chunks(texts: list[str]) -> list[Chunk]:
        """Convert sealed texts into sequentially indexed Chunks."""
        total = len(texts)
        return [
            Chunk(text=t, chunk_index=i, total_chunks=total)
            for i, t in enumerate(texts)
        ]


def make_chunker(
    strategy: str = "paragraph",
    target_size: int = 1000,
    overlap: int = 200,
) -> BaseChunker:
    """Return the chunker for *strategy* ('paragraph' or 'window').

    Args:
        strategy: Chunking policy name.
        target_size: Target chunk size (paragraph) or window size (window), in characters.
        overlap: Character overlap between consecutive windows (window only).
    """
    from pdfchat.ingest.paragraph import ParagraphChunker
    from pdfchat.ingest.window import WindowChunker

    if strategy == "paragraph":
        return ParagraphChunker(target_size=target_size)
    if strategy == "window":
        return WindowChunker(size=target_size, overlap=overlap)
    raise ValueError(
        f"Unknown chunking strategy '{strategy}' — expected one of {', '.join(STRATEGIES)}"
    )
