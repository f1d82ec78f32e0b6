"""Fixed-window chunker with character overlap — the alternate chunking policy."""

from __future__ import annotations

from pdfchat.db.models import Chunk
from pdfchat.ingest.base import BaseChunker


class WindowChunker(BaseChunker):
    """Split text into fixed-size character windows, ignoring paragraph boundaries.

    Window size = ``size`` characters.
    Overlap     = ``overlap`` characters shared with the previous window; the
                  next window starts ``size - overlap`` characters later.
    Segments are stripped; empty segments are omitted.

    Default: 1000 characters / 200 overlap.
    """

    def __init__(self, size: int = 1000, overlap: int = 200) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        if not 0 <= overlap < size:
            raise ValueError("overlap must be in [0, size)")
        self.size = size
        self.overlap = overlap

    def chunk(self, full_text: str) -> list[Chunk]:
        if not full_text.strip():
            return []
        return self._make_chunks(self._split_fixed_window(full_text))

    def _split_fixed_window(self, text: str) -> list[str]:
        step = self.size - self.overlap

        segments: list[str] = []
        pos = 0
        length = len(text)

        while pos < length:
            end = min(pos + self.size, length)
            segment = text[pos:end].strip()
            if segment:
                segments.append(segment)
            if end >= length:
                break
            pos += step

        return segments
