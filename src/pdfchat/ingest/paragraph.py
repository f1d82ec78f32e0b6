"""Paragraph/sentence chunker — the default chunking policy.

Strategy:
- Split the text on blank lines into paragraphs.
- A paragraph longer than 1.5 × target_size is split into sentences, which
  are accumulated (joined by a space) until the next one would overflow
  target_size.
- Any other paragraph is appended whole (joined by a blank line) or starts a
  new chunk when it would overflow.
- A single sentence longer than target_size is kept whole: chunks never cut
  mid-sentence, so such a chunk is oversized.
"""

from __future__ import annotations

import re

from pdfchat.db.models import Chunk
from pdfchat.ingest.base import BaseChunker

_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f\v]*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")

_SENTENCE_SEP = " "
_PARAGRAPH_SEP = "\n\n"


class ParagraphChunker(BaseChunker):
    """Split text into paragraph-coherent chunks of about ``target_size`` characters.

    Default: 1000 characters.
    """

    def __init__(self, target_size: int = 1000) -> None:
        if target_size < 1:
            raise ValueError("target_size must be >= 1")
        self.target_size = target_size

    def chunk(self, full_text: str) -> list[Chunk]:
        if not full_text.strip():
            return []

        sealed: list[str] = []
        current = ""

        def seal() -> None:
            text = current.strip()
            if text:
                sealed.append(text)

        for paragraph in self._paragraphs(full_text):
            if len(paragraph) > self.target_size * 1.5:
                for sentence in _SENTENCE_END.split(paragraph):
                    if not sentence:
                        continue
                    if len(current) + len(_SENTENCE_SEP) + len(sentence) <= self.target_size:
                        current = f"{current}{_SENTENCE_SEP}{sentence}" if current else sentence
                    else:
                        seal()
                        current = sentence
            elif len(current) + len(_PARAGRAPH_SEP) + len(paragraph) <= self.target_size:
                current = f"{current}{_PARAGRAPH_SEP}{paragraph}" if current else paragraph
            else:
                seal()
                current = paragraph

        seal()
        return self._make_chunks(sealed)

    @staticmethod
    def _paragraphs(text: str) -> list[str]:
        return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]
