"""pdfchat ingest pipeline — extraction, chunkers, embedding batcher."""

from pdfchat.ingest.base import BaseChunker, make_chunker
from pdfchat.ingest.embedding_batcher import EmbeddingBatcher
from pdfchat.ingest.paragraph import ParagraphChunker
from pdfchat.ingest.pdf import PdfExtractor
from pdfchat.ingest.pipeline import IngestionPipeline, IngestOutcome
from pdfchat.ingest.window import WindowChunker

__all__ = [
    "BaseChunker",
    "EmbeddingBatcher",
    "IngestionPipeline",
    "IngestOutcome",
    "ParagraphChunker",
    "PdfExtractor",
    "WindowChunker",
    "make_chunker",
]
