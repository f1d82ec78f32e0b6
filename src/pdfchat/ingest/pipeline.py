"""Ingestion pipeline: extract → chunk → reset → embed/create/upsert → record state.

Ordering within one run: ``reset`` strictly precedes ``ensure_created``,
which strictly precedes every ``upsert``; the state store is written only
after the last upsert succeeded. Any failure aborts the run and leaves the
state store untouched. There is no rollback: a failed or cancelled run may
leave the collection reset or partially populated.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path

import structlog

from pdfchat.db.index_manager import VectorIndexManager
from pdfchat.db.models import Chunk, ChunkMetadata
from pdfchat.errors import DocumentParseError
from pdfchat.ingest.base import BaseChunker
from pdfchat.ingest.embedding_batcher import EmbeddingBatcher
from pdfchat.ingest.pdf import PdfExtractor
from pdfchat.state import StateStore, record_processed

logger = structlog.get_logger(__name__)


@dataclass
class IngestOutcome:
    file_name: str
    chunk_count: int


class IngestionPipeline:
    """Ingest one PDF into a single-document collection.

    Args:
        extractor: Document extraction adapter.
        chunker: Chunking strategy.
        batcher: Embedding batcher.
        index: Vector index manager.
        state: Store recording the last successfully ingested path.
        collection: Name of the collection this pipeline owns.
    """

    def __init__(
        self,
        extractor: PdfExtractor,
        chunker: BaseChunker,
        batcher: EmbeddingBatcher,
        index: VectorIndexManager,
        state: StateStore,
        collection: str,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._batcher = batcher
        self._index = index
        self._state = state
        self.collection = collection

    async def ingest(
        self,
        document_bytes: bytes,
        file_path: str,
        title: str | None = None,
        author: str | None = None,
        description: str | None = None,
    ) -> IngestOutcome:
        """Replace the collection contents with the chunks of one document.

        Raises:
            DocumentParseError: Unreadable PDF or no extractable text.
            EmbeddingServiceError: An embedding batch failed.
            IndexCreationError: Collection dimension conflict.
            VectorStoreUnavailable: The vector store could not be reached.
        """
        file_name = Path(file_path).name
        log = logger.bind(file=file_name, collection=self.collection)

        pages = await asyncio.to_thread(self._extractor.extract_pages, document_bytes)
        full_text = self._extractor.join_pages(pages)
        log.info("pdf_extracted", pages=len(pages), characters=len(full_text))

        chunks = self._chunker.chunk(full_text)
        if not chunks:
            raise DocumentParseError(f"No extractable text in '{file_name}'")
        log.info("pdf_chunked", chunks=len(chunks))

        base_metadata = ChunkMetadata(
            title=title or Path(file_path).stem,
            file_name=file_name,
            author=author or "Unknown",
            description=description or "",
            source=file_path,
            page_count=len(pages),
        )

        await self._index.reset(self.collection)

        n = 0
        async for batch, vectors in self._batcher.iter_batches(chunks):
            n += 1
            if n == 1:
                await self._index.ensure_created(self.collection, len(vectors[0]))

            ids = [str(uuid.uuid4()) for _ in batch]
            metadata = [_chunk_metadata(base_metadata, c) for c in batch]
            await self._index.upsert(self.collection, ids, vectors, metadata)
            log.info("batch_stored", batch=n, size=len(batch))

        record_processed(
            self._state,
            file_path,
            {
                "fileName": file_name,
                "title": base_metadata.title,
                "author": base_metadata.author,
                "description": base_metadata.description,
                "chunks": len(chunks),
                "pageCount": len(pages),
            },
        )
        log.info("pdf_ingested", chunks=len(chunks))
        return IngestOutcome(file_name=file_name, chunk_count=len(chunks))


def _chunk_metadata(base: ChunkMetadata, chunk: Chunk) -> ChunkMetadata:
    return ChunkMetadata(
        text=chunk.text,
        title=base.title,
        file_name=base.file_name,
        author=base.author,
        description=base.description,
        chunk_index=chunk.chunk_index,
        total_chunks=chunk.total_chunks,
        source=base.source,
        page_count=base.page_count,
    )
