"""Retrieval pipeline: query embedding → vector query → ranked passages.

Read-during-write race: there is no isolation between a retrieval and an
ingestion running at the same time. A query issued mid-ingest may see the
previous document, a collection that was reset but not yet recreated (an
empty result), or the new document partially upserted.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pdfchat.db.index_manager import VectorIndexManager
from pdfchat.db.models import RetrievedPassage, ScoredRecord
from pdfchat.errors import CollectionNotFound, NoDocumentIngested
from pdfchat.ingest.embedding_batcher import EmbeddingBatcher
from pdfchat.state import StateStore

logger = structlog.get_logger(__name__)


@dataclass
class RetrieverConfig:
    """Configuration for the retrieval pipeline.

    Attributes:
        collection: Name of the collection to query.
        top_k: Default maximum number of passages to return.
    """

    collection: str = "pdf_documents"
    top_k: int = 5


class RetrievalPipeline:
    """Turn a free-text query into a ranked list of supporting passages.

    Args:
        batcher: The same embedding batcher used at ingestion time.
        index: Vector index manager.
        state: Store holding the last ingested path.
        config: Retriever configuration.
    """

    def __init__(
        self,
        batcher: EmbeddingBatcher,
        index: VectorIndexManager,
        state: StateStore,
        config: RetrieverConfig | None = None,
    ) -> None:
        self._batcher = batcher
        self._index = index
        self._state = state
        self.config = config or RetrieverConfig()

    def resolve_document(self, file_path: str | None = None) -> str:
        """Return *file_path*, else the last ingested path.

        Raises:
            NoDocumentIngested: If neither is available.
        """
        if file_path:
            return file_path
        last = self._state.get().last_processed_pdf_path
        if not last:
            raise NoDocumentIngested(
                "No document has been ingested yet and no file path was given"
            )
        return last

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        file_path: str | None = None,
    ) -> list[RetrievedPassage]:
        """Return up to *top_k* passages, most similar first.

        An empty or whitespace-only query returns ``[]`` without touching the
        embedding service. "Nothing found" is always ``[]``, never an error.

        Raises:
            NoDocumentIngested: No explicit path and no prior ingestion.
            EmbeddingServiceError: The query could not be embedded.
            VectorStoreUnavailable: The vector store could not be reached.
        """
        if not query or not query.strip():
            return []

        k = self.config.top_k if top_k is None else top_k
        document = self.resolve_document(file_path)
        log = logger.bind(collection=self.config.collection, document=document)

        collection = await self._index.get_collection(self.config.collection)
        vectors = await self._batcher.embed_batch(
            [query],
            expected_dimension=collection.dimension if collection else None,
        )

        try:
            records = await self._index.query(self.config.collection, vectors[0], k)
        except CollectionNotFound:
            log.warning("retrieval_collection_absent")
            return []

        if records:
            log.info("retrieval_done", results=len(records), top_score=records[0].score)
        else:
            log.info("retrieval_empty")
        return [_to_passage(r) for r in records]


def _to_passage(record: ScoredRecord) -> RetrievedPassage:
    return RetrievedPassage(
        text=record.metadata.text or "",
        score=record.score,
        metadata=record.metadata,
    )
