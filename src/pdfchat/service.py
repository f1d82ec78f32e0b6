"""Entry points for the outer surfaces: ingest, query, ask, startup init, status.

``PdfChatService`` wires the pipelines from a ``PdfChatConfig`` and turns
library errors into structured responses. Callers (the CLI, tests) never
see a ``PdfChatError`` from ``ingest``/``query``/``ask``; they get a response
with ``success=False`` or an empty result list plus a message.
"""

from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from pdfchat.config import PdfChatConfig
from pdfchat.db.connection import Database
from pdfchat.db.index_manager import CollectionState, VectorIndexManager
from pdfchat.db.migrations import initialize as initialize_schema
from pdfchat.db.models import RetrievedPassage
from pdfchat.db.repository import Repository
from pdfchat.errors import NoDocumentIngested, PdfChatError, VectorStoreUnavailable
from pdfchat.ingest.base import make_chunker
from pdfchat.ingest.embedding_batcher import EmbeddingBatcher
from pdfchat.ingest.pdf import PdfExtractor
from pdfchat.ingest.pipeline import IngestionPipeline
from pdfchat.rag.answer import AnswerConfig, answer
from pdfchat.rag.llm_client import validate_api_key
from pdfchat.rag.retriever import RetrievalPipeline, RetrieverConfig
from pdfchat.state import JsonStateStore, PdfState, StateStore

logger = structlog.get_logger(__name__)


@dataclass
class IngestResponse:
    success: bool
    message: str
    file_name: str | None = None
    chunks: int = 0
    verified: bool | None = None


@dataclass
class QueryResponse:
    """Result of a retrieval request.

    ``error`` carries the exception class name when retrieval could not run
    (e.g. ``"NoDocumentIngested"``); it is None for a normal, possibly empty,
    result.
    """

    results: list[RetrievedPassage]
    query: str
    file_name: str | None = None
    message: str | None = None
    error: str | None = None


@dataclass
class AnswerResponse:
    answer: str
    query: str
    results: list[RetrievedPassage] = field(default_factory=list)
    file_name: str | None = None
    message: str | None = None
    error: str | None = None


@dataclass
class ServiceStatus:
    state: PdfState
    collection: str
    collection_state: CollectionState
    dimension: int | None = None
    records: int = 0


class PdfChatService:
    """Single-document chat service over one vector store and one state file.

    Args:
        config: Merged configuration.
        conn: Open vector store connection with the schema initialized.
        state: Store recording the last ingested path.
    """

    def __init__(
        self,
        config: PdfChatConfig,
        conn: sqlite3.Connection,
        state: StateStore,
    ) -> None:
        self.config = config
        self._conn = conn
        self.state = state
        self.index = VectorIndexManager(Repository(conn))
        self.batcher = EmbeddingBatcher(
            config.embedding.model, batch_size=config.embedding.batch_size
        )
        self.ingestion = IngestionPipeline(
            extractor=PdfExtractor(),
            chunker=make_chunker(
                config.chunking.strategy,
                target_size=config.chunking.target_size,
                overlap=config.chunking.overlap,
            ),
            batcher=self.batcher,
            index=self.index,
            state=state,
            collection=config.vector_store.collection,
        )
        self.retrieval = RetrievalPipeline(
            batcher=self.batcher,
            index=self.index,
            state=state,
            config=RetrieverConfig(
                collection=config.vector_store.collection,
                top_k=config.retrieval.top_k,
            ),
        )
        self._answer_config = AnswerConfig(
            model=config.generation.model,
            token_budget=config.generation.token_budget,
        )

    @classmethod
    def open(cls, config: PdfChatConfig) -> PdfChatService:
        """Connect to the configured vector store and state file.

        Raises:
            VectorStoreUnavailable: The database file cannot be opened or its
                schema cannot be written (read-only or locked file).
            ValueError: The vector store URL uses an unsupported scheme.
        """
        conn = Database.from_url(config.vector_store.url).connect()
        try:
            initialize_schema(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise VectorStoreUnavailable(
                f"Cannot initialize vector store at '{config.vector_store.url}': {exc}"
            ) from exc
        return cls(config, conn, JsonStateStore(config.state.path))

    def close(self) -> None:
        self._conn.close()

    async def __aenter__(self) -> PdfChatService:
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    async def ingest(
        self,
        file_path: str | None,
        title: str | None = None,
        author: str | None = None,
        description: str | None = None,
    ) -> IngestResponse:
        """Ingest the PDF at *file_path*, replacing the previous document."""
        if not file_path:
            return IngestResponse(False, "Please provide a valid PDF file path")

        path = Path(file_path)
        if not path.is_file():
            return IngestResponse(False, f"File not found: {file_path}", file_name=path.name)

        resolved = str(path.resolve())
        try:
            validate_api_key(self.config.embedding.model)
            data = await asyncio.to_thread(path.read_bytes)
            outcome = await self.ingestion.ingest(
                data, resolved, title=title, author=author, description=description
            )
        except (PdfChatError, OSError) as exc:
            logger.error("ingest_failed", file=path.name, error=str(exc))
            return IngestResponse(
                False, f"Error processing PDF: {exc}", file_name=path.name
            )

        return IngestResponse(
            True,
            f"Successfully processed PDF: {outcome.file_name} "
            f"with {outcome.chunk_count} chunks",
            file_name=outcome.file_name,
            chunks=outcome.chunk_count,
        )

    async def initialize(
        self, pdf_path: str | None = None, verify_query: str | None = None
    ) -> IngestResponse:
        """Ingest the startup document; callers await this before serving queries.

        Falls back to ``document.default_path`` / ``document.verify_query``.
        When a verify query is set, one retrieval is run afterwards and the
        outcome is reported in ``verified``.
        """
        pdf_path = pdf_path or self.config.document.default_path
        verify_query = verify_query or self.config.document.verify_query
        if not pdf_path:
            return IngestResponse(False, "No startup document configured")

        logger.info("startup_ingest", path=pdf_path)
        response = await self.ingest(pdf_path)
        if not response.success or not verify_query:
            return response

        check = await self.query(verify_query, top_k=1)
        response.verified = bool(check.results)
        if response.verified:
            logger.info("startup_verified", top_score=check.results[0].score)
        else:
            logger.warning("startup_verify_empty", query=verify_query, reason=check.message)
        return response

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    async def query(
        self,
        query: str | None,
        file_path: str | None = None,
        top_k: int | None = None,
    ) -> QueryResponse:
        """Return ranked passages for *query*. Never raises for library errors."""
        text = query or ""
        if not text.strip():
            return QueryResponse([], text, message="Empty query")

        try:
            document = self.retrieval.resolve_document(file_path)
        except NoDocumentIngested as exc:
            return QueryResponse(
                [],
                text,
                message=f"{exc}. Ingest a PDF first.",
                error=type(exc).__name__,
            )

        file_name = Path(document).name
        try:
            validate_api_key(self.config.embedding.model)
            results = await self.retrieval.retrieve(text, top_k=top_k, file_path=document)
        except (PdfChatError, OSError) as exc:
            logger.error("query_failed", file=file_name, error=str(exc))
            return QueryResponse(
                [],
                text,
                file_name=file_name,
                message=f"Error querying PDF: {exc}",
                error=type(exc).__name__,
            )

        message = (
            f"Found {len(results)} matching chunks" if results else "No matching content found"
        )
        return QueryResponse(results, text, file_name=file_name, message=message)

    async def ask(
        self,
        question: str | None,
        file_path: str | None = None,
        top_k: int | None = None,
    ) -> AnswerResponse:
        """Retrieve passages for *question* and answer it with the chat model."""
        retrieved = await self.query(question, file_path=file_path, top_k=top_k)
        if retrieved.error:
            return AnswerResponse(
                answer="",
                query=retrieved.query,
                file_name=retrieved.file_name,
                message=retrieved.message,
                error=retrieved.error,
            )

        try:
            if retrieved.results:
                validate_api_key(self._answer_config.model)
            result = await answer(retrieved.query, retrieved.results, self._answer_config)
        except (PdfChatError, OSError) as exc:
            logger.error("answer_failed", error=str(exc))
            return AnswerResponse(
                answer="",
                query=retrieved.query,
                results=retrieved.results,
                file_name=retrieved.file_name,
                message=f"Error generating answer: {exc}",
                error=type(exc).__name__,
            )

        return AnswerResponse(
            answer=result.text,
            query=retrieved.query,
            results=result.passages or retrieved.results,
            file_name=retrieved.file_name,
            message=retrieved.message,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def status(self) -> ServiceStatus:
        name = self.config.vector_store.collection
        collection = await self.index.get_collection(name)
        return ServiceStatus(
            state=self.state.get(),
            collection=name,
            collection_state=await self.index.state(name),
            dimension=collection.dimension if collection else None,
            records=await self.index.count(name) if collection else 0,
        )
