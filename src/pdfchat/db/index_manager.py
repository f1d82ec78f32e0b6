"""Vector index lifecycle: reset, create-with-dimension, upsert, query.

A collection moves ABSENT -> CREATED -> POPULATED. ``reset`` returns it to
ABSENT from any state. Exclusivity of "one document per collection" is the
ingestion pipeline's job (it resets first); ``upsert`` here is additive.

Store calls are blocking sqlite operations, run in a worker thread so the
event loop is not held. Connectivity failures surface as
``VectorStoreUnavailable`` and are never retried here.
"""

from __future__ import annotations

import asyncio
import sqlite3
from enum import Enum
from typing import Any, Callable, TypeVar

import structlog

from pdfchat.db.models import ChunkMetadata, Collection, IndexRecord, ScoredRecord
from pdfchat.db.repository import Repository
from pdfchat.errors import (
    CollectionNotFound,
    DimensionMismatchError,
    IndexCreationError,
    PdfChatError,
    VectorStoreUnavailable,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CollectionState(str, Enum):
    ABSENT = "absent"
    CREATED = "created"
    POPULATED = "populated"


class VectorIndexManager:
    """Own the lifecycle of named vector collections in one store.

    Args:
        repo: Repository over an open vector store connection.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.OperationalError as exc:
            raise VectorStoreUnavailable(f"Vector store error: {exc}") from exc

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def state(self, name: str) -> CollectionState:
        collection = await self._run(self._repo.get_collection, name)
        if collection is None:
            return CollectionState.ABSENT
        count = await self._run(self._repo.count_points, name)
        return CollectionState.POPULATED if count else CollectionState.CREATED

    async def get_collection(self, name: str) -> Collection | None:
        return await self._run(self._repo.get_collection, name)

    async def count(self, name: str) -> int:
        return await self._run(self._repo.count_points, name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def reset(self, name: str) -> None:
        """Delete collection *name* if present. Best-effort; never raises.

        A missing collection counts as success. Any other failure is logged
        and swallowed so the caller can make forward progress.
        """
        try:
            await self._run(self._repo.delete_collection, name)
        except CollectionNotFound:
            logger.debug("collection_reset_noop", collection=name)
            return
        except (PdfChatError, sqlite3.Error) as exc:
            logger.warning("collection_reset_failed", collection=name, error=str(exc))
            return
        logger.info("collection_reset", collection=name)

    async def ensure_created(self, name: str, dimension: int) -> Collection:
        """Create collection *name* with *dimension* unless it already exists.

        Raises:
            IndexCreationError: If the collection exists with another dimension.
        """
        existing = await self._run(self._repo.get_collection, name)
        if existing is not None:
            if existing.dimension != dimension:
                raise IndexCreationError(name, existing.dimension, dimension)
            return existing
        collection = await self._run(self._repo.create_collection, name, dimension)
        logger.info("collection_created", collection=name, dimension=dimension)
        return collection

    async def upsert(
        self,
        name: str,
        ids: list[str],
        vectors: list[list[float]],
        metadata_list: list[ChunkMetadata],
    ) -> int:
        """Add records to collection *name*. Returns the number written.

        Raises:
            ValueError: If the three lists differ in length.
            CollectionNotFound: If the collection is ABSENT.
            DimensionMismatchError: If any vector does not match the collection.
        """
        if not len(ids) == len(vectors) == len(metadata_list):
            raise ValueError(
                f"ids ({len(ids)}), vectors ({len(vectors)}) and metadata "
                f"({len(metadata_list)}) must have equal length"
            )
        collection = await self._run(self._repo.get_collection, name)
        if collection is None:
            raise CollectionNotFound(name)
        for vector in vectors:
            if len(vector) != collection.dimension:
                raise DimensionMismatchError(name, collection.dimension, len(vector))

        records = [
            IndexRecord(id=i, vector=v, metadata=m)
            for i, v, m in zip(ids, vectors, metadata_list)
        ]
        written = await self._run(self._repo.upsert_points, name, records)
        logger.debug("collection_upsert", collection=name, records=written)
        return written

    async def query(
        self, name: str, query_vector: list[float], top_k: int
    ) -> list[ScoredRecord]:
        """Return up to *top_k* records by descending similarity.

        Returns an empty list for ``top_k <= 0`` or an empty collection.

        Raises:
            CollectionNotFound: If the collection is ABSENT.
            DimensionMismatchError: If *query_vector* does not match the collection.
        """
        collection = await self._run(self._repo.get_collection, name)
        if collection is None:
            raise CollectionNotFound(name)
        if top_k <= 0:
            return []
        if len(query_vector) != collection.dimension:
            raise DimensionMismatchError(name, collection.dimension, len(query_vector))
        return await self._run(self._repo.query_points, name, query_vector, top_k)
