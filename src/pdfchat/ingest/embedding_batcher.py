"""Embedding batcher — order-preserving, batch-limited embedding via LiteLLM.

Chunks are partitioned into consecutive groups of at most ``batch_size``
(the provider's own limit). Each group is one ``embed_many`` call; batches
run sequentially so memory stays bounded and provider rate limits hold.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

import structlog

from pdfchat.db.models import Chunk
from pdfchat.errors import EmbeddingServiceError
from pdfchat.rag.llm_client import embed_many

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


class EmbeddingBatcher:
    """Produce one vector per chunk, order-matched, in provider-sized batches.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        batch_size: Maximum texts per provider call.
        num_retries: LiteLLM retries per call on transient errors.
    """

    def __init__(
        self,
        model: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        num_retries: int = 3,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.batch_size = batch_size
        self.num_retries = num_retries

    def batches(self, chunks: Sequence[Chunk]) -> list[list[Chunk]]:
        """Partition *chunks* into consecutive groups of at most ``batch_size``."""
        return [
            list(chunks[i : i + self.batch_size])
            for i in range(0, len(chunks), self.batch_size)
        ]

    async def embed_batch(
        self, texts: list[str], expected_dimension: int | None = None
    ) -> list[list[float]]:
        """Embed one batch of *texts* with a single provider call.

        Args:
            texts: At most ``batch_size`` texts.
            expected_dimension: Dimension every vector must have, if already fixed.

        Raises:
            EmbeddingServiceError: On provider failure, a vector count different
                from ``len(texts)``, or inconsistent dimensions.
        """
        if len(texts) > self.batch_size:
            raise ValueError(
                f"batch of {len(texts)} texts exceeds batch_size {self.batch_size}"
            )
        if not texts:
            return []

        try:
            vectors = await embed_many(self.model, texts, num_retries=self.num_retries)
        except Exception as exc:
            raise EmbeddingServiceError(
                f"Embedding call to '{self.model}' failed: {exc}"
            ) from exc

        if len(vectors) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts"
            )

        dimension = expected_dimension if expected_dimension is not None else len(vectors[0])
        for i, vector in enumerate(vectors):
            if len(vector) != dimension:
                raise EmbeddingServiceError(
                    f"Embedding {i} has dimension {len(vector)}, expected {dimension}"
                )
        return vectors

    async def iter_batches(
        self, chunks: Sequence[Chunk], expected_dimension: int | None = None
    ) -> AsyncIterator[tuple[list[Chunk], list[list[float]]]]:
        """Yield ``(batch, vectors)`` pairs in input order, one provider call each.

        The first batch fixes the dimension when *expected_dimension* is None;
        every later batch must match it. A consumer that stores each batch as
        it arrives keeps only one batch of vectors in memory.
        """
        dimension = expected_dimension
        for n, batch in enumerate(self.batches(chunks), start=1):
            vectors = await self.embed_batch(
                [c.text for c in batch], expected_dimension=dimension
            )
            if dimension is None:
                dimension = len(vectors[0])
            logger.debug("embedding_batch_done", batch=n, size=len(batch))
            yield batch, vectors

    async def embed_all(
        self, chunks: Sequence[Chunk], expected_dimension: int | None = None
    ) -> list[list[float]]:
        """Embed every chunk, one call per batch, preserving input order."""
        vectors: list[list[float]] = []
        async for _, batch_vectors in self.iter_batches(chunks, expected_dimension):
            vectors.extend(batch_vectors)
        return vectors
