"""Tests for EmbeddingBatcher."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from pdfchat.db.models import Chunk
from pdfchat.errors import EmbeddingServiceError
from pdfchat.ingest.embedding_batcher import DEFAULT_BATCH_SIZE, EmbeddingBatcher

MODEL = "gemini/text-embedding-004"


def _chunks(n: int) -> list[Chunk]:
    return [Chunk(text=f"chunk {i}", chunk_index=i, total_chunks=n) for i in range(n)]


def _vectors(texts: list[str], dimension: int = 4) -> list[list[float]]:
    return [[float(i + 1)] * dimension for i, _ in enumerate(texts)]


# ------------------------------------------------------------------
# Batching
# ------------------------------------------------------------------


def test_default_batch_size():
    assert EmbeddingBatcher(MODEL).batch_size == DEFAULT_BATCH_SIZE == 100


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        EmbeddingBatcher(MODEL, batch_size=0)


def test_batches_partition_consecutively():
    batches = EmbeddingBatcher(MODEL, batch_size=100).batches(_chunks(250))
    assert [len(b) for b in batches] == [100, 100, 50]
    flat = [c.chunk_index for b in batches for c in b]
    assert flat == list(range(250))


def test_batches_empty():
    assert EmbeddingBatcher(MODEL).batches([]) == []


# ------------------------------------------------------------------
# embed_batch
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_batch_single_call():
    mock_embed = AsyncMock(side_effect=lambda model, texts, num_retries: _vectors(texts))
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        vectors = await EmbeddingBatcher(MODEL).embed_batch(["a", "b", "c"])
    assert len(vectors) == 3
    mock_embed.assert_awaited_once_with(MODEL, ["a", "b", "c"], num_retries=3)


@pytest.mark.asyncio
async def test_embed_batch_empty_makes_no_call():
    mock_embed = AsyncMock()
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        assert await EmbeddingBatcher(MODEL).embed_batch([]) == []
    mock_embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_embed_batch_rejects_oversized_batch():
    with pytest.raises(ValueError, match="exceeds batch_size"):
        await EmbeddingBatcher(MODEL, batch_size=2).embed_batch(["a", "b", "c"])


@pytest.mark.asyncio
async def test_embed_batch_provider_failure_wrapped():
    mock_embed = AsyncMock(side_effect=RuntimeError("rate limited"))
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        with pytest.raises(EmbeddingServiceError, match="rate limited"):
            await EmbeddingBatcher(MODEL).embed_batch(["a"])


@pytest.mark.asyncio
async def test_embed_batch_count_mismatch():
    mock_embed = AsyncMock(return_value=[[1.0, 2.0]])
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        with pytest.raises(EmbeddingServiceError, match="1 vectors for 2 texts"):
            await EmbeddingBatcher(MODEL).embed_batch(["a", "b"])


@pytest.mark.asyncio
async def test_embed_batch_inconsistent_dimensions():
    mock_embed = AsyncMock(return_value=[[1.0, 2.0], [1.0, 2.0, 3.0]])
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        with pytest.raises(EmbeddingServiceError, match="dimension"):
            await EmbeddingBatcher(MODEL).embed_batch(["a", "b"])


@pytest.mark.asyncio
async def test_embed_batch_expected_dimension_enforced():
    mock_embed = AsyncMock(return_value=[[1.0, 2.0]])
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        with pytest.raises(EmbeddingServiceError, match="expected 3"):
            await EmbeddingBatcher(MODEL).embed_batch(["a"], expected_dimension=3)


# ------------------------------------------------------------------
# embed_all
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_all_250_chunks_three_calls():
    mock_embed = AsyncMock(side_effect=lambda model, texts, num_retries: _vectors(texts))
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        vectors = await EmbeddingBatcher(MODEL, batch_size=100).embed_all(_chunks(250))

    assert len(vectors) == 250
    sizes = [len(call.args[1]) for call in mock_embed.await_args_list]
    assert sizes == [100, 100, 50]


@pytest.mark.asyncio
async def test_embed_all_preserves_order():
    async def _embed(model, texts, num_retries):
        return [[float(t.split()[1])] for t in texts]

    with patch("pdfchat.ingest.embedding_batcher.embed_many", _embed):
        vectors = await EmbeddingBatcher(MODEL, batch_size=3).embed_all(_chunks(10))
    assert vectors == [[float(i)] for i in range(10)]


@pytest.mark.asyncio
async def test_embed_all_later_batch_dimension_change_fails():
    calls = iter([[[1.0, 1.0]], [[1.0, 1.0, 1.0]]])

    async def _embed(model, texts, num_retries):
        return next(calls)

    with patch("pdfchat.ingest.embedding_batcher.embed_many", _embed):
        with pytest.raises(EmbeddingServiceError):
            await EmbeddingBatcher(MODEL, batch_size=1).embed_all(_chunks(2))


# ------------------------------------------------------------------
# iter_batches
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_iter_batches_yields_each_batch_before_embedding_the_next():
    mock_embed = AsyncMock(side_effect=lambda model, texts, num_retries: _vectors(texts))
    batcher = EmbeddingBatcher(MODEL, batch_size=2)
    seen = []

    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        async for batch, vectors in batcher.iter_batches(_chunks(5)):
            seen.append(([c.chunk_index for c in batch], mock_embed.await_count))
            assert len(vectors) == len(batch)

    assert seen == [([0, 1], 1), ([2, 3], 2), ([4], 3)]


@pytest.mark.asyncio
async def test_iter_batches_expected_dimension_applies_to_first_batch():
    mock_embed = AsyncMock(return_value=[[1.0, 1.0]])
    with patch("pdfchat.ingest.embedding_batcher.embed_many", mock_embed):
        with pytest.raises(EmbeddingServiceError, match="expected 3"):
            async for _ in EmbeddingBatcher(MODEL).iter_batches(_chunks(1), 3):
                pass
