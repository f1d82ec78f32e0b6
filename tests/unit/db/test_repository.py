"""Tests for the Repository (collections + vector records on sqlite-vec)."""

from __future__ import annotations

import json
import sqlite3
from unittest.mock import patch

import pytest

from pdfchat.db.models import ChunkMetadata, IndexRecord
from pdfchat.db.repository import MAX_KNN_K
from pdfchat.errors import CollectionNotFound, PdfChatError


def _record(id: str, vector: list[float], text: str = "t", index: int = 0) -> IndexRecord:
    return IndexRecord(
        id=id,
        vector=vector,
        metadata=ChunkMetadata(text=text, file_name="doc.pdf", chunk_index=index, total_chunks=3),
    )


# ------------------------------------------------------------------
# Collections
# ------------------------------------------------------------------


def test_get_collection_missing(repo):
    assert repo.get_collection("pdf_documents") is None


def test_create_collection(repo):
    collection = repo.create_collection("pdf_documents", 4)
    assert collection.name == "pdf_documents"
    assert collection.dimension == 4
    assert collection.vec_table == "vec_records_pdf_documents"
    assert collection.created_at is not None


def test_create_duplicate_collection_raises(repo):
    repo.create_collection("pdf_documents", 4)
    with pytest.raises(ValueError, match="already exists"):
        repo.create_collection("pdf_documents", 4)


def test_create_collection_replaces_orphan_vec_table(repo, tmp_db):
    tmp_db.execute(
        "CREATE VIRTUAL TABLE vec_records_pdf_documents USING vec0(embedding float[2])"
    )
    collection = repo.create_collection("pdf_documents", 4)
    assert collection.dimension == 4
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])


def test_list_collections(repo):
    repo.create_collection("b", 2)
    repo.create_collection("a", 3)
    assert [c.name for c in repo.list_collections()] == ["a", "b"]


def test_delete_collection(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])
    repo.delete_collection("pdf_documents")
    assert repo.get_collection("pdf_documents") is None
    assert repo.count_points("pdf_documents") == 0


def test_delete_missing_collection_raises(repo):
    with pytest.raises(CollectionNotFound):
        repo.delete_collection("pdf_documents")


def test_recreate_with_other_dimension_after_delete(repo):
    repo.create_collection("pdf_documents", 4)
    repo.delete_collection("pdf_documents")
    assert repo.create_collection("pdf_documents", 8).dimension == 8


# ------------------------------------------------------------------
# Points
# ------------------------------------------------------------------


def test_upsert_and_count(repo):
    repo.create_collection("pdf_documents", 4)
    written = repo.upsert_points(
        "pdf_documents",
        [_record("a", [1.0, 0.0, 0.0, 0.0]), _record("b", [0.0, 1.0, 0.0, 0.0])],
    )
    assert written == 2
    assert repo.count_points("pdf_documents") == 2


def test_upsert_is_additive(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])
    repo.upsert_points("pdf_documents", [_record("b", [0.0, 1.0, 0.0, 0.0])])
    assert repo.count_points("pdf_documents") == 2


def test_upsert_missing_collection(repo):
    with pytest.raises(CollectionNotFound):
        repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])


def test_upsert_rolls_back_on_error(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])
    with pytest.raises(sqlite3.IntegrityError):
        repo.upsert_points(
            "pdf_documents",
            [_record("b", [0.0, 1.0, 0.0, 0.0]), _record("a", [0.0, 0.0, 1.0, 0.0])],
        )
    assert repo.count_points("pdf_documents") == 1


def test_metadata_stored_as_json(repo, tmp_db):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0], text="hello")])
    raw = tmp_db.execute("SELECT metadata FROM records WHERE id = 'a'").fetchone()[0]
    assert json.loads(raw)["text"] == "hello"


def test_query_orders_by_similarity(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points(
        "pdf_documents",
        [
            _record("far", [0.0, 0.0, 0.0, 1.0], text="far"),
            _record("near", [1.0, 0.1, 0.0, 0.0], text="near"),
            _record("mid", [1.0, 1.0, 0.0, 0.0], text="mid"),
        ],
    )
    hits = repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=3)
    assert [h.id for h in hits] == ["near", "mid", "far"]
    assert hits[0].score == pytest.approx(0.995, abs=0.01)
    assert hits[2].score == pytest.approx(0.0, abs=1e-6)
    assert hits[0].metadata.text == "near"


def test_query_respects_top_k(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points(
        "pdf_documents",
        [_record(str(i), [1.0, float(i), 0.0, 0.0]) for i in range(5)],
    )
    assert len(repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=2)) == 2


def test_query_top_k_zero(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points("pdf_documents", [_record("a", [1.0, 0.0, 0.0, 0.0])])
    assert repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=0) == []


def test_query_empty_collection(repo):
    repo.create_collection("pdf_documents", 4)
    assert repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=5) == []


def test_query_missing_collection(repo):
    with pytest.raises(CollectionNotFound):
        repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=5)


def test_query_top_k_above_knn_limit(repo):
    repo.create_collection("pdf_documents", 4)
    repo.upsert_points(
        "pdf_documents",
        [_record("a", [1.0, 0.0, 0.0, 0.0]), _record("b", [0.0, 1.0, 0.0, 0.0])],
    )
    hits = repo.query_points("pdf_documents", [1.0, 0.0, 0.0, 0.0], top_k=MAX_KNN_K + 904)
    assert [h.id for h in hits] == ["a", "b"]


def test_create_collection_rejects_clashing_table_name(repo):
    repo.create_collection("pdf_docs", 4)
    repo.upsert_points("pdf_docs", [_record("a", [1.0, 0.0, 0.0, 0.0])])

    with pytest.raises(PdfChatError, match="clashes with existing collection 'pdf_docs'"):
        repo.create_collection("pdf-docs", 4)

    assert repo.get_collection("pdf-docs") is None
    assert repo.count_points("pdf_docs") == 1
    assert len(repo.query_points("pdf_docs", [1.0, 0.0, 0.0, 0.0], top_k=5)) == 1


def test_create_collection_row_missing_after_insert(repo):
    with patch.object(repo, "get_collection", return_value=None):
        with pytest.raises(PdfChatError, match="missing right after creation"):
            repo.create_collection("pdf_documents", 4)
