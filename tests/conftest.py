"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from pdfchat.db.connection import Database
from pdfchat.db.migrations import initialize
from pdfchat.db.repository import Repository
from pdfchat.db.index_manager import VectorIndexManager


@pytest.fixture
def tmp_db(tmp_path):
    """File-based vector store in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".pdfchat.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def index(repo):
    return VectorIndexManager(repo)


def fake_vector(text: str, dimension: int = 8) -> list[float]:
    """Deterministic non-zero embedding derived from the characters of *text*."""
    vector = [0.0] * dimension
    for i, ch in enumerate(text):
        vector[i % dimension] += (ord(ch) % 31) + 1
    return vector


@pytest.fixture
def fake_embed():
    """Async stand-in for llm_client.embed_many returning fake_vector() per text."""

    async def _embed(model, texts, num_retries=3):
        return [fake_vector(t) for t in texts]

    return _embed


@pytest.fixture
def vector_for():
    """The fake_vector() function used by fake_embed, for populating an index directly."""
    return fake_vector
