"""Tests for the Database connection layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from pdfchat.db.connection import Database, path_from_url
from pdfchat.errors import VectorStoreUnavailable


def test_path_from_sqlite_url():
    assert path_from_url("sqlite:///.pdfchat.db") == Path(".pdfchat.db")


def test_path_from_absolute_sqlite_url():
    assert path_from_url("sqlite:////var/lib/pdfchat.db") == Path("/var/lib/pdfchat.db")


def test_path_from_plain_path():
    assert path_from_url("data/index.db") == Path("data/index.db")


def test_path_from_unsupported_scheme():
    with pytest.raises(ValueError, match="Unsupported vector store URL"):
        path_from_url("http://localhost:6333")


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / "store.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_sqlite_vec_loaded(tmp_path):
    conn = Database(tmp_path / "store.db").connect()
    version = conn.execute("SELECT vec_version()").fetchone()[0]
    conn.close()
    assert version


def test_foreign_keys_enabled(tmp_path):
    conn = Database(tmp_path / "store.db").connect()
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    conn.close()


def test_from_url(tmp_path):
    db = Database.from_url(f"sqlite:///{tmp_path / 'x.db'}")
    assert db.db_path == tmp_path / "x.db"


def test_context_manager_closes(tmp_path):
    db = Database(tmp_path / "store.db")
    with db as conn:
        conn.execute("SELECT 1")
    assert db._conn is None


def test_unopenable_path_raises_unavailable(tmp_path):
    with pytest.raises(VectorStoreUnavailable):
        Database(tmp_path / "missing-dir" / "store.db").connect()
