"""SQLite connection layer with sqlite-vec extension."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

from pdfchat.errors import VectorStoreUnavailable

_SQLITE_SCHEME = "sqlite:///"


def path_from_url(url: str) -> Path:
    """Resolve a vector store URL to a database file path.

    Examples:
        "sqlite:///.pdfchat.db"        -> ".pdfchat.db"
        "sqlite:////var/lib/pdfchat.db" -> "/var/lib/pdfchat.db"
        "data/index.db"                -> "data/index.db"
    """
    if url.startswith(_SQLITE_SCHEME):
        return Path(url[len(_SQLITE_SCHEME):])
    if "://" in url:
        raise ValueError(f"Unsupported vector store URL '{url}' — use sqlite:///PATH")
    return Path(url)


class Database:
    """Single-file SQLite vector store with sqlite-vec search support."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @classmethod
    def from_url(cls, url: str) -> Database:
        return cls(path_from_url(url))

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        The connection may be used from worker threads (``asyncio.to_thread``);
        callers serialize access.

        Raises:
            VectorStoreUnavailable: If the database file cannot be opened.
        """
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.OperationalError as exc:
            raise VectorStoreUnavailable(
                f"Cannot open vector store at '{self.db_path}': {exc}"
            ) from exc
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
