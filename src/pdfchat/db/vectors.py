"""Per-collection sqlite-vec virtual table management."""

from __future__ import annotations

import re
import sqlite3


def collection_to_slug(name: str) -> str:
    """Convert a collection name to a valid table name suffix.

    Examples:
        "pdf_documents" -> "pdf_documents"
        "PDF-Documents v2" -> "pdf_documents_v2"
    """
    return re.sub(r"[^a-z0-9]", "_", name.lower())


def vec_table_name(slug: str) -> str:
    """Return the full vec table name for a collection slug."""
    return f"vec_records_{slug}"


def create_vec_table(conn: sqlite3.Connection, slug: str, dimensions: int) -> str:
    """Create the vec_records_{slug} virtual table with cosine distance.

    Does not commit; the caller owns the transaction.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        slug: Sanitized collection identifier (use collection_to_slug()).
        dimensions: Embedding vector dimensions (e.g. 768 for text-embedding-004).

    Returns:
        The table name (vec_records_{slug}).
    """
    if not re.fullmatch(r"[a-z0-9_]+", slug):
        raise ValueError(
            f"Invalid slug '{slug}' — use collection_to_slug() to sanitize."
        )
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    table = vec_table_name(slug)
    conn.execute(
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {table} "
        f"USING vec0(embedding float[{dimensions}] distance_metric=cosine)"
    )
    return table


def drop_vec_table(conn: sqlite3.Connection, table: str) -> None:
    """Drop a vec table if it exists. Does not commit."""
    if not re.fullmatch(r"vec_records_[a-z0-9_]+", table):
        raise ValueError(f"Refusing to drop non-vec table '{table}'")
    conn.execute(f"DROP TABLE IF EXISTS {table}")
