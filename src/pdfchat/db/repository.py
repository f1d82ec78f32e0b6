"""Repository implementing the vector store wire contract on sqlite-vec.

Wire contract: delete_collection, create_collection, upsert_points, query_points.
Each collection owns one vec0 table (rowid = records.rowid) and a row in
``collections`` holding its fixed dimension.
"""

from __future__ import annotations

import json
import sqlite3

from pdfchat.db.models import ChunkMetadata, Collection, IndexRecord, ScoredRecord
from pdfchat.db.vectors import (
    collection_to_slug,
    create_vec_table,
    drop_vec_table,
    vec_table_name,
)
from pdfchat.errors import CollectionNotFound, PdfChatError

# sqlite-vec rejects KNN queries with k above this.
MAX_KNN_K = 4096


class Repository:
    """Data access layer for collections and their vector records.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. All methods are blocking; the async
    ``VectorIndexManager`` runs them in a worker thread.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see pdfchat.db.migrations.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def get_collection(self, name: str) -> Collection | None:
        """Return the collection named *name*, or None if it does not exist."""
        row = self._conn.execute(
            "SELECT name, dimension, vec_table, created_at FROM collections WHERE name = ?",
            (name,),
        ).fetchone()
        return _row_to_collection(row) if row else None

    def list_collections(self) -> list[Collection]:
        rows = self._conn.execute(
            "SELECT name, dimension, vec_table, created_at FROM collections ORDER BY name"
        ).fetchall()
        return [_row_to_collection(r) for r in rows]

    def create_collection(self, name: str, dimension: int) -> Collection:
        """Create collection *name* with a fixed vector *dimension*.

        Args:
            name: Collection name.
            dimension: Vector dimension every record must match.

        Returns:
            The new Collection.

        Raises:
            ValueError: If a collection with this name already exists.
            PdfChatError: If another collection's name maps to the same vec table.
        """
        if self.get_collection(name) is not None:
            raise ValueError(f"Collection '{name}' already exists")
        slug = collection_to_slug(name)
        table = vec_table_name(slug)
        owner = self._conn.execute(
            "SELECT name FROM collections WHERE vec_table = ?", (table,)
        ).fetchone()
        if owner is not None:
            raise PdfChatError(
                f"Collection name '{name}' clashes with existing collection "
                f"'{owner['name']}' (both use table {table})"
            )
        # A vec table without a collections row is left over from an interrupted run.
        drop_vec_table(self._conn, table)
        create_vec_table(self._conn, slug, dimension)
        self._conn.execute(
            "INSERT INTO collections (name, dimension, vec_table) VALUES (?, ?, ?)",
            (name, dimension, table),
        )
        self._conn.commit()
        collection = self.get_collection(name)
        if collection is None:
            raise PdfChatError(f"Collection '{name}' missing right after creation")
        return collection

    def delete_collection(self, name: str) -> None:
        """Drop collection *name*, its records, and its vec table.

        Raises:
            CollectionNotFound: If no collection with this name exists.
        """
        collection = self.get_collection(name)
        if collection is None:
            raise CollectionNotFound(name)
        drop_vec_table(self._conn, collection.vec_table)
        self._conn.execute("DELETE FROM records WHERE collection = ?", (name,))
        self._conn.execute("DELETE FROM collections WHERE name = ?", (name,))
        self._conn.commit()

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    def count_points(self, name: str) -> int:
        """Return the number of records stored in collection *name*."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM records WHERE collection = ?", (name,)
        ).fetchone()[0]

    def upsert_points(self, name: str, records: list[IndexRecord]) -> int:
        """Insert *records* into collection *name* in a single transaction.

        Writes are additive; nothing is deleted first.

        Returns:
            Number of records written.

        Raises:
            CollectionNotFound: If the collection does not exist.
        """
        collection = self.get_collection(name)
        if collection is None:
            raise CollectionNotFound(name)
        try:
            for record in records:
                cur = self._conn.execute(
                    "INSERT INTO records (id, collection, metadata) VALUES (?, ?, ?)",
                    (record.id, name, json.dumps(record.metadata.to_dict())),
                )
                self._conn.execute(
                    f"INSERT INTO {collection.vec_table}(rowid, embedding) VALUES (?, ?)",
                    (cur.lastrowid, json.dumps(record.vector)),
                )
        except sqlite3.Error:
            self._conn.rollback()
            raise
        self._conn.commit()
        return len(records)

    def query_points(
        self, name: str, vector: list[float], top_k: int
    ) -> list[ScoredRecord]:
        """Nearest-neighbour search. Returns records sorted by descending similarity.

        Similarity is ``1 - cosine_distance``. *top_k* is capped at the record
        count and at sqlite-vec's KNN limit, so a large value is never an error.

        Raises:
            CollectionNotFound: If the collection does not exist.
        """
        collection = self.get_collection(name)
        if collection is None:
            raise CollectionNotFound(name)
        k = min(top_k, self.count_points(name), MAX_KNN_K)
        if k <= 0:
            return []

        rows = self._conn.execute(
            f"""
            SELECT r.id, r.metadata, v.distance
            FROM (
                SELECT rowid, distance FROM {collection.vec_table}
                WHERE embedding MATCH ? AND k = ?
            ) AS v
            JOIN records AS r ON r.rowid = v.rowid
            ORDER BY v.distance
            """,
            (json.dumps(vector), k),
        ).fetchall()

        return [
            ScoredRecord(
                id=row["id"],
                score=1.0 - row["distance"],
                metadata=ChunkMetadata.from_dict(json.loads(row["metadata"])),
            )
            for row in rows
        ]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_collection(row: sqlite3.Row) -> Collection:
    return Collection(
        name=row["name"],
        dimension=row["dimension"],
        vec_table=row["vec_table"],
        created_at=row["created_at"],
    )
