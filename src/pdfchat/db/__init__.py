"""pdfchat vector store layer."""

from pdfchat.db.connection import Database, path_from_url
from pdfchat.db.index_manager import CollectionState, VectorIndexManager
from pdfchat.db.migrations import MIGRATIONS, initialize, run_migrations
from pdfchat.db.repository import Repository
from pdfchat.db.vectors import collection_to_slug, vec_table_name

__all__ = [
    "Database",
    "path_from_url",
    "CollectionState",
    "VectorIndexManager",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "collection_to_slug",
    "vec_table_name",
]
