"""Exception taxonomy for the pdfchat retrieval core.

Library layers raise these; ``pdfchat.service`` turns them into structured
responses and the CLI renders them via ``pdfchat.cli.errors``.
"""

from __future__ import annotations


class PdfChatError(Exception):
    """Base class for every error raised by pdfchat."""


class DocumentParseError(PdfChatError):
    """The source document is malformed, encrypted, or has no extractable text."""


class EmbeddingServiceError(PdfChatError):
    """An embedding batch call failed or returned an inconsistent shape."""


class IndexCreationError(PdfChatError):
    """A collection already exists with a different vector dimension."""

    def __init__(self, name: str, existing_dimension: int, requested_dimension: int) -> None:
        self.name = name
        self.existing_dimension = existing_dimension
        self.requested_dimension = requested_dimension
        super().__init__(
            f"Collection '{name}' already exists with dimension {existing_dimension}, "
            f"cannot create it with dimension {requested_dimension}"
        )


class DimensionMismatchError(PdfChatError, ValueError):
    """A vector does not match the fixed dimension of its collection."""

    def __init__(self, name: str, expected: int, actual: int) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Vector dimension {actual} does not match collection '{name}' "
            f"dimension {expected}"
        )


class VectorStoreUnavailable(PdfChatError):
    """The vector store could not be reached. Never retried internally."""


class CollectionNotFound(PdfChatError):
    """The named collection does not exist in the vector store."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Collection '{name}' not found")


class NoDocumentIngested(PdfChatError):
    """Retrieval was attempted with no explicit path and no prior ingestion."""


class GenerationError(PdfChatError):
    """The conversational model call failed."""
