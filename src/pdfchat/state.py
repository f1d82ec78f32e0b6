"""LastProcessedPath state: which document was ingested most recently.

The record is persisted as a small JSON file::

    {"lastProcessedPdfPath": "...", "processingTimestamp": "...", "metadata": {}}

A missing or corrupt file reads as "no document ingested yet", never as an
error. Pipelines receive a ``StateStore`` so tests can use the in-memory one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class PdfState:
    last_processed_pdf_path: str | None = None
    processing_timestamp: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastProcessedPdfPath": self.last_processed_pdf_path,
            "processingTimestamp": self.processing_timestamp,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PdfState:
        path = data.get("lastProcessedPdfPath")
        timestamp = data.get("processingTimestamp")
        metadata = data.get("metadata")
        return cls(
            last_processed_pdf_path=path if isinstance(path, str) and path else None,
            processing_timestamp=timestamp if isinstance(timestamp, str) else None,
            metadata=metadata if isinstance(metadata, dict) else {},
        )


class StateStore(Protocol):
    def get(self) -> PdfState: ...

    def set(self, state: PdfState) -> None: ...


class JsonStateStore:
    """File-backed state store.

    Args:
        path: JSON file location; parent directories are created on write.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get(self) -> PdfState:
        if not self.path.exists():
            return PdfState()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("state_unreadable", path=str(self.path), error=str(exc))
            return PdfState()
        if not isinstance(data, dict):
            logger.warning("state_unreadable", path=str(self.path), error="not an object")
            return PdfState()
        return PdfState.from_dict(data)

    def set(self, state: PdfState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        tmp.replace(self.path)


class InMemoryStateStore:
    def __init__(self, state: PdfState | None = None) -> None:
        self._state = state or PdfState()

    def get(self) -> PdfState:
        return self._state

    def set(self, state: PdfState) -> None:
        self._state = state


def record_processed(
    store: StateStore, pdf_path: str, metadata: dict[str, Any] | None = None
) -> PdfState:
    """Mark *pdf_path* as the current document with a UTC ISO-8601 timestamp."""
    state = PdfState(
        last_processed_pdf_path=pdf_path,
        processing_timestamp=datetime.now(timezone.utc).isoformat(),
        metadata=dict(metadata or {}),
    )
    store.set(state)
    logger.info("state_updated", path=pdf_path)
    return state
