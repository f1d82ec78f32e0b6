"""Tests for the last-processed-document state store."""

from __future__ import annotations

import json
from datetime import datetime

from pdfchat.state import InMemoryStateStore, JsonStateStore, PdfState, record_processed


def test_missing_file_is_default_state(tmp_path):
    state = JsonStateStore(tmp_path / "state.json").get()
    assert state == PdfState()


def test_round_trip_uses_camel_case_keys(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = JsonStateStore(path)
    store.set(PdfState("/docs/a.pdf", "2024-01-01T00:00:00+00:00", {"chunks": 3}))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw == {
        "lastProcessedPdfPath": "/docs/a.pdf",
        "processingTimestamp": "2024-01-01T00:00:00+00:00",
        "metadata": {"chunks": 3},
    }
    assert store.get().last_processed_pdf_path == "/docs/a.pdf"


def test_corrupt_file_is_default_state(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonStateStore(path).get() == PdfState()


def test_non_object_file_is_default_state(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert JsonStateStore(path).get() == PdfState()


def test_wrong_types_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"lastProcessedPdfPath": 42, "processingTimestamp": None, "metadata": "x"}),
        encoding="utf-8",
    )
    assert JsonStateStore(path).get() == PdfState()


def test_no_temp_file_left_behind(tmp_path):
    path = tmp_path / "state.json"
    JsonStateStore(path).set(PdfState("/a.pdf"))
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_record_processed_sets_utc_timestamp():
    store = InMemoryStateStore()
    state = record_processed(store, "/docs/b.pdf", {"title": "B"})

    assert store.get() is state
    assert state.last_processed_pdf_path == "/docs/b.pdf"
    assert state.metadata == {"title": "B"}
    parsed = datetime.fromisoformat(state.processing_timestamp)
    assert parsed.utcoffset().total_seconds() == 0


def test_record_processed_overwrites_previous(tmp_path):
    store = JsonStateStore(tmp_path / "state.json")
    record_processed(store, "/a.pdf")
    record_processed(store, "/b.pdf")
    assert store.get().last_processed_pdf_path == "/b.pdf"
