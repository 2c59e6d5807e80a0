"""Unit tests for the chunker module."""

import logging

import pytest

from knowledge_ingest.ingestion import chunker
from knowledge_ingest.ingestion.chunker import chunk_paragraphs, chunk_text, max_chunk_count


def _text(length: int) -> str:
    """Non-repeating-enough text so slices can be told apart."""
    return "".join(chr(ord("a") + i % 26) for i in range(length))


def test_chunk_text_short_text_is_single_chunk() -> None:
    """Text no longer than max_size comes back unchanged."""
    text = _text(1000)
    assert chunk_text(text, 1000, 200) == [text]
    assert chunk_text("hi", 1000, 200) == ["hi"]


def test_chunk_text_empty_input() -> None:
    """An empty string should return an empty list."""
    assert chunk_text("") == []


def test_chunk_text_splits_with_overlap(caplog: pytest.LogCaptureFixture) -> None:
    """2500 chars: three advancing windows, then the tail repeats up to the bound."""
    text = _text(2500)
    with caplog.at_level(logging.WARNING, logger="knowledge_ingest.ingestion.chunker"):
        chunks = chunk_text(text, 1000, 200)

    assert len(chunks) == max_chunk_count(2500, 1000, 200) == 8
    assert chunks[:3] == [text[0:1000], text[800:1800], text[1600:2500]]
    assert chunks[3:] == [text[2300:2500]] * 5
    assert "8-chunk limit" in caplog.text


def test_chunk_text_without_overlap_stops_at_end(caplog: pytest.LogCaptureFixture) -> None:
    text = _text(25)
    with caplog.at_level(logging.WARNING, logger="knowledge_ingest.ingestion.chunker"):
        assert chunk_text(text, 10, 0) == [text[0:10], text[10:20], text[20:25]]
    assert "limit" not in caplog.text


@pytest.mark.parametrize(("length", "max_size", "overlap"), [(2500, 1000, 200), (3001, 300, 0), (777, 50, 49)])
def test_chunk_text_covers_every_character(length: int, max_size: int, overlap: int) -> None:
    """Consecutive windows share the overlap and together rebuild the text."""
    text = _text(length)
    chunks = chunk_text(text, max_size, overlap)

    assert len(chunks) >= 2
    assert len(chunks) <= max_chunk_count(length, max_size, overlap)
    assert all(len(c) <= max_size for c in chunks)
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.startswith(prev[-overlap:] if overlap else "")

    covered = chunks[0]
    for chunk in chunks[1:]:
        if len(covered) == length:
            break
        covered += chunk[overlap:]
    assert covered == text


def test_chunk_text_pathological_overlap_terminates() -> None:
    """overlap = max_size - 1 advances one character at a time but stays bounded."""
    text = _text(100)
    chunks = chunk_text(text, 10, 9)
    assert len(chunks) == max_chunk_count(100, 10, 9)
    assert chunks[90] == text[90:]
    assert chunks[-1] == text[91:]


def test_chunk_text_repairs_overlap_not_below_max_size() -> None:
    """overlap >= max_size is replaced by max_size // 4."""
    text = _text(100)
    chunks = chunk_text(text, 10, 10)
    assert chunks[0] == text[0:10]
    assert chunks[1] == text[8:18]
    assert chunks[-1].endswith(text[-1])


def test_chunk_text_repairs_negative_overlap() -> None:
    text = _text(25)
    assert chunk_text(text, 10, -5) == [text[0:10], text[10:20], text[20:25]]


def test_chunk_text_repairs_non_positive_max_size() -> None:
    """max_size <= 0 falls back to 1000."""
    text = _text(1500)
    chunks = chunk_text(text, 0, 200)
    assert chunks == [text[0:1000], text[800:1500], text[1300:1500], text[1300:1500]]


def test_chunk_text_warns_when_hitting_chunk_limit(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(chunker, "max_chunk_count", lambda *args: 2)
    with caplog.at_level(logging.WARNING, logger="knowledge_ingest.ingestion.chunker"):
        chunks = chunk_text(_text(5000), 1000, 200)
    assert len(chunks) == 2
    assert "limit" in caplog.text


def test_chunk_paragraphs_packs_and_splits_oversized() -> None:
    first, second, long = "a" * 40, "b" * 40, "c" * 150
    text = f"{first}\n\n{second}\n\n{long}"
    chunks = chunk_paragraphs(text, 100)
    assert chunks == [f"{first}\n\n{second}", "c" * 100, "c" * 50]


def test_chunk_paragraphs_short_text_is_single_chunk() -> None:
    assert chunk_paragraphs("one\n\ntwo", 100) == ["one\n\ntwo"]
    assert chunk_paragraphs("") == []
