"""Text chunking strategies."""

from __future__ import annotations

import logging
import math

from langchain_text_splitters import CharacterTextSplitter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


def _repair_params(max_size: int, overlap: int) -> tuple[int, int]:
    """Coerce out-of-range parameters into a combination that always terminates."""
    if max_size <= 0:
        logger.warning("max_size=%d is not positive; using %d", max_size, DEFAULT_CHUNK_SIZE)
        max_size = DEFAULT_CHUNK_SIZE
    if overlap < 0:
        logger.warning("overlap=%d is negative; using 0", overlap)
        overlap = 0
    if overlap >= max_size:
        logger.warning("overlap=%d >= max_size=%d; using %d", overlap, max_size, max_size // 4)
        overlap = max_size // 4
    return max_size, overlap


def max_chunk_count(length: int, max_size: int, overlap: int) -> int:
    """Upper bound on the number of windows produced for *length* characters."""
    return 2 * math.ceil(length / (max_size - overlap))


def chunk_text(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = 200,
) -> list[str]:
    """Split *text* into fixed-width windows that overlap by *overlap* characters.

    Parameters
    ----------
    text:
        Document text.
    max_size:
        Maximum number of characters per chunk.  Non-positive values fall
        back to ``1000``.
    overlap:
        Characters repeated from the end of one chunk at the start of the
        next.  Negative values become ``0``; values ``>= max_size`` become
        ``max_size // 4``.

    Returns
    -------
    list[str]
        ``[]`` for empty input, ``[text]`` when it already fits, otherwise
        the ordered windows.  The last window ends at ``len(text)``.

    Notes
    -----
    After each window the cursor moves to ``end - overlap``; scanning stops
    only when that cursor is ``<= 0`` or ``>= len(text)``.  With a non-zero
    overlap the cursor settles at ``len(text) - overlap``, so the tail
    window repeats until :func:`max_chunk_count` windows exist, at which
    point a warning is logged.
    """
    if not text:
        return []

    max_size, overlap = _repair_params(max_size, overlap)
    length = len(text)
    if length <= max_size:
        return [text]

    limit = max_chunk_count(length, max_size, overlap)
    chunks: list[str] = []
    cursor = 0
    while True:
        end = min(cursor + max_size, length)
        chunks.append(text[cursor:end])

        next_cursor = end - overlap
        if next_cursor <= 0 or next_cursor >= length:
            break
        if len(chunks) >= limit:
            logger.warning(
                "Stopped chunking at the %d-chunk limit (length=%d, max_size=%d, overlap=%d)",
                limit,
                length,
                max_size,
                overlap,
            )
            break
        cursor = next_cursor

    return chunks


def chunk_paragraphs(text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Pack blank-line separated paragraphs into chunks of at most *max_size*.

    Paragraphs are merged while they fit; a paragraph that is longer than
    *max_size* on its own is cut into fixed-width pieces with no overlap.
    """
    if not text:
        return []

    max_size, _ = _repair_params(max_size, 0)
    if len(text) <= max_size:
        return [text]

    splitter = CharacterTextSplitter(
        separator="\n\n",
        chunk_size=max_size,
        chunk_overlap=0,
        length_function=len,
    )
    chunks: list[str] = []
    for piece in splitter.split_text(text):
        if len(piece) > max_size:
            chunks.extend(chunk_text(piece, max_size, 0))
        else:
            chunks.append(piece)
    return chunks
