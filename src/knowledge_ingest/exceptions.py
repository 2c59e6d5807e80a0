"""Error taxonomy for the ingestion pipeline.

Per-chunk errors (:class:`EmptyInputError`, :class:`EmbeddingError`,
:class:`StorageError` on create) are caught by the batch scheduler and
only lower the success count.  Document-level errors
(:class:`ValidationError`, :class:`IngestionFailedError`, and anything
raised on the update / list / delete paths) reach the caller.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class ValidationError(IngestError):
    """Title or content missing before the pipeline starts."""


class EmptyInputError(IngestError):
    """A chunk had no text left after trimming."""


class EmbeddingError(IngestError):
    """The embedding call failed or returned malformed data."""


class QAGenerationError(IngestError):
    """QA generation failed; never surfaced past the enrichment step."""


class StorageError(IngestError):
    """A sink operation failed."""


class RecordNotFoundError(StorageError):
    """The requested record id does not exist in the sink."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Record {record_id!r} not found")


class IngestionFailedError(IngestError):
    """No chunk of the document was persisted."""

    def __init__(self, total_chunks: int, *, cause: BaseException | None = None) -> None:
        self.total_chunks = total_chunks
        super().__init__(
            f"None of the {total_chunks} chunk(s) could be processed",
            cause=cause,
        )
