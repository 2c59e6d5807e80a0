"""
knowledge_ingest — turn pasted text into searchable, enriched vector records.

Subpackages
-----------
- :mod:`knowledge_ingest.ingestion` — sanitiser, chunker, enrichment, batch scheduler.
- :mod:`knowledge_ingest.storage` — ingestion sinks (Chroma, in-memory).
- :mod:`knowledge_ingest.serving` — FastAPI application.
"""

__version__ = "0.1.0"
