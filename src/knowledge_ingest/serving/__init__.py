"""
Serving — FastAPI application exposing ingestion, browsing, and search.
"""
