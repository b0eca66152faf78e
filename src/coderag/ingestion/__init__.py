"""Chunk construction and the ingestion pipeline."""
