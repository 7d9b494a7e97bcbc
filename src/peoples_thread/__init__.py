"""Peoples Thread content-ingestion pipeline."""

__version__ = "1.0.0"
