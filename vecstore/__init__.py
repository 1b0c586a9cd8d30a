"""SQLite-backed embedding storage with cosine similarity and text search."""

__version__ = "0.1.0"