"""Persistent storage for importvalidator caches and statistics."""

from .sqlite_store import DEFAULT_DB_NAME, CacheStore, SQLiteStore

__all__ = ["DEFAULT_DB_NAME", "CacheStore", "SQLiteStore"]
