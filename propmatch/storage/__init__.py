"""Persistence backends for subjects, discovery batches, listings and units."""
from propmatch.storage.base import ListingStore
from propmatch.storage.memory_store import MemoryListingStore
from propmatch.storage.sqlite_store import SQLiteListingStore

__all__ = ["ListingStore", "MemoryListingStore", "SQLiteListingStore"]
