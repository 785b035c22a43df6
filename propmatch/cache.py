"""
Simple in-memory TTL cache for expensive discovery and extraction calls.
"""
from time import monotonic
from typing import Any, Dict, Optional, Tuple

from loguru import logger


class TTLCache:
    """
    Key -> value cache where each read states how old an entry may be.
    Expired entries are evicted on read.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str, max_age: float) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, stored_at = entry
        age = monotonic() - stored_at
        if age > max_age:
            del self._entries[key]
            return None

        logger.debug(f"[CACHE] Hit: {key} (age: {round(age)}s)")
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, monotonic())
        logger.debug(f"[CACHE] Set: {key}")

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)
        logger.debug(f"[CACHE] Deleted: {key}")

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("[CACHE] Cleared all entries")

    def size(self) -> int:
        return len(self._entries)
