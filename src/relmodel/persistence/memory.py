"""
relmodel Persistence Layer - Memory Backend

In-memory record persistence for development and testing.
"""

import copy
import logging
import time
from typing import Dict, Any, Optional, Tuple

from .base import EntityPersistenceBackend

logger = logging.getLogger(__name__)

RecordKey = Tuple[str, str]


class MemoryRepo(EntityPersistenceBackend):
    """
    In-memory record persistence implementation (Singleton).

    Data is lost when the process exits. Records are deep-copied on the way in
    and out so callers never share mutable state with the store.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize memory persistence backend (only once)."""
        if not self._initialized:
            self._data: Dict[RecordKey, Dict[str, Any]] = {}
            self._expiry: Dict[RecordKey, float] = {}
            MemoryRepo._initialized = True

    @staticmethod
    def _key(namespace: str, entity_id: Any) -> RecordKey:
        return namespace, str(entity_id)

    def _expired(self, key: RecordKey) -> bool:
        if key in self._expiry and time.time() > self._expiry[key]:
            self._data.pop(key, None)
            self._expiry.pop(key, None)
            return True
        return False

    def save_record(self, namespace: str, entity_id: Any, record: Dict[str, Any],
                    ttl: Optional[int] = None) -> bool:
        """Save record to memory with optional TTL."""
        key = self._key(namespace, entity_id)
        self._data[key] = copy.deepcopy(record)
        if ttl:
            self._expiry[key] = time.time() + ttl
        elif key in self._expiry:
            del self._expiry[key]
        logger.debug("Saved %s/%s (ttl=%s)", namespace, entity_id, ttl)
        return True

    def load_record(self, namespace: str, entity_id: Any) -> Optional[Dict[str, Any]]:
        """Load record from memory."""
        key = self._key(namespace, entity_id)
        if self._expired(key) or key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def delete_record(self, namespace: str, entity_id: Any) -> bool:
        """Delete record from memory."""
        key = self._key(namespace, entity_id)
        existed = key in self._data
        self._data.pop(key, None)
        self._expiry.pop(key, None)
        return existed

    def exists(self, namespace: str, entity_id: Any) -> bool:
        """Check if record exists in memory."""
        key = self._key(namespace, entity_id)
        return not self._expired(key) and key in self._data

    def cleanup_expired(self) -> int:
        """Clean up expired records from memory."""
        current_time = time.time()
        expired_keys = [
            key for key, expiry_time in self._expiry.items()
            if current_time > expiry_time
        ]

        for key in expired_keys:
            self._data.pop(key, None)
            self._expiry.pop(key, None)

        if expired_keys:
            logger.debug("Cleaned up %d expired records", len(expired_keys))
        return len(expired_keys)

    def clear(self) -> None:
        """Drop every record."""
        self._data.clear()
        self._expiry.clear()


# Convenience function to get singleton instance
def get_memory_persistence() -> MemoryRepo:
    """Get the singleton memory persistence instance."""
    return MemoryRepo()
