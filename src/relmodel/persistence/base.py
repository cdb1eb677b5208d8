"""
relmodel Persistence Layer - Base Classes

This module provides the abstract interface for entity persistence backends.
Backends store raw field-sets (the output of ``Entity.model_dump``), keyed by
entity namespace and identity.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class EntityPersistenceBackend(ABC):
    """
    Abstract base class for entity persistence backends.

    Implementations must provide methods for saving, loading, and managing
    entity records with optional TTL support.
    """

    @abstractmethod
    def save_record(self, namespace: str, entity_id: Any, record: Dict[str, Any],
                    ttl: Optional[int] = None) -> bool:
        """
        Save an entity record.

        Args:
            namespace: Entity namespace (usually the class name)
            entity_id: Identity of the entity
            record: Raw field-set to store
            ttl: Time-to-live in seconds (optional)

        Returns:
            True if save was successful
        """
        pass

    @abstractmethod
    def load_record(self, namespace: str, entity_id: Any) -> Optional[Dict[str, Any]]:
        """
        Load an entity record.

        Returns:
            The stored field-set if found, None otherwise
        """
        pass

    @abstractmethod
    def delete_record(self, namespace: str, entity_id: Any) -> bool:
        """
        Delete an entity record.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    def exists(self, namespace: str, entity_id: Any) -> bool:
        """Check if a record exists."""
        pass

    @abstractmethod
    def cleanup_expired(self) -> int:
        """
        Clean up expired records.

        Returns:
            Number of records cleaned up
        """
        pass
