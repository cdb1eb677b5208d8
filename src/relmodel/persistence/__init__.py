"""
relmodel Persistence Module

Storage backends for entity records, looked up by name.
"""

from typing import Callable, Dict
from .base import EntityPersistenceBackend
from .memory import MemoryRepo, get_memory_persistence

# Registry of backend factories, keyed by the name used in configuration
_backend_factories: Dict[str, Callable[[], EntityPersistenceBackend]] = {
    "memory": get_memory_persistence,
}


def register_backend(name: str, factory: Callable[[], EntityPersistenceBackend]) -> None:
    """Register a backend factory under ``name``."""
    _backend_factories[name] = factory


def get_backend(name: str) -> EntityPersistenceBackend:
    """Build the backend registered under ``name``."""
    try:
        factory = _backend_factories[name]
    except KeyError:
        raise ValueError(f"Unknown persistence backend: {name!r}") from None
    return factory()


__all__ = [
    "EntityPersistenceBackend",
    "MemoryRepo",
    "get_memory_persistence",
    "register_backend",
    "get_backend",
]
