"""
relmodel - Observable entities with has-many associations

Entities are pydantic models with change notification and pluggable
persistence. RelationalEntity adds declarative one-to-many associations whose
raw data is materialized into typed, observable collections.
"""

from .core import (
    Entity, Collection, RelationalEntity, Events,
    Association, AssociationBinding,
    RelModelError, MalformedAssociationData, UnresolvedAssociationDeclaration,
    PersistenceError, EntityNotFoundError,
)
from .persistence import EntityPersistenceBackend, MemoryRepo, get_memory_persistence, get_backend, register_backend
from .config import RelModelConfig, Environment, get_config, set_config, configure_logging

__version__ = "0.1.0"

__all__ = [
    # Core entity components
    'Entity',
    'Collection',
    'RelationalEntity',
    'Events',
    'Association',
    'AssociationBinding',

    # Errors
    'RelModelError',
    'MalformedAssociationData',
    'UnresolvedAssociationDeclaration',
    'PersistenceError',
    'EntityNotFoundError',

    # Persistence
    'EntityPersistenceBackend',
    'MemoryRepo',
    'get_memory_persistence',
    'get_backend',
    'register_backend',

    # Configuration
    'RelModelConfig',
    'Environment',
    'get_config',
    'set_config',
    'configure_logging',
]
