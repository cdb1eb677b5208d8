"""
relmodel Core Module

Observable entities and collections, plus declarative has-many associations.
"""

from .events import Events
from .entity import Entity
from .collection import Collection
from .associations import (
    Association, AssociationBinding, AssociationOptions,
    bind_association, materialize, resolve_declarations, to_association,
)
from .relational import RelationalEntity
from .errors import (
    RelModelError, AssociationError, MalformedAssociationData,
    UnresolvedAssociationDeclaration, PersistenceError, EntityNotFoundError,
)
from .utils import CallShape, SetCall, normalize_set_args

__all__ = [
    "Events",
    "Entity",
    "Collection",
    "RelationalEntity",
    "Association",
    "AssociationBinding",
    "AssociationOptions",
    "bind_association",
    "materialize",
    "resolve_declarations",
    "to_association",
    "RelModelError",
    "AssociationError",
    "MalformedAssociationData",
    "UnresolvedAssociationDeclaration",
    "PersistenceError",
    "EntityNotFoundError",
    "CallShape",
    "SetCall",
    "normalize_set_args",
]
