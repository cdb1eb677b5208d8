"""
Has-Many Associations

🔗 Declarative one-to-many relationships:
An entity type declares ``associations``, a mapping from field name to a
descriptor. A descriptor is either a ``Collection`` subclass or a pair
``(CollectionType, {"model": ..., "silent": ...})``. The declaration may also
be a zero-argument callable returning that mapping, so child types that are
defined later can be referenced.

This module turns declarations into ``Association`` values, materializes raw
field-set sequences into typed collections, and wires collection mutations
back to the parent entity as ``change`` notifications.
"""

import logging
from dataclasses import dataclass, field
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .collection import Collection
from .entity import Entity
from .errors import MalformedAssociationData, UnresolvedAssociationDeclaration

logger = logging.getLogger(__name__)

PROPAGATED_EVENTS = ("add", "remove", "change", "reset")

Descriptor = Union[Type[Collection], Sequence[Any], "Association"]
DeclarationSource = Union[Mapping[str, Descriptor], Callable[[], Mapping[str, Descriptor]]]


class AssociationOptions(BaseModel):
    """Options accepted in the second slot of a ``(CollectionType, options)`` descriptor."""
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    model: Optional[type] = None
    silent: bool = False

    @field_validator("model")
    @classmethod
    def check_model_is_entity(cls, value):
        if value is not None and not issubclass(value, Entity):
            raise ValueError(f"{value.__name__} is not an Entity subclass")
        return value


@dataclass(frozen=True)
class Association:
    """A resolved has-many declaration."""
    collection: Type[Collection]
    model: Optional[Type[Entity]] = None
    silent: bool = False

    def resolve_model(self) -> Type[Entity]:
        """Per-declaration model, else the collection type's model."""
        if self.model is not None:
            return self.model
        if self.collection.model is not None:
            return self.collection.model
        raise UnresolvedAssociationDeclaration(
            f"{self.collection.__name__} declares no model and the association gives none")


def _is_collection_type(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, Collection)


def to_association(name: str, descriptor: Any) -> Association:
    """Resolve one declared descriptor."""
    if isinstance(descriptor, Association):
        return descriptor
    if _is_collection_type(descriptor):
        return Association(collection=descriptor)

    if (isinstance(descriptor, (list, tuple)) and len(descriptor) == 2
            and _is_collection_type(descriptor[0]) and isinstance(descriptor[1], Mapping)):
        collection_type, raw_options = descriptor
        try:
            options = AssociationOptions(**raw_options)
        except ValidationError as e:
            raise UnresolvedAssociationDeclaration(f"Invalid options for association {name!r}: {e}") from e
        return Association(collection=collection_type, model=options.model, silent=options.silent)

    raise UnresolvedAssociationDeclaration(
        f"Association {name!r} must be a Collection type or a (Collection type, options) pair, "
        f"got {descriptor!r}")


def resolve_declarations(source: Optional[DeclarationSource]) -> Dict[str, Association]:
    """Resolve a static or deferred declaration table."""
    if source is None:
        return {}
    if callable(source) and not isinstance(source, Mapping):
        source = source()
    if not isinstance(source, Mapping):
        raise UnresolvedAssociationDeclaration(
            f"Associations must resolve to a mapping, got {type(source).__name__}")
    return {name: to_association(name, descriptor) for name, descriptor in source.items()}


def _is_ordered_sequence(items: Any) -> bool:
    if isinstance(items, Collection):
        return True
    return isinstance(items, Sequence) and not isinstance(items, (str, bytes, bytearray))


def _check_unique(member: Entity, position: int, seen: Dict[Any, int], association: Association) -> None:
    keys = [("instance", id(member))]
    if member.identity is not None:
        keys.append(("identity", member.identity))
    for key in keys:
        if key in seen:
            raise MalformedAssociationData(
                f"{association.collection.__name__} item {position} repeats item {seen[key]} "
                f"({key[0]} {key[1]!r})")
        seen[key] = position


def materialize(items: Any, association: Association) -> Collection:
    """
    Build a new collection of ``association``'s type from raw data.

    Members that are already instances of the resolved model pass through
    unchanged; field-sets (and other entities, via their fields) are
    constructed into new model instances. Order is preserved. A repeated
    instance or identity raises rather than being merged away.
    """
    if items is None:
        items = []
    if not _is_ordered_sequence(items):
        raise MalformedAssociationData(
            f"Expected an ordered sequence for {association.collection.__name__}, "
            f"got {type(items).__name__}")

    model_type = association.resolve_model()
    members: List[Entity] = []
    seen: Dict[Any, int] = {}
    for item in items:
        if isinstance(item, model_type):
            members.append(item)
        elif isinstance(item, Mapping):
            members.append(model_type(item))
        elif isinstance(item, Entity):
            members.append(model_type(item.attributes))
        else:
            raise MalformedAssociationData(
                f"{association.collection.__name__} members must be field-sets or "
                f"{model_type.__name__} instances, got {type(item).__name__}")
        _check_unique(members[-1], len(members) - 1, seen, association)

    collection = association.collection(members, model=model_type)
    logger.debug("Materialized %d %s into %s", len(members), model_type.__name__,
                  association.collection.__name__)
    return collection


@dataclass
class AssociationBinding:
    """Subscriptions that relay a collection's mutations to its parent."""
    collection: Collection
    parent: Entity
    name: Optional[str] = None
    callback: Optional[Callable[..., None]] = field(default=None, repr=False)
    bound: bool = True

    def unbind(self) -> None:
        """Remove the subscriptions. Safe to call more than once."""
        if not self.bound:
            return
        self.collection.off(" ".join(PROPAGATED_EVENTS), self.callback, self.parent)
        self.bound = False
        logger.debug("Released %s binding on %s", self.name, type(self.parent).__name__)


def bind_association(collection: Collection, parent: Entity, name: Optional[str] = None) -> AssociationBinding:
    """Fire one parent ``change`` for every add/remove/change/reset on ``collection``."""
    def propagate(*_args: Any) -> None:
        parent.trigger("change", parent, {"association": name})

    collection.on(" ".join(PROPAGATED_EVENTS), propagate, parent)
    return AssociationBinding(collection=collection, parent=parent, name=name, callback=propagate)
