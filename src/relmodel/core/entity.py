"""
Entity: an observable record with named fields.

Declared pydantic fields act as a schema with defaults; any other field is
kept as a pydantic extra. All writes go through ``set``, which fires
``change:<field>`` for each changed field followed by a single ``change``.
"""

import logging
import uuid
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr, model_serializer

from ..config import get_config
from ..persistence import EntityPersistenceBackend, get_backend
from .errors import EntityNotFoundError
from .events import Events, Listener
from .utils import normalize_set_args

logger = logging.getLogger(__name__)

_MISSING = object()


def _raw_value(value: Any) -> Any:
    # Import here to avoid circular dependency
    from .collection import Collection
    if isinstance(value, Collection):
        return value.to_list()
    if isinstance(value, Entity):
        return value.model_dump()
    return value


class Entity(Events, BaseModel):
    """Base class for all entities."""
    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    # Class-level settings; None means "use the configured default"
    id_attribute: ClassVar[Optional[str]] = None
    namespace: ClassVar[Optional[str]] = None
    persistence_backend: ClassVar[Optional[EntityPersistenceBackend]] = None

    _events: Dict[str, List[Listener]] = PrivateAttr(default_factory=dict)
    _changed: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _previous_attributes: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None, /, **options: Any) -> None:
        data = dict(attributes or {})
        fields = type(self).model_fields
        declared = {name: data.pop(name) for name in list(data) if name in fields}
        super().__init__(**declared)

        # Remaining fields go through set() so subclasses see construction data
        self.set(data, options)
        self._changed = {}
        self._previous_attributes = self.attributes

    @classmethod
    def get_id_attribute(cls) -> str:
        return cls.id_attribute or get_config().entities.id_attribute

    @classmethod
    def get_namespace(cls) -> str:
        return cls.namespace or cls.__name__

    @classmethod
    def get_persistence_backend(cls) -> EntityPersistenceBackend:
        if cls.persistence_backend is not None:
            return cls.persistence_backend
        return get_backend(get_config().persistence.default_backend)

    # ------------------------------------------------------------------
    # Field storage

    @property
    def attributes(self) -> Dict[str, Any]:
        """Snapshot of every stored field."""
        values = {name: self.__dict__[name] for name in type(self).model_fields if name in self.__dict__}
        values.update(self.__pydantic_extra__ or {})
        return values

    @property
    def identity(self) -> Any:
        return self.get(self.get_id_attribute())

    def get(self, name: str, default: Any = None) -> Any:
        """Current stored value of ``name``."""
        if name in type(self).model_fields:
            return self.__dict__.get(name, default)
        return (self.__pydantic_extra__ or {}).get(name, default)

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def is_new(self) -> bool:
        """True while no identity has been assigned."""
        return self.identity is None

    def _write(self, name: str, value: Any) -> None:
        if name in type(self).model_fields:
            self.__dict__[name] = value
            self.__pydantic_fields_set__.add(name)
        else:
            self.__pydantic_extra__[name] = value

    def _erase(self, name: str) -> None:
        if name in type(self).model_fields:
            self.__dict__[name] = None
        else:
            self.__pydantic_extra__.pop(name, None)

    # ------------------------------------------------------------------
    # Assignment

    def set(self, key: Any = None, value: Any = None,
            options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "Entity":
        """
        Assign one or more fields.

        Accepts ``set(name, value, options)``, ``set(field_map, options)`` and
        ``set(None, options)``; keyword arguments are options. Recognized
        options are ``silent`` (no notifications) and ``unset`` (remove the
        named fields).
        """
        call = normalize_set_args(key, value, options, **kwargs)
        return self._apply(call.attrs, call.options)

    def _apply(self, attrs: Dict[str, Any], options: Dict[str, Any]) -> "Entity":
        if not attrs:
            return self

        fields = type(self).model_fields
        unset = options.get("unset", False)
        if not unset:
            attrs = self._validate_declared(attrs)
        previous = self.attributes
        changed: Dict[str, Any] = {}

        for name, value in attrs.items():
            current = self.get(name, _MISSING)
            if unset:
                if current is _MISSING or (name in fields and current is None):
                    continue
                self._erase(name)
                changed[name] = None
            elif current is _MISSING or not (current is value or current == value):
                self._write(name, value)
                changed[name] = value

        self._previous_attributes = previous
        self._changed = changed

        if changed and not options.get("silent", False):
            for name, new_value in changed.items():
                self.trigger(f"change:{name}", self, new_value, options)
            self.trigger("change", self, options)
        return self

    def _validate_declared(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce values of declared fields the way construction does; all or nothing."""
        cls = type(self)
        declared = [name for name in attrs if name in cls.model_fields]
        if not declared:
            return attrs
        scratch = cls.model_construct()
        validated = dict(attrs)
        for name in declared:
            cls.__pydantic_validator__.validate_assignment(scratch, name, attrs[name])
            validated[name] = scratch.__dict__[name]
        return validated

    def unset(self, name: str, **options: Any) -> "Entity":
        return self.set(name, None, unset=True, **options)

    def clear(self, **options: Any) -> "Entity":
        return self.set({name: None for name in self.attributes}, unset=True, **options)

    # Dirty tracking, relative to the last set() call

    def changed_attributes(self) -> Dict[str, Any]:
        return dict(self._changed)

    def has_changed(self, name: Optional[str] = None) -> bool:
        if name is None:
            return bool(self._changed)
        return name in self._changed

    def previous(self, name: str) -> Any:
        return self._previous_attributes.get(name)

    def previous_attributes(self) -> Dict[str, Any]:
        return dict(self._previous_attributes)

    # ------------------------------------------------------------------
    # Serialization

    @model_serializer(mode="plain")
    def serialize_attributes(self) -> Dict[str, Any]:
        """Raw field-set; collections become lists of member field-sets."""
        return {name: _raw_value(value) for name, value in self.attributes.items()}

    # ------------------------------------------------------------------
    # Persistence

    def save(self, attrs: Optional[Mapping[str, Any]] = None, ttl: Optional[int] = None,
             **options: Any) -> bool:
        """Store the entity's field-set, assigning an identity to new entities."""
        if attrs:
            self.set(attrs, options)
        if self.is_new():
            self.set(self.get_id_attribute(), uuid.uuid4().hex, options)

        if ttl is None:
            ttl = get_config().persistence.default_ttl
        record = self.model_dump(mode="json")
        saved = self.get_persistence_backend().save_record(self.get_namespace(), self.identity, record, ttl)
        logger.debug("Saved %s %r", self.get_namespace(), self.identity)
        if saved:
            self.trigger("sync", self, record, options)
        return saved

    def fetch(self, **options: Any) -> "Entity":
        """Reload the stored field-set and apply it through set()."""
        if self.is_new():
            raise EntityNotFoundError(
                f"Cannot fetch {type(self).__name__}: no {self.get_id_attribute()!r} assigned")

        record = self.get_persistence_backend().load_record(self.get_namespace(), self.identity)
        if record is None:
            raise EntityNotFoundError(f"{self.get_namespace()} {self.identity!r} not found")

        logger.debug("Fetched %s %r", self.get_namespace(), self.identity)
        self.set(record, options)
        self.trigger("sync", self, record, options)
        return self

    def destroy(self, **options: Any) -> bool:
        """Announce destruction and delete the stored record, if any."""
        self.trigger("destroy", self, options)
        if self.is_new():
            return False
        logger.debug("Destroying %s %r", self.get_namespace(), self.identity)
        return self.get_persistence_backend().delete_record(self.get_namespace(), self.identity)

    def exists(self) -> bool:
        if self.is_new():
            return False
        return self.get_persistence_backend().exists(self.get_namespace(), self.identity)

    @classmethod
    def load(cls, identity: Any, **options: Any) -> "Entity":
        """Build an entity with ``identity`` and fetch its stored field-set."""
        return cls({cls.get_id_attribute(): identity}).fetch(**options)
