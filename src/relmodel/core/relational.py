"""
RelationalEntity: an Entity with declarative has-many associations.

    class Posts(Collection):
        model = Post

    class Blog(RelationalEntity):
        id_attribute = "blog_id"
        associations = {"posts": Posts}

Raw lists assigned to an association field (directly, in bulk or from a
fetch) become typed collections, and mutations of those collections fire
``change`` on the parent. Use ``(Collection, {"model": Post, "silent": True})``
to override the member type or to stop propagation, and wrap the mapping in a
zero-argument callable (a lambda or a staticmethod) when the collection types
are defined further down the module.

An association missing from the assigned data is left alone, so a partially
loaded entity never overwrites or nulls an association it did not receive.
New entities (no identity, none supplied) default every unset association to
an empty collection.
"""

import logging
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from pydantic import PrivateAttr

from .associations import (
    Association, AssociationBinding, DeclarationSource,
    bind_association, materialize, resolve_declarations,
)
from .collection import Collection
from .entity import Entity
from .utils import normalize_set_args

logger = logging.getLogger(__name__)


class RelationalEntity(Entity):
    """Entity whose declared association fields hold live child collections."""

    associations: ClassVar[Optional[DeclarationSource]] = None

    _association_collections: Dict[str, Collection] = PrivateAttr(default_factory=dict)
    _association_bindings: Dict[str, AssociationBinding] = PrivateAttr(default_factory=dict)

    @classmethod
    def get_associations(cls) -> Dict[str, Association]:
        """Resolve the declaration table (calls it when it is deferred)."""
        return resolve_declarations(cls.associations)

    def set(self, key: Any = None, value: Any = None,
            options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "RelationalEntity":
        call = normalize_set_args(key, value, options, **kwargs)
        attrs, opts = call.attrs, call.options

        pending: Dict[str, Tuple[Collection, Optional[AssociationBinding]]] = {}
        if not opts.get("unset", False):
            is_new_without_id = self.is_new() and attrs.get(self.get_id_attribute()) is None
            try:
                for name, association in self.get_associations().items():
                    if name in attrs:
                        pending[name] = self.materialize_association(attrs[name], association, name)
                    elif is_new_without_id and self.get(name) is None:
                        pending[name] = self.materialize_association(None, association, name)
                    else:
                        continue
                    attrs[name] = pending[name][0]
            except Exception:
                self._discard(pending)
                raise

        if pending:
            logger.debug("%s: materialized %s", type(self).__name__, ", ".join(pending))
        try:
            result = super().set(attrs, opts)
        except Exception:
            self._discard(pending)
            raise
        self._sync_associations(pending)
        return result

    def materialize_association(self, items: Any, association: Association,
                                name: Optional[str] = None) -> Tuple[Collection, Optional[AssociationBinding]]:
        """Build the collection for ``items`` and, unless silent, bind it to this entity."""
        collection = materialize(items, association)
        binding = None if association.silent else bind_association(collection, self, name)
        return collection, binding

    def association_binding(self, name: str) -> Optional[AssociationBinding]:
        return self._association_bindings.get(name)

    @staticmethod
    def _discard(pending: Dict[str, Tuple[Collection, Optional[AssociationBinding]]]) -> None:
        for collection, binding in pending.values():
            if binding is not None:
                binding.unbind()
            collection.dispose()

    def _sync_associations(self, pending: Dict[str, Tuple[Collection, Optional[AssociationBinding]]]) -> None:
        # Release collections that are no longer stored on this entity
        for name, collection in list(self._association_collections.items()):
            if self.get(name) is not collection:
                binding = self._association_bindings.pop(name, None)
                if binding is not None:
                    binding.unbind()
                collection.dispose()
                del self._association_collections[name]

        for name, (collection, binding) in pending.items():
            if self.get(name) is not collection:
                self._discard({name: (collection, binding)})
                continue
            self._association_collections[name] = collection
            if binding is not None:
                self._association_bindings[name] = binding
