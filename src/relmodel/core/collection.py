"""
Collection: an ordered, observable container of entities.

Fires ``add`` and ``remove`` per member, ``reset`` once per reset, and
forwards every member event (``change``, ``change:<field>``, ...) under the
same name.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Type

from .entity import Entity
from .events import ALL_EVENTS, Events


class Collection(Events):
    """Base class for entity collections."""

    # Entity type built from raw field-sets; subclasses set their own
    model: Optional[Type[Entity]] = None

    def __init__(self, models: Optional[Any] = None, model: Optional[Type[Entity]] = None) -> None:
        self._events: Dict[str, list] = {}
        self._members: List[Entity] = []
        if model is not None:
            self.model = model
        if models:
            self.add(models, silent=True)

    # ------------------------------------------------------------------
    # Sequence protocol

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._members))

    def __getitem__(self, index):
        return self._members[index]

    def __contains__(self, member: Any) -> bool:
        return self.index_of(member) != -1

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._members!r})"

    # ------------------------------------------------------------------
    # Queries

    @property
    def members(self) -> List[Entity]:
        return list(self._members)

    def at(self, index: int) -> Entity:
        return self._members[index]

    def index_of(self, member: Any) -> int:
        for index, candidate in enumerate(self._members):
            if candidate is member:
                return index
        return -1

    def get(self, identity: Any) -> Optional[Entity]:
        """Member with the given identity, or the member itself if present."""
        if isinstance(identity, Entity):
            if identity in self:
                return identity
            identity = identity.identity
        if identity is None:
            return None
        for member in self._members:
            if member.identity == identity:
                return member
        return None

    def pluck(self, name: str) -> List[Any]:
        return [member.get(name) for member in self._members]

    def where(self, **attrs: Any) -> List[Entity]:
        return [
            member for member in self._members
            if all(member.get(name) == value for name, value in attrs.items())
        ]

    def to_list(self) -> List[Dict[str, Any]]:
        """Raw field-sets of every member, in order."""
        return [member.model_dump() for member in self._members]

    # ------------------------------------------------------------------
    # Mutation

    def _prepare(self, item: Any) -> Entity:
        if isinstance(item, Entity):
            return item
        if isinstance(item, Mapping):
            if self.model is None:
                raise TypeError(f"{type(self).__name__} has no model to build members from")
            return self.model(item)
        raise TypeError(f"Cannot add {type(item).__name__} to {type(self).__name__}")

    def _attach(self, member: Entity) -> None:
        member.on(ALL_EVENTS, self._on_member_event, self)

    def _detach(self, member: Entity) -> None:
        member.off(ALL_EVENTS, self._on_member_event, self)

    def add(self, items: Any, at: Optional[int] = None, silent: bool = False) -> "Collection":
        """Add one entity/field-set or a list of them, skipping duplicates."""
        if isinstance(items, (Entity, Mapping)):
            items = [items]

        added = []
        for item in items:
            member = self._prepare(item)
            if self.get(member) is not None:
                continue
            if at is None:
                self._members.append(member)
            else:
                self._members.insert(at + len(added), member)
            self._attach(member)
            added.append(member)

        if not silent:
            for member in added:
                self.trigger("add", member, self, {"index": self.index_of(member)})
        return self

    def remove(self, items: Any, silent: bool = False) -> "Collection":
        """Remove one entity (or identity) or a list of them."""
        if not isinstance(items, (list, tuple)):
            items = [items]

        for item in items:
            member = self.get(item)
            if member is None:
                continue
            index = self.index_of(member)
            del self._members[index]
            self._detach(member)
            if not silent:
                self.trigger("remove", member, self, {"index": index})
        return self

    def reset(self, items: Optional[Any] = None, silent: bool = False) -> "Collection":
        """Replace every member at once."""
        if isinstance(items, (Entity, Mapping)):
            items = [items]
        # Snapshot first: items may be this collection
        items = list(items or [])
        for member in self._members:
            self._detach(member)
        self._members = []
        if items:
            self.add(items, silent=True)
        if not silent:
            self.trigger("reset", self, {})
        return self

    def dispose(self) -> None:
        """Stop listening to members. The members stay, but their events are no longer forwarded."""
        for member in self._members:
            self._detach(member)

    def _on_member_event(self, event: str, *args: Any) -> None:
        if event == "destroy" and args:
            self.remove(args[0])
        self.trigger(event, *args)
