"""
Synchronous event channel shared by entities and collections.

Listeners are called in registration order, on the caller's stack. A listener
registered on ``all`` receives the event name followed by the event payload.
"""

from typing import Any, Callable, Dict, List, NamedTuple, Optional

ALL_EVENTS = "all"


class Listener(NamedTuple):
    callback: Callable[..., Any]
    context: Any = None


def _split(names: Optional[str]) -> List[str]:
    return names.split() if names else []


class Events:
    """
    Observer mixin.

    Classes using it must provide a ``_events`` dict (a pydantic private
    attribute on entities, a plain attribute on collections).
    """

    def on(self, names: str, callback: Callable[..., Any], context: Any = None) -> "Events":
        """Subscribe ``callback`` to one or more space separated event names."""
        for name in _split(names):
            self._events.setdefault(name, []).append(Listener(callback, context))
        return self

    def once(self, names: str, callback: Callable[..., Any], context: Any = None) -> "Events":
        """Subscribe ``callback`` for a single delivery per event name."""
        for name in _split(names):
            def fire_once(*args, _name=name):
                self.off(_name, fire_once)
                return callback(*args)
            self.on(name, fire_once, context)
        return self

    def off(self, names: Optional[str] = None, callback: Optional[Callable[..., Any]] = None,
            context: Any = None) -> "Events":
        """
        Remove listeners.

        Every argument narrows the match: no arguments drops everything,
        ``off(context=owner)`` drops every listener registered for ``owner``.
        """
        if names is None and callback is None and context is None:
            self._events.clear()
            return self

        for name in (_split(names) or list(self._events)):
            listeners = self._events.get(name)
            if not listeners:
                continue
            kept = [
                listener for listener in listeners
                if (callback is not None and listener.callback != callback)
                or (context is not None and listener.context is not context)
            ]
            if kept:
                self._events[name] = kept
            else:
                del self._events[name]
        return self

    def trigger(self, names: str, *args: Any) -> "Events":
        """Fire events. Exceptions raised by listeners propagate to the caller."""
        for name in _split(names):
            for listener in list(self._events.get(name, ())):
                listener.callback(*args)
            if name != ALL_EVENTS:
                for listener in list(self._events.get(ALL_EVENTS, ())):
                    listener.callback(name, *args)
        return self

    def listener_count(self, name: Optional[str] = None) -> int:
        """Number of listeners on ``name``, or on every event when omitted."""
        if name is not None:
            return len(self._events.get(name, ()))
        return sum(len(listeners) for listeners in self._events.values())
