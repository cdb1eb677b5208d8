"""Tests for the synchronous event channel."""

import pytest

from relmodel.core.events import Events


class Emitter(Events):
    def __init__(self):
        self._events = {}


def test_on_and_trigger_pass_arguments():
    emitter = Emitter()
    received = []
    emitter.on("ping", lambda *args: received.append(args))

    emitter.trigger("ping", 1, "two")

    assert received == [(1, "two")]


def test_space_separated_names():
    emitter = Emitter()
    received = []
    emitter.on("add remove", lambda *args: received.append(args))

    emitter.trigger("add", "a")
    emitter.trigger("remove", "r")
    emitter.trigger("reset")

    assert received == [("a",), ("r",)]


def test_all_listener_receives_event_name():
    emitter = Emitter()
    received = []
    emitter.on("all", lambda *args: received.append(args))

    emitter.trigger("change", "payload")

    assert received == [("change", "payload")]


def test_off_by_context_only_removes_that_context():
    emitter = Emitter()
    first, second = object(), object()
    calls = []
    emitter.on("change", lambda: calls.append("first"), first)
    emitter.on("change", lambda: calls.append("second"), second)

    emitter.off(context=first)
    emitter.trigger("change")

    assert calls == ["second"]
    assert emitter.listener_count("change") == 1


def test_off_by_callback():
    emitter = Emitter()
    calls = []

    def handler():
        calls.append("handler")

    emitter.on("a b", handler)
    emitter.off(callback=handler)
    emitter.trigger("a b")

    assert calls == []
    assert emitter.listener_count() == 0


def test_off_without_arguments_clears_everything():
    emitter = Emitter()
    emitter.on("a", lambda: None)
    emitter.on("b", lambda: None)

    emitter.off()

    assert emitter.listener_count() == 0


def test_once_fires_a_single_time():
    emitter = Emitter()
    calls = []
    emitter.once("ping", lambda value: calls.append(value))

    emitter.trigger("ping", 1)
    emitter.trigger("ping", 2)

    assert calls == [1]


def test_listener_errors_propagate():
    emitter = Emitter()

    def broken():
        raise RuntimeError("boom")

    emitter.on("ping", broken)

    with pytest.raises(RuntimeError, match="boom"):
        emitter.trigger("ping")


def test_listener_removed_during_trigger_does_not_break_iteration():
    emitter = Emitter()
    calls = []

    def first():
        calls.append("first")
        emitter.off("ping", second)

    def second():
        calls.append("second")

    emitter.on("ping", first)
    emitter.on("ping", second)

    emitter.trigger("ping")
    emitter.trigger("ping")

    # The snapshot taken for the first trigger still includes `second`
    assert calls == ["first", "second", "first"]
