"""Event emitter unit tests"""

from unittest.mock import Mock

from draftkit.events import EventEmitter


def test_dispatch_calls_listeners_in_order():
    emitter = EventEmitter()
    calls = []
    emitter.on("change", lambda value: calls.append(("first", value)))
    emitter.on("change", lambda value: calls.append(("second", value)))

    emitter.dispatch("change", 1)

    assert calls == [("first", 1), ("second", 1)]


def test_unsubscribe_removes_only_that_subscription():
    emitter = EventEmitter()
    callback = Mock()
    unsubscribe = emitter.on("change", callback)
    emitter.on("change", callback)

    unsubscribe()
    emitter.dispatch("change", "x")

    callback.assert_called_once_with("x")
    assert emitter.listener_count("change") == 1


def test_unsubscribe_twice_is_harmless():
    emitter = EventEmitter()
    unsubscribe = emitter.on("change", Mock())

    unsubscribe()
    unsubscribe()

    assert emitter.listener_count("change") == 0


def test_failing_listener_does_not_stop_fan_out():
    emitter = EventEmitter()
    after = Mock()
    emitter.on("change", Mock(side_effect=RuntimeError("boom")))
    emitter.on("change", after)

    emitter.dispatch("change")

    after.assert_called_once_with()


def test_dispose_drops_all_listeners():
    emitter = EventEmitter()
    callback = Mock()
    emitter.on("a", callback)
    emitter.on("b", callback)

    emitter.dispose()
    emitter.dispatch("a")
    emitter.dispatch("b")

    callback.assert_not_called()


def test_listener_may_unsubscribe_during_dispatch():
    emitter = EventEmitter()
    calls = []
    unsubscribe = None

    def once(value):
        calls.append(value)
        unsubscribe()

    unsubscribe = emitter.on("change", once)
    emitter.dispatch("change", 1)
    emitter.dispatch("change", 2)

    assert calls == [1]
