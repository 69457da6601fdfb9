"""Tests for model subscription functionality."""

import pytest

from formstate import SubscriberList


def set_a(value):
    def mutate(state):
        state["a"] = value

    return mutate


@pytest.mark.model
def test_subscription_callback_receives_post_write_snapshot(pair_model):
    """Subscriber is called with the state after the write"""
    received = []
    pair_model.subscribe(lambda snapshot: received.append(snapshot["a"]))

    pair_model.set_state(set_a(3))

    assert received == [3]


@pytest.mark.model
def test_subscribe_returns_callback_for_decorator_use(pair_model):
    calls = []

    @pair_model.subscribe
    def on_change(snapshot):
        calls.append(snapshot["a"])

    pair_model.set_state(set_a(4))

    assert callable(on_change)
    assert calls == [4]


@pytest.mark.model
def test_subscribers_are_notified_in_registration_order(pair_model):
    order = []
    pair_model.subscribe(lambda snapshot: order.append("first"))
    pair_model.subscribe(lambda snapshot: order.append("second"))
    pair_model.subscribe(lambda snapshot: order.append("third"))

    pair_model.set_state(set_a(2))

    assert order == ["first", "second", "third"]


@pytest.mark.model
def test_registering_same_callback_twice_notifies_once(pair_model, recorder):
    pair_model.subscribe(recorder)
    pair_model.subscribe(recorder)

    pair_model.notify({"a": 1})

    assert recorder.count == 1
    assert len(pair_model.subscribers) == 1


@pytest.mark.model
def test_bound_methods_of_same_object_are_duplicates(pair_model):
    class Listener:
        def __init__(self):
            self.calls = 0

        def handle(self, snapshot):
            self.calls += 1

    listener = Listener()
    pair_model.subscribe(listener.handle)
    pair_model.subscribe(listener.handle)

    pair_model.set_state(set_a(9))

    assert listener.calls == 1


@pytest.mark.model
def test_separately_defined_identical_callbacks_both_register(pair_model):
    """Duplicates are detected by identity, not by the callback's source text"""
    calls = []

    def make_callback():
        def callback(snapshot):
            calls.append(snapshot["a"])

        return callback

    pair_model.subscribe(make_callback())
    pair_model.subscribe(make_callback())

    pair_model.set_state(set_a(6))

    assert calls == [6, 6]


@pytest.mark.model
def test_unsubscribe_removes_specific_callback(pair_model):
    calls = []

    def first(snapshot):
        calls.append("first")

    def second(snapshot):
        calls.append("second")

    pair_model.subscribe(first)
    pair_model.subscribe(second)
    pair_model.unsubscribe(first)

    pair_model.set_state(set_a(2))

    assert calls == ["second"]


@pytest.mark.model
def test_unsubscribe_without_argument_clears_all(pair_model, recorder):
    pair_model.subscribe(recorder)
    pair_model.subscribe(lambda snapshot: None)

    pair_model.unsubscribe()
    pair_model.set_state(set_a(2))

    assert recorder.count == 0
    assert pair_model.subscribers == ()


@pytest.mark.model
def test_unsubscribe_unknown_callback_is_harmless(pair_model, recorder):
    pair_model.subscribe(recorder)

    pair_model.unsubscribe(lambda snapshot: None)
    pair_model.unsubscribe("not callable")

    assert pair_model.subscribers == (recorder,)


@pytest.mark.model
def test_subscribe_ignores_non_callables(pair_model):
    pair_model.subscribe(None)
    pair_model.subscribe(42)

    assert pair_model.subscribers == ()


@pytest.mark.model
def test_subscriber_exception_propagates_after_commit(pair_model):
    """A failing subscriber surfaces to the writer; the write itself stands"""

    def broken(snapshot):
        raise ValueError("subscriber failed")

    pair_model.subscribe(broken)

    with pytest.raises(ValueError, match="subscriber failed"):
        pair_model.set_state(set_a(8))

    assert pair_model.get_state()["a"] == 8


@pytest.mark.model
def test_subscriber_exception_stops_later_subscribers(pair_model, recorder):
    def broken(snapshot):
        raise ValueError("first one fails")

    pair_model.subscribe(broken)
    pair_model.subscribe(recorder)

    with pytest.raises(ValueError):
        pair_model.notify({"a": 0})

    assert recorder.count == 0


@pytest.mark.unit
def test_subscriber_list_tolerates_unsubscribe_during_notify():
    subscribers = SubscriberList()
    calls = []

    def once(payload):
        calls.append(("once", payload))
        subscribers.remove(once)

    def always(payload):
        calls.append(("always", payload))

    subscribers.add(once)
    subscribers.add(always)

    subscribers.notify(1)
    subscribers.notify(2)

    assert calls == [("once", 1), ("always", 1), ("always", 2)]


@pytest.mark.unit
def test_subscriber_list_add_reports_whether_registered():
    subscribers = SubscriberList()

    assert subscribers.add(print) is True
    assert subscribers.add(print) is False
    assert subscribers.add(None) is False
    assert print in subscribers
    assert len(subscribers) == 1
