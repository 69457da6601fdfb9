"""Tests for batched writes and deferred notification."""

import pytest


def set_key(key, value):
    def mutate(state):
        state[key] = value

    return mutate


@pytest.mark.model
def test_batch_coalesces_writes_into_one_notification(pair_model, recorder):
    """Three writes to distinct keys notify once with the merged snapshot"""
    pair_model.subscribe(recorder)

    def writes():
        pair_model.set_state(set_key("a", 10))
        pair_model.set_state(set_key("b", 20))
        pair_model.set_state(set_key("c", 30))
        assert recorder.count == 0
        assert dict(pair_model.get_changed()) == {"a": True, "b": True, "c": True}

    pair_model.batch(writes)

    assert recorder.count == 1
    assert recorder.payloads[0] == {
        "a": 10,
        "b": 20,
        "c": 30,
        "display_name": "PairState",
    }


@pytest.mark.model
def test_batch_clears_dirty_map_after_flush(pair_model):
    """The flush notifies with the dirty map intact, then clears it"""
    seen = []
    pair_model.subscribe(lambda payload: seen.append(dict(pair_model.get_changed())))

    pair_model.batch(lambda: pair_model.set_state(set_key("a", 4)))

    assert seen == [{"a": True}]
    assert pair_model.has_changed() is False
    assert pair_model.dirty_count == 0


@pytest.mark.model
def test_batch_sets_batching_flag_only_inside_callback(pair_model):
    seen = []

    pair_model.batch(lambda: seen.append(pair_model.batching))

    assert seen == [True]
    assert pair_model.batching is False


@pytest.mark.model
def test_batch_without_changes_does_not_notify(pair_model, recorder):
    pair_model.subscribe(recorder)

    pair_model.batch(lambda: pair_model.set_state(set_key("a", 1)))
    pair_model.batch()

    assert recorder.count == 0


@pytest.mark.model
def test_batch_ignores_stale_changes_from_earlier_writes(pair_model, recorder):
    """A batch starts a fresh dirty cycle"""
    pair_model.set_state(set_key("a", 5))
    pair_model.subscribe(recorder)

    pair_model.batch()

    assert recorder.count == 0
    assert pair_model.has_changed() is False


@pytest.mark.model
def test_batched_context_manager_notifies_on_exit(pair_model, recorder):
    pair_model.subscribe(recorder)

    with pair_model.batched() as model:
        model.set_state(set_key("a", 3))
        model.set_state(set_key("a", 4))
        assert recorder.count == 0

    assert recorder.count == 1
    assert recorder.payloads[0]["a"] == 4


@pytest.mark.model
def test_nested_batches_flush_once_at_outermost_scope(pair_model, recorder):
    pair_model.subscribe(recorder)

    def inner():
        pair_model.set_state(set_key("b", 9))

    def outer():
        pair_model.set_state(set_key("a", 8))
        pair_model.batch(inner)
        assert recorder.count == 0
        assert pair_model.batching is True
        assert dict(pair_model.get_changed()) == {"a": True, "b": True}

    pair_model.batch(outer)

    assert recorder.count == 1
    assert pair_model.has_changed() is False


@pytest.mark.model
def test_silent_write_inside_batch_is_flushed_by_batch(pair_model, recorder):
    pair_model.subscribe(recorder)

    pair_model.batch(lambda: pair_model.set_state(set_key("a", 2), silent=True))

    assert recorder.count == 1


@pytest.mark.model
def test_batch_exception_propagates_without_notifying(pair_model, recorder):
    pair_model.subscribe(recorder)

    def failing():
        pair_model.set_state(set_key("a", 5))
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError, match="abort"):
        pair_model.batch(failing)

    assert recorder.count == 0
    assert pair_model.batching is False
    assert pair_model.get_state()["a"] == 5
    assert pair_model.has_changed("a") is True


@pytest.mark.model
def test_subscriber_write_during_flush_does_not_notify_again(pair_model):
    """The flush runs while still batching, so reentrant writes stay quiet"""
    payloads = []

    def follow_up(payload):
        payloads.append(dict(payload))
        assert pair_model.batching is True
        if payload["b"] == 2:
            pair_model.set_state(set_key("b", 3))

    pair_model.subscribe(follow_up)
    pair_model.batch(lambda: pair_model.set_state(set_key("a", 7)))

    assert len(payloads) == 1
    assert payloads[0]["a"] == 7
    assert payloads[0]["b"] == 2
    assert pair_model.get_state()["b"] == 3
    assert pair_model.has_changed() is False
    assert pair_model.batching is False


@pytest.mark.model
def test_subscriber_error_during_flush_still_ends_batch(pair_model):
    def broken(payload):
        raise ValueError("flush failed")

    pair_model.subscribe(broken)

    with pytest.raises(ValueError, match="flush failed"):
        pair_model.batch(lambda: pair_model.set_state(set_key("a", 6)))

    assert pair_model.batching is False
    assert pair_model.get_state()["a"] == 6
    assert pair_model.has_changed("a") is True


@pytest.mark.model
def test_batch_ignores_non_callable_callback(pair_model, recorder):
    pair_model.subscribe(recorder)

    pair_model.batch("nope")

    assert recorder.count == 0
    assert pair_model.batching is False
