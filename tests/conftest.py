"""
Shared pytest fixtures and configuration for FormState tests.
"""

import pytest

from formstate import FormPath, StateModel
from tests.utils.factories import NestedState, PairState


@pytest.fixture(autouse=True)
def reset_path_cache():
    """Clear the FormPath parse cache before each test to prevent leakage."""
    FormPath.clear_cache()


@pytest.fixture(params=["draft", "manual"])
def strategy(request):
    """Name of the diffing strategy under test; engine tests run under both."""
    return request.param


@pytest.fixture
def make_model(strategy):
    """Build a StateModel for `factory` using the parametrized strategy."""

    def _make(factory, props=None):
        model = StateModel(factory, props, draft_support=strategy == "draft")
        assert model.strategy == strategy
        return model

    return _make


@pytest.fixture
def pair_model(make_model):
    return make_model(PairState)


@pytest.fixture
def nested_model(make_model):
    return make_model(NestedState)


@pytest.fixture
def recorder():
    """Subscriber that records every payload it receives as a plain dict."""

    class Recorder:
        def __init__(self):
            self.payloads = []

        def __call__(self, payload):
            self.payloads.append(dict(payload))

        @property
        def count(self):
            return len(self.payloads)

    return Recorder()
