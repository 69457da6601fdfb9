"""
Update strategies
=================

A model applies writes through one of two strategies, chosen once at
construction. Both honour the same contract: run the mutator (and the
controller's `compute_state`) against a working copy, commit the result into
the model's state, and report which top-level keys ended up different.

- `ManualDiffStrategy` works on a deep copy and diffs it key by key against
  the stored state, writing differing keys back in place.
- `DraftPatchStrategy` runs the mutator on a copy-on-write draft
  (`formstate.draft.produce`) and derives the changed keys from the recorded
  patches. The stored state is replaced by the committed value, never edited
  in place.

Either way, an exception raised by the mutator or a hook leaves the stored
state untouched.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from .draft import Patch, freeze, produce
from .shared import clone, is_equal

if TYPE_CHECKING:
    from .model import StateModel

Mutator = Callable[[Any], Any]


class UpdateStrategy(ABC):
    """Shared contract of the two diffing strategies."""

    name = "abstract"

    def __init__(self, model: "StateModel"):
        self._model = model

    @abstractmethod
    def snapshot(self) -> Any:
        """Value handed to readers; must not alias the stored state."""
        pass

    @abstractmethod
    def apply(self, mutator: Mutator) -> Dict[str, bool]:
        """Run a write and commit it; return the keys it changed."""
        pass

    @abstractmethod
    def write_source(self, callback: Mutator) -> None:
        """Apply `callback` to the state without hooks or dirty tracking."""
        pass

    @abstractmethod
    def changed(self, dirty_map: Dict[str, bool]) -> Mapping[str, bool]:
        pass

    def read_source(self, callback: Optional[Callable[[Any], Any]] = None) -> Any:
        state = self._model._state
        if callable(callback):
            return callback(state)
        return state

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ManualDiffStrategy(UpdateStrategy):
    """Deep-copy, mutate, then compare every key with `is_equal`."""

    name = "manual"

    def snapshot(self) -> Any:
        model = self._model
        publish = model._hooks.publish_state
        if publish is not None:
            return publish(model._state)
        return clone(model._state)

    def apply(self, mutator: Mutator) -> Dict[str, bool]:
        model = self._model
        hooks = model._hooks
        state = model._state

        # publish_state may return a view sharing structure with the state
        draft = clone(self.snapshot()) if hooks.publish_state else self.snapshot()
        mutator(draft)
        if hooks.compute_state is not None:
            hooks.compute_state(draft, freeze(state))

        keys = list(state)
        if hooks.publish_state is None:
            keys.extend(key for key in draft if key not in state)

        marks: Dict[str, bool] = {}
        for key in keys:
            if key not in draft:
                del state[key]
                marks[key] = True
            elif key not in state or not is_equal(state[key], draft[key]):
                state[key] = draft[key]
                marks[key] = True
        return marks

    def write_source(self, callback: Mutator) -> None:
        callback(self._model._state)

    def changed(self, dirty_map: Dict[str, bool]) -> Mapping[str, bool]:
        return dict(dirty_map)


class DraftPatchStrategy(UpdateStrategy):
    """Copy-on-write draft; changed keys come from the patch log."""

    name = "draft"

    def snapshot(self) -> Any:
        return freeze(self._model._state)

    def apply(self, mutator: Mutator) -> Dict[str, bool]:
        model = self._model
        compute_state = model._hooks.compute_state
        base = model._state
        current = freeze(base) if compute_state is not None else None

        def recipe(draft):
            mutator(draft)
            if compute_state is not None:
                compute_state(draft, current)

        patches: List[Patch] = []
        result = produce(base, recipe, patches.extend)

        marks: Dict[str, bool] = {}
        for patch in patches:
            key = patch.path[0]
            if key in marks:
                continue
            if patch.op != "replace" or not is_equal(base[key], result[key]):
                marks[key] = True

        model._state = result
        return marks

    def write_source(self, callback: Mutator) -> None:
        model = self._model
        model._state = produce(model._state, callback)

    def changed(self, dirty_map: Dict[str, bool]) -> Mapping[str, bool]:
        # The model replaces the map wholesale on every write cycle.
        return dirty_map


def select_strategy(model: "StateModel", use_drafts: bool) -> UpdateStrategy:
    if use_drafts:
        return DraftPatchStrategy(model)
    return ManualDiffStrategy(model)
