"""
FormState Model - Reactive State Container for Form Fields
==========================================================

`StateModel` is the generic engine behind every field (and virtual field) of
a form. A *factory* class supplies default state, default props and optional
lifecycle hooks; the model owns the state, applies writes through one of two
diffing strategies, tracks which top-level keys changed, and notifies
subscribers.

Basic Usage
-----------

```python
from formstate import create_state_model

class CounterState:
    display_name = "CounterState"
    default_state = {"count": 0, "label": "Counter"}
    default_props = {}

    def __init__(self, props):
        pass

CounterModel = create_state_model(CounterState)
model = CounterModel()

@model.subscribe
def on_change(snapshot):
    print(f"count={snapshot['count']} changed={model.get_changed()}")

model.set_state(lambda state: state.update(count=1))
# count=1 changed={'count': True}
```

Writes and notification
-----------------------

- `set_state(mutator)` runs `mutator(draft)`; keys whose final value differs
  (deep equality) from the stored one are marked dirty. Re-assigning an equal
  value marks nothing.
- If anything is dirty, subscribers are called once with a fresh snapshot,
  unless the write is `silent` or a batch is open.
- `batch(callback)` / `with model.batched():` collects the writes of a scope
  and notifies once when the outermost scope closes, then clears the dirty
  map before batching ends.
- After a plain write the dirty map stays readable (`has_changed`,
  `get_changed`) until the next write cycle starts.

Strategies
----------

Drafts (`DraftPatchStrategy`) are used when the process supports them and
the model is not created with `use_dirty=True` in its props; otherwise
`ManualDiffStrategy` diffs a deep copy. Pass `draft_support=` to override the
process-wide default per model.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Type, Union

from .capability import DRAFT_SUPPORT
from .factory import ControllerHooks
from .path import FormPath
from .shared import clone
from .strategies import UpdateStrategy, select_strategy
from .subscribers import Subscriber, SubscriberList


class StateModel:
    """
    State container parameterized by a factory class.

    Args:
        factory: Class providing `default_state`, `default_props`, an optional
            `display_name`, and optional controller hooks. It is instantiated
            once with a read-only view of the merged props.
        props: Caller props, shallow-merged over `factory.default_props`.
        draft_support: Whether copy-on-write drafts may be used. Defaults to
            the process-wide probe result.
    """

    def __init__(
        self,
        factory: Type,
        props: Optional[Mapping[str, Any]] = None,
        *,
        draft_support: Optional[bool] = None,
    ):
        self.factory = factory
        self._state: Dict[str, Any] = dict(getattr(factory, "default_state", None) or {})
        self.props: Dict[str, Any] = {
            **dict(getattr(factory, "default_props", None) or {}),
            **dict(props or {}),
        }
        self._dirty_map: Dict[str, bool] = {}
        self._subscribers = SubscriberList()
        self._batch_depth = 0

        props_view = MappingProxyType(self.props)
        self.controller = factory(props_view)
        self._hooks = ControllerHooks.from_controller(self.controller)
        if self._hooks.setup is not None:
            derived = self._hooks.setup(clone(self._state), props_view)
            if derived is not None:
                self._state.update(derived)

        self.display_name: Optional[str] = getattr(factory, "display_name", None)
        self._state["display_name"] = self.display_name

        if draft_support is None:
            draft_support = DRAFT_SUPPORT
        self.use_drafts = bool(draft_support) and not self.props.get("use_dirty")
        self._strategy: UpdateStrategy = select_strategy(self, self.use_drafts)

        logging.debug(
            f"Created {self.display_name or factory.__name__} model "
            f"({self._strategy.name} strategy, hooks={self._hooks.present()})"
        )

    # ========================================================================
    # INSPECTION
    # ========================================================================

    @property
    def strategy(self) -> str:
        return self._strategy.name

    @property
    def dirty_map(self) -> Mapping[str, bool]:
        return MappingProxyType(self._dirty_map)

    @property
    def dirty_count(self) -> int:
        return len(self._dirty_map)

    @property
    def batching(self) -> bool:
        return self._batch_depth > 0

    @property
    def subscribers(self) -> tuple:
        return tuple(self._subscribers)

    def has_changed(self, key: Union[None, str, FormPath] = None) -> bool:
        """Whether `key` changed in the last write cycle, or anything did."""
        if key is None:
            return self.dirty_count > 0
        if isinstance(key, FormPath):
            key = key.entire
        return self._dirty_map.get(key) is True

    def get_changed(self) -> Mapping[str, bool]:
        return self._strategy.changed(self._dirty_map)

    # ========================================================================
    # SUBSCRIPTION
    # ========================================================================

    def subscribe(self, callback: Optional[Subscriber] = None):
        """Register `callback`; returns it so this works as a decorator."""
        self._subscribers.add(callback)
        return callback

    def unsubscribe(self, callback: Optional[Subscriber] = None) -> None:
        """Remove `callback`, or every subscriber when called without one."""
        self._subscribers.remove(callback)

    def notify(self, payload: Any) -> None:
        self._subscribers.notify(payload)

    # ========================================================================
    # READS AND WRITES
    # ========================================================================

    def get_state(self, callback: Optional[Callable[[Any], Any]] = None) -> Any:
        """
        Snapshot of the state, or `callback(snapshot)` if a callback is given.

        The snapshot never aliases the stored state: it is a deep copy (or the
        controller's `publish_state` view) with manual diffing, and a
        read-only view with drafts.
        """
        if callable(callback):
            return callback(self.get_state())
        return self._strategy.snapshot()

    def set_state(self, mutator: Callable[[Any], Any], silent: bool = False) -> None:
        """
        Apply `mutator` to a working copy of the state and commit the result.

        Args:
            mutator: Called with a mutable mapping; edits it in place.
            silent: Update state and dirty tracking without notifying.
        """
        if not callable(mutator):
            return

        marks = self._strategy.apply(mutator)
        pending = self._dirty_map if self.batching else {}
        self._dirty_map = {**pending, **marks}
        self._run_dirty_check()

        if self.dirty_count > 0 and not silent:
            if self.batching:
                return
            self.notify(self.get_state())

    def get_source_state(self, callback: Optional[Callable[[Any], Any]] = None) -> Any:
        """Live state (or `callback(live_state)`). Do not keep a reference."""
        return self._strategy.read_source(callback)

    def set_source_state(self, callback: Callable[[Any], Any]) -> None:
        """Edit the state directly: no hooks, no dirty tracking, no notification."""
        if callable(callback):
            self._strategy.write_source(callback)

    def _run_dirty_check(self) -> None:
        dirty_check = self._hooks.dirty_check
        if dirty_check is None:
            return
        result = dirty_check(MappingProxyType(self._dirty_map))
        if result is None:
            return
        merged = dict(self._dirty_map)
        for key, flag in result.items():
            if flag:
                merged[key] = True
            else:
                merged.pop(key, None)
        self._dirty_map = merged

    # ========================================================================
    # BATCHING
    # ========================================================================

    def batched(self) -> "BatchContext":
        """Context manager form of `batch`."""
        return BatchContext(self)

    def batch(self, callback: Optional[Callable[[], Any]] = None) -> None:
        """Run `callback` with notifications deferred to the end of the batch."""
        with self.batched():
            if callable(callback):
                callback()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def dispose(self) -> None:
        self._subscribers.remove()

    def __repr__(self) -> str:
        name = self.display_name or type(self).__name__
        return (
            f"StateModel({name}, strategy={self._strategy.name}, "
            f"dirty={sorted(map(str, self._dirty_map))})"
        )


class BatchContext:
    def __init__(self, model: StateModel):
        self._model = model

    def __enter__(self):
        model = self._model
        if model._batch_depth == 0:
            model._dirty_map = {}
        model._batch_depth += 1
        return model

    def __exit__(self, exc_type, exc_val, exc_tb):
        model = self._model
        try:
            # Still batching while flushing: writes made by subscribers are
            # applied but do not notify again.
            if model._batch_depth == 1 and exc_type is None and model.dirty_count > 0:
                logging.debug(
                    f"Flushing batch for {model.display_name}: {sorted(map(str, model._dirty_map))}"
                )
                model.notify(model.get_state())
                model._dirty_map = {}
        finally:
            model._batch_depth -= 1

        return False


def create_state_model(factory: Type) -> Type[StateModel]:
    """
    Bind `factory` into a `StateModel` subclass.

    The returned class is constructed as `Model(props=None, *, draft_support=None)`.
    """

    class Model(StateModel):
        def __init__(
            self,
            props: Optional[Mapping[str, Any]] = None,
            *,
            draft_support: Optional[bool] = None,
        ):
            super().__init__(factory, props, draft_support=draft_support)

    name = getattr(factory, "display_name", None) or factory.__name__
    Model.__name__ = Model.__qualname__ = f"{name}Model"
    Model.__doc__ = f"State model for {name}."
    return Model
