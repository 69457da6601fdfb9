"""
Factory Contract
================

A factory is a caller-supplied class that parameterizes the generic model
engine. It carries class-level defaults and, once instantiated, acts as the
model's *controller*:

```python
class VirtualFieldState:
    display_name = "VirtualFieldState"
    default_state = {"path": None, "name": "", "visible": True}
    default_props = {}

    def __init__(self, props):
        self.raw_path = props.get("path")

    def setup(self, state, props):
        path = FormPath.parse(props.get("path"))
        return {"path": path, "name": path.entire}

    def publish_state(self, state):
        return {**state, "path": FormPath.parse(state["path"])}
```

Every hook is optional:

- `setup(state, props) -> Mapping | None`: called once at construction with a
  copy of the initial state; returned fields are merged into state.
- `compute_state(draft, current)`: derive computed fields into `draft` during
  each write, with `current` a read-only view of the state before the write.
- `dirty_check(dirty_map) -> Mapping | None`: adjust which keys count as
  changed (truthy marks, falsy unmarks).
- `publish_state(state) -> snapshot`: reshape the snapshot handed to readers
  (manual diffing only).
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional, Protocol

HOOK_NAMES = ("setup", "compute_state", "dirty_check", "publish_state")


class StateFactory(Protocol):
    """Shape expected of a factory class."""

    display_name: Optional[str]
    default_state: Mapping[str, Any]
    default_props: Mapping[str, Any]

    def __init__(self, props: Mapping[str, Any]) -> None: ...


@dataclass(frozen=True)
class ControllerHooks:
    """Which lifecycle hooks a controller provides, resolved once."""

    setup: Optional[Callable[..., Optional[Mapping[str, Any]]]] = None
    compute_state: Optional[Callable[[Any, Any], None]] = None
    dirty_check: Optional[Callable[[Mapping[str, bool]], Optional[Mapping]]] = None
    publish_state: Optional[Callable[[Any], Any]] = None

    @classmethod
    def from_controller(cls, controller: Any) -> "ControllerHooks":
        found = {}
        for name in HOOK_NAMES:
            hook = getattr(controller, name, None)
            found[name] = hook if callable(hook) else None
        return cls(**found)

    def present(self):
        """Names of the hooks that are defined."""
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]
