"""
Copy-on-Write Drafts
====================

This module provides the draft mechanism used by the draft/patch update
strategy: `produce` hands a recipe a mutable *draft* of a base value, and
commits the recipe's edits as a new value while leaving the base untouched.

How it works
------------

- Plain `dict` and `list` values are drafted lazily, the first time they are
  read through a parent draft. Other values (numbers, strings, numpy arrays,
  arbitrary objects) are handed out as they are; replace them, never mutate
  them in place.
- A draft copies its container on the first write and marks every ancestor
  as modified. Untouched subtrees are shared between base and result, and an
  untouched base comes back from `produce` unchanged (same object).
- Assigning a value that is already the current value (same object) is not a
  change.
- While committing, every modified container reports `Patch` records:
  `replace` for a slot that now holds a different object, `add` and
  `remove` for structural changes. Paths are tuples of keys and indexes.
- Once `produce` returns (or raises), its drafts are revoked; any further
  use raises `DraftRevokedError`.

Example:
    patches = []
    new = produce({"a": 1, "b": {"c": 2}}, lambda d: d["b"].update(c=3), patches.extend)
    # new == {"a": 1, "b": {"c": 3}}
    # patches == [Patch("replace", ("b", "c"), 3)]

`freeze` turns a value into a read-only snapshot for outside readers:
`FrozenDict` and `FrozenList` are real `dict`/`list` subclasses whose
mutating methods raise, and numpy arrays become non-writeable views. Frozen
values written back into a draft are thawed into plain containers.
"""

import copy
from collections.abc import Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

_MISSING = object()


class DraftRevokedError(Exception):
    """Raised when a draft is used after its `produce` call has finished."""

    pass


@dataclass(frozen=True)
class Patch:
    """One change-log entry recorded while committing a draft."""

    op: str
    path: Tuple[Any, ...]
    value: Any = None

    def __repr__(self) -> str:
        where = ".".join(str(part) for part in self.path)
        if self.op == "remove":
            return f"Patch(remove {where})"
        return f"Patch({self.op} {where} = {self.value!r})"


class _Scope:
    """Every draft created during one `produce` call."""

    def __init__(self):
        self.drafts: List["_Draft"] = []

    def revoke(self) -> None:
        for draft in self.drafts:
            draft._revoked = True
        self.drafts = []


def _is_draftable(value: Any) -> bool:
    return type(value) is dict or type(value) is list


def _create_draft(base, parent: Optional["_Draft"], scope: _Scope) -> "_Draft":
    if type(base) is dict:
        return DictDraft(base, parent, scope)
    return ListDraft(base, parent, scope)


def _unfreeze(value: Any) -> Any:
    # Read-only views handed out as snapshots become plain, draftable values
    # again once they are written back into state.
    if isinstance(value, (FrozenDict, FrozenList)):
        return thaw(value)
    return value


def _resolve(value: Any) -> Any:
    """Replace drafts embedded in a newly assigned value with their results."""
    if isinstance(value, _Draft):
        return value._finalize()
    if isinstance(value, (FrozenDict, FrozenList)):
        return thaw(value)
    if type(value) is dict:
        resolved = {key: _resolve(item) for key, item in value.items()}
        if all(resolved[key] is value[key] for key in value):
            return value
        return resolved
    if type(value) is list:
        resolved = [_resolve(item) for item in value]
        if all(new is old for new, old in zip(resolved, value)):
            return value
        return resolved
    return value


class _Draft:
    """Bookkeeping shared by dict and list drafts."""

    def __init__(self, base, parent: Optional["_Draft"], scope: _Scope):
        self._base = base
        self._copy = None
        self._parent = parent
        self._scope = scope
        self._modified = False
        self._revoked = False
        self._result = _MISSING
        scope.drafts.append(self)

    def _assert_live(self) -> None:
        if self._revoked:
            raise DraftRevokedError(
                f"{type(self).__name__} used after produce() finished"
            )

    def _source(self):
        return self._base if self._copy is None else self._copy

    def _prepare_copy(self) -> None:
        if self._copy is None:
            self._copy = self._base.copy()

    def _mark_changed(self) -> None:
        if not self._modified:
            self._modified = True
            self._prepare_copy()
            if self._parent is not None:
                self._parent._mark_changed()

    def _is_base_value(self, slot, value) -> bool:
        raise NotImplementedError

    def _child(self, slot, value):
        # Only untouched base containers get a draft; values assigned during
        # this produce call are already private to the result.
        if not _is_draftable(value) or not self._is_base_value(slot, value):
            return value
        child = _create_draft(value, self, self._scope)
        self._prepare_copy()
        self._copy[slot] = child
        return child

    def _owns(self, value, base_value) -> bool:
        return (
            isinstance(value, _Draft)
            and value._parent is self
            and value._base is base_value
        )

    def _build(self):
        raise NotImplementedError

    def _finalize(self):
        if self._result is _MISSING:
            self._result = self._build() if self._modified else self._base
        return self._result

    def _collect_patches(self, path: Tuple[Any, ...], patches: List[Patch]) -> None:
        raise NotImplementedError

    def _patch_slot(self, slot, value, base_value, result_value, path, patches):
        if self._owns(value, base_value):
            value._collect_patches(path + (slot,), patches)
        elif result_value is not base_value:
            patches.append(Patch("replace", path + (slot,), result_value))


class DictDraft(_Draft, MutableMapping):
    """Mutable draft of a `dict`."""

    def _is_base_value(self, key, value) -> bool:
        return value is self._base.get(key, _MISSING)

    def __getitem__(self, key):
        self._assert_live()
        return self._child(key, self._source()[key])

    def __setitem__(self, key, value) -> None:
        self._assert_live()
        source = self._source()
        if key in source and source[key] is value:
            return
        self._mark_changed()
        self._copy[key] = _unfreeze(value)

    def __delitem__(self, key) -> None:
        self._assert_live()
        if key not in self._source():
            raise KeyError(key)
        self._mark_changed()
        del self._copy[key]

    def __contains__(self, key) -> bool:
        self._assert_live()
        return key in self._source()

    def __iter__(self):
        self._assert_live()
        return iter(self._source())

    def __len__(self) -> int:
        self._assert_live()
        return len(self._source())

    def copy(self) -> dict:
        """Shallow plain copy; nested containers stay drafts of this scope."""
        self._assert_live()
        return {key: self[key] for key in list(self)}

    def __or__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = self.copy()
        merged.update(other)
        return merged

    def __ror__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = dict(other)
        merged.update(self.copy())
        return merged

    def __ior__(self, other):
        self.update(other)
        return self

    def __repr__(self) -> str:
        return f"DictDraft({self._source()!r})"

    def _build(self):
        base = self._base
        return {
            key: value if value is base.get(key, _MISSING) else _resolve(value)
            for key, value in self._copy.items()
        }

    def _collect_patches(self, path, patches) -> None:
        if not self._modified:
            return
        base, result = self._base, self._finalize()
        for key in base:
            if key not in self._copy:
                patches.append(Patch("remove", path + (key,)))
        for key, value in self._copy.items():
            if key not in base:
                patches.append(Patch("add", path + (key,), result[key]))
            else:
                self._patch_slot(key, value, base[key], result[key], path, patches)


class ListDraft(_Draft, MutableSequence):
    """Mutable draft of a `list`."""

    def _is_base_value(self, index, value) -> bool:
        return index < len(self._base) and value is self._base[index]

    def _index(self, index: int) -> int:
        length = len(self._source())
        if index < 0:
            index += length
        if not 0 <= index < length:
            raise IndexError("list index out of range")
        return index

    def __getitem__(self, index):
        self._assert_live()
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self._source())))]
        index = self._index(index)
        return self._child(index, self._source()[index])

    def __setitem__(self, index, value) -> None:
        self._assert_live()
        if isinstance(index, slice):
            value = [_unfreeze(item) for item in value]
        else:
            index = self._index(index)
            if self._source()[index] is value:
                return
            value = _unfreeze(value)
        self._mark_changed()
        self._copy[index] = value

    def __delitem__(self, index) -> None:
        self._assert_live()
        if not isinstance(index, slice):
            index = self._index(index)
        self._mark_changed()
        del self._copy[index]

    def __len__(self) -> int:
        self._assert_live()
        return len(self._source())

    def insert(self, index: int, value) -> None:
        self._assert_live()
        self._mark_changed()
        self._copy.insert(index, _unfreeze(value))

    def copy(self) -> list:
        """Shallow plain copy; nested containers stay drafts of this scope."""
        self._assert_live()
        return list(self)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._assert_live()
        ordered = sorted(self.copy(), key=key, reverse=reverse)
        self._mark_changed()
        self._copy[:] = ordered

    def __add__(self, other):
        if not isinstance(other, (list, ListDraft)):
            return NotImplemented
        return self.copy() + list(other)

    def __radd__(self, other):
        if not isinstance(other, (list, ListDraft)):
            return NotImplemented
        return list(other) + self.copy()

    def __iadd__(self, other):
        self.extend(other)
        return self

    def __mul__(self, count):
        if not isinstance(count, int):
            return NotImplemented
        return self.copy() * count

    __rmul__ = __mul__

    def __imul__(self, count):
        if not isinstance(count, int):
            return NotImplemented
        items = self.copy()
        self._mark_changed()
        self._copy[:] = items * count
        return self

    def __eq__(self, other) -> bool:
        if isinstance(other, (list, ListDraft)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"ListDraft({self._source()!r})"

    def _build(self):
        base = self._base
        size = len(base)
        return [
            value if index < size and value is base[index] else _resolve(value)
            for index, value in enumerate(self._copy)
        ]

    def _collect_patches(self, path, patches) -> None:
        if not self._modified:
            return
        base, result = self._base, self._finalize()
        common = min(len(base), len(result))
        for index in range(common):
            self._patch_slot(
                index, self._copy[index], base[index], result[index], path, patches
            )
        for index in range(len(base), len(result)):
            patches.append(Patch("add", path + (index,), result[index]))
        for index in reversed(range(len(result), len(base))):
            patches.append(Patch("remove", path + (index,)))


def produce(
    base,
    recipe: Callable[[Any], Any],
    patch_listener: Optional[Callable[[List[Patch]], Any]] = None,
):
    """
    Run `recipe` against a draft of `base` and return the committed result.

    Args:
        base: The dict or list to derive from. It is never modified.
        recipe: Called with the root draft; its return value is ignored.
        patch_listener: Optional callable receiving the list of patches
            recorded while committing.

    Returns:
        The new value, or `base` itself when the recipe changed nothing.

    Raises:
        TypeError: If `base` is not a plain dict or list.
    """
    if not _is_draftable(base):
        raise TypeError(f"produce() needs a dict or list, got {type(base).__name__}")

    scope = _Scope()
    root = _create_draft(base, None, scope)
    patches: List[Patch] = []
    try:
        recipe(root)
        result = root._finalize()
        if patch_listener is not None:
            root._collect_patches((), patches)
    finally:
        scope.revoke()

    if patch_listener is not None:
        patch_listener(patches)
    return result


# ============================================================================
# READ-ONLY VIEWS
# ============================================================================


def _read_only(self, *args, **kwargs):
    raise TypeError(f"{type(self).__name__} is read-only")


class FrozenDict(dict):
    """
    Read-only snapshot of a dict.

    A real `dict` subclass, so it serializes, compares and merges like the
    state it was taken from. Nested dicts and lists are frozen as well; every
    mutating method raises `TypeError`. `copy()` and `|` return plain dicts.
    """

    __slots__ = ()

    def __init__(self, source=()):
        items = source.items() if isinstance(source, Mapping) else source
        dict.__init__(self, ((key, freeze(value)) for key, value in items))

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        result = {}
        memo[id(self)] = result
        for key, value in self.items():
            result[copy.deepcopy(key, memo)] = copy.deepcopy(value, memo)
        return result

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


class FrozenList(list):
    """
    Read-only snapshot of a list.

    A real `list` subclass; nested containers are frozen and every mutating
    method raises `TypeError`. Slicing, `+` and `copy()` return plain lists.
    """

    __slots__ = ()

    def __init__(self, source=()):
        list.__init__(self, (freeze(value) for value in source))

    __setitem__ = __delitem__ = __iadd__ = __imul__ = _read_only
    append = extend = insert = pop = remove = clear = sort = reverse = _read_only

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        result = []
        memo[id(self)] = result
        result.extend(copy.deepcopy(value, memo) for value in self)
        return result

    def __reduce__(self):
        return (FrozenList, (list(self),))


def freeze(value: Any) -> Any:
    """Wrap `value` so that it cannot be used to mutate the original."""
    if type(value) is dict:
        return FrozenDict(value)
    if type(value) is list:
        return FrozenList(value)
    if isinstance(value, np.ndarray):
        view = value.view()
        view.flags.writeable = False
        return view
    return value


def thaw(value: Any) -> Any:
    """Plain, independent deep copy of a (possibly frozen) value."""
    return copy.deepcopy(value)


__all__ = [
    "DictDraft",
    "DraftRevokedError",
    "FrozenDict",
    "FrozenList",
    "ListDraft",
    "Patch",
    "freeze",
    "produce",
    "thaw",
]
