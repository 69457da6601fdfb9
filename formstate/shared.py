"""
Shared helpers for state comparison and copying.

Both update strategies decide "did this key change" with `is_equal`, a deep
structural comparison that understands numpy arrays, and hand out
independent copies with `clone`.
"""

import copy
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(
        value, (str, bytes, bytearray)
    )


def is_equal(a: Any, b: Any) -> bool:
    """
    Deep structural equality.

    Mappings compare key by key, lists and tuples element by element (a list
    never equals a tuple), numpy arrays with `np.array_equal`. Anything else
    falls back to `==`; comparisons that raise are treated as unequal.
    """
    if a is b:
        return True

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if type(a) != type(b):
            return False
        return bool(np.array_equal(a, b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if len(a) != len(b):
            return False
        for key in a:
            if key not in b or not is_equal(a[key], b[key]):
                return False
        return True

    if _is_sequence(a) and _is_sequence(b):
        if isinstance(a, tuple) != isinstance(b, tuple):
            return False
        if len(a) != len(b):
            return False
        return all(is_equal(x, y) for x, y in zip(a, b))

    try:
        return bool(a == b)
    except (ValueError, TypeError):
        return False


def clone(value: Any) -> Any:
    """Deep copy; the result shares no mutable structure with `value`."""
    return copy.deepcopy(value)
