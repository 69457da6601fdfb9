"""
Test utilities for FormState.

Sample factory classes shared across the test modules.
"""

from .factories import NestedState, PairState, VirtualFieldState

__all__ = [
    "NestedState",
    "PairState",
    "VirtualFieldState",
]
