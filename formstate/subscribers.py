"""
Subscriber list
===============

Ordered observer callbacks for one model. Registration order is notification
order, and registering a callback that is already present does nothing.

Duplicates are detected with `==`: plain functions match only themselves,
bound methods match when they wrap the same function on the same instance.
Two separately defined functions with identical bodies are *different*
subscribers.
"""

import logging
from typing import Any, Callable, Iterator, List, Optional

Subscriber = Callable[[Any], None]


class SubscriberList:
    """
    Ordered, de-duplicated list of callbacks.

    Usage:
        subscribers = SubscriberList()
        subscribers.add(print)
        subscribers.add(print)      # ignored, already registered
        subscribers.notify({"a": 1})
        subscribers.remove(print)
    """

    def __init__(self):
        self._callbacks: List[Subscriber] = []

    def add(self, callback: Optional[Subscriber]) -> bool:
        """Append `callback`; return False if it was ignored."""
        if not callable(callback):
            return False
        if callback in self._callbacks:
            logging.debug(f"Subscriber {callback!r} already registered, skipping")
            return False
        self._callbacks.append(callback)
        return True

    def remove(self, callback: Optional[Subscriber] = None) -> None:
        """Remove every entry equal to `callback`, or everything if omitted."""
        if callback is None:
            self._callbacks.clear()
        elif callable(callback):
            self._callbacks = [fn for fn in self._callbacks if fn != callback]

    def notify(self, payload: Any) -> None:
        """
        Call each subscriber with `payload` in registration order.

        Works on a copy, so subscribers may (un)subscribe while being
        notified. Exceptions raised by a subscriber propagate.
        """
        for callback in list(self._callbacks):
            callback(payload)

    def __contains__(self, callback) -> bool:
        return callback in self._callbacks

    def __iter__(self) -> Iterator[Subscriber]:
        return iter(list(self._callbacks))

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f"SubscriberList({len(self._callbacks)} subscribers)"
