"""
Form Paths
==========

`FormPath` turns the dotted/bracketed strings fields are addressed by
(`"user.addresses[0].city"`) into a tuple of segments and a normalized
`entire` key (`"user.addresses.0.city"`). Factories use it to derive a
canonical field name from a raw path prop; models accept a `FormPath`
wherever a state key is expected.

Parsing is cached in an LRU cache since the same handful of paths is
resolved over and over by every field of a form.
"""

import re
from typing import Any, Iterable, Optional, Tuple, Union

from cachetools import LRUCache

_SEGMENT_RE = re.compile(r"\[(\d+)\]|([^.\[\]]+)")

PathLike = Union[None, str, int, Iterable[Any], "FormPath"]


class FormPath:
    """
    Immutable, hashable path into nested state.

    Usage:
        path = FormPath.parse("user.addresses[0].city")
        path.segments  # ("user", "addresses", 0, "city")
        path.entire    # "user.addresses.0.city"
        path.get_in({"user": {"addresses": [{"city": "Oslo"}]}})  # "Oslo"
    """

    CACHE_SIZE = 1024
    _cache: LRUCache = LRUCache(maxsize=CACHE_SIZE)

    __slots__ = ("segments", "entire")

    def __init__(self, segments: Tuple[Any, ...] = ()):
        self.segments = tuple(segments)
        self.entire = ".".join(str(segment) for segment in self.segments)

    @classmethod
    def parse(cls, path: PathLike = None) -> "FormPath":
        """Resolve any path-like value into a `FormPath`."""
        if isinstance(path, FormPath):
            return path
        if path is None:
            return cls()
        if isinstance(path, int):
            return cls((path,))
        if not isinstance(path, str):
            return cls(tuple(path))

        cached = cls._cache.get(path)
        if cached is None:
            cached = cls(tuple(cls._split(path)))
            cls._cache[path] = cached
        return cached

    @staticmethod
    def _split(path: str):
        for index, name in _SEGMENT_RE.findall(path.strip()):
            if index:
                yield int(index)
            elif name.isdigit():
                yield int(name)
            else:
                yield name.strip()

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()

    def parent(self) -> "FormPath":
        return FormPath(self.segments[:-1])

    def concat(self, *paths: PathLike) -> "FormPath":
        segments = list(self.segments)
        for path in paths:
            segments.extend(FormPath.parse(path).segments)
        return FormPath(tuple(segments))

    def get_in(self, source: Any, default: Any = None) -> Any:
        """Read the value this path points at, or `default` if it is absent."""
        current = source
        for segment in self.segments:
            try:
                current = current[segment]
            except (KeyError, IndexError, TypeError):
                return default
        return current

    @property
    def key(self) -> Optional[Any]:
        """First segment, i.e. the top-level state key."""
        return self.segments[0] if self.segments else None

    def __iter__(self):
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __eq__(self, other) -> bool:
        if isinstance(other, FormPath):
            return self.segments == other.segments
        if isinstance(other, str):
            return self.entire == FormPath.parse(other).entire
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.segments)

    def __copy__(self) -> "FormPath":
        return self

    def __deepcopy__(self, memo) -> "FormPath":
        return self

    def __str__(self) -> str:
        return self.entire

    def __repr__(self) -> str:
        return f"FormPath({self.entire!r})"
