"""Associative cache with fuzzy key matching.

``NormalizedKeyMap`` keeps keys exactly as they were stored but, in fuzzy
mode, compares them after stripping punctuation and case, so ``"mr mime"``
finds the entry stored as ``"Mr. Mime"``. Lookups scan entries in insertion
order and return the first match.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from .errors import AlreadyFrozenError
from .naming import normalize_key

V = TypeVar("V")

_MISSING = object()


class NormalizedKeyMap(Generic[V]):
    """Insertion-ordered map whose lookups may ignore case and punctuation."""

    def __init__(self, fuzzy: bool = True):
        self._fuzzy = fuzzy
        self._data: Dict[str, V] = {}
        self._frozen = False

    @property
    def fuzzy(self) -> bool:
        return self._fuzzy

    def set_fuzzy(self, fuzzy: bool) -> None:
        """Switch between fuzzy and exact key comparison."""
        self._check_open()
        self._fuzzy = fuzzy

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "NormalizedKeyMap[V]":
        self._frozen = True
        return self

    def _check_open(self) -> None:
        if self._frozen:
            raise AlreadyFrozenError("cache")

    def _find_key(self, key: Any) -> Any:
        if not isinstance(key, str):
            return _MISSING
        if not self._fuzzy:
            return key if key in self._data else _MISSING
        wanted = normalize_key(key)
        for stored in self._data:
            if normalize_key(stored) == wanted:
                return stored
        return _MISSING

    def get(self, key: Any, default: Optional[V] = None) -> Optional[V]:
        """Return the first value whose key matches ``key``, else ``default``."""
        found = self._find_key(key)
        if found is _MISSING:
            return default
        return self._data[found]

    def contains(self, key: Any) -> bool:
        return self._find_key(key) is not _MISSING

    def __contains__(self, key: object) -> bool:
        return self.contains(key)

    def __getitem__(self, key: str) -> V:
        found = self._find_key(key)
        if found is _MISSING:
            raise KeyError(key)
        return self._data[found]

    def put(self, key: str, value: V) -> None:
        """Store ``value`` under the raw ``key``.

        A key that only fuzzily matches an existing one is stored as a new
        entry; earlier entries keep winning lookups.
        """
        self._check_open()
        if not isinstance(key, str):
            raise TypeError(f"Cache keys must be str, got {type(key).__name__}")
        self._data[key] = value

    def __setitem__(self, key: str, value: V) -> None:
        self.put(key, value)

    def get_or_create(self, key: str, factory: Callable[[], V]) -> V:
        """Return the value matching ``key``, storing ``factory()`` when absent."""
        found = self._find_key(key)
        if found is not _MISSING:
            return self._data[found]
        value = factory()
        self.put(key, value)
        return value

    def clear(self) -> None:
        self._check_open()
        self._data.clear()

    def for_each(self, fn: Callable[[str, V], Any]) -> None:
        """Call ``fn(key, value)`` for every entry in insertion order."""
        for key, value in list(self._data.items()):
            fn(key, value)

    def keys(self) -> List[str]:
        return list(self._data)

    def values(self) -> List[V]:
        return list(self._data.values())

    def items(self) -> List[Tuple[str, V]]:
        return list(self._data.items())

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        mode = "fuzzy" if self._fuzzy else "exact"
        return f"NormalizedKeyMap({len(self._data)} entries, {mode})"
