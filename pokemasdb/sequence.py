"""Freezable list container.

``FrozenSequence`` behaves like a list while it is being built and becomes
read-only once ``freeze()`` has been called. Freezing is one-way.
"""

from __future__ import annotations

from collections.abc import MutableSequence, Sequence
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from .errors import AlreadyFrozenError

T = TypeVar("T")


class FrozenSequence(MutableSequence, Generic[T]):
    """A list wrapper that can be frozen exactly once."""

    __slots__ = ("_items", "_frozen")

    def __init__(self, count: int = 0, placeholder: Optional[T] = None):
        if count < 0:
            raise ValueError(f"count must not be negative, got {count}")
        self._items: List[T] = [placeholder] * count
        self._frozen = False

    @classmethod
    def of(cls, items: Iterable[T] = (), *, frozen: bool = False) -> "FrozenSequence[T]":
        """Build a sequence holding ``items``, optionally frozen right away."""
        seq = cls()
        seq._items.extend(items)
        if frozen:
            seq.freeze()
        return seq

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "FrozenSequence[T]":
        """Make the sequence read-only. Calling it again has no effect."""
        self._frozen = True
        return self

    def _check_open(self) -> None:
        if self._frozen:
            raise AlreadyFrozenError("sequence")

    # Reads

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FrozenSequence):
            return self._items == other._items
        if isinstance(other, Sequence) and not isinstance(other, (str, bytes)):
            return self._items == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        if not self._frozen:
            raise TypeError("unhashable type: open FrozenSequence")
        return hash(tuple(self._items))

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"FrozenSequence({self._items!r}, {state})"

    def to_list(self) -> List[T]:
        """Return a plain list copy of the items."""
        return list(self._items)

    def to_json(self) -> List[Any]:
        """Serialize each element through its ``to_json`` when it has one."""
        return [item.to_json() if hasattr(item, "to_json") else item for item in self._items]

    # Mutators

    def __setitem__(self, index, value) -> None:
        self._check_open()
        self._items[index] = value

    def __delitem__(self, index) -> None:
        self._check_open()
        del self._items[index]

    def insert(self, index: int, value: T) -> None:
        self._check_open()
        self._items.insert(index, value)

    def append(self, value: T) -> None:
        self._check_open()
        self._items.append(value)

    def extend(self, values: Iterable[T]) -> None:
        self._check_open()
        self._items.extend(values)

    def __iadd__(self, values: Iterable[T]) -> "FrozenSequence[T]":
        self.extend(values)
        return self

    def remove(self, value: T) -> None:
        self._check_open()
        self._items.remove(value)

    def pop(self, index: int = -1) -> T:
        self._check_open()
        return self._items.pop(index)

    def clear(self) -> None:
        self._check_open()
        self._items.clear()

    def reverse(self) -> None:
        self._check_open()
        self._items.reverse()

    def sort(self, *, key: Optional[Callable[[T], Any]] = None, reverse: bool = False) -> None:
        self._check_open()
        self._items.sort(key=key, reverse=reverse)
