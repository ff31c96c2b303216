"""Naming helpers.

Centralizes the deterministic text rules shared by parsing, caching and
transport:
- fuzzy key normalization (letters and digits only, case-insensitive)
- lenient integer parsing of display strings such as ``"1,234"``
- trainer URL path resolution
- user labels (``"<trainer>'s <pokemon>"``)
"""

from __future__ import annotations

import re
from typing import Any

WHITESPACE_RE = re.compile(r"\s")


def reduce_to_alphanumeric(text: str) -> str:
    """Strip everything but letters and digits from ``text``.

    Unicode-aware: accented letters (``"é"`` in ``"Pokémon"``) are kept.
    """
    return "".join(ch for ch in text if ch.isalnum())


def normalize_key(text: str) -> str:
    """Return the fuzzy comparison form of ``text``."""
    return reduce_to_alphanumeric(text).casefold()


def fuzzy_equals(a: Any, b: Any) -> bool:
    """Compare two keys ignoring case and punctuation.

    Non-string keys never match anything.
    """
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return normalize_key(a) == normalize_key(b)


def to_int(value: Any) -> int:
    """Leniently parse ``value`` as an integer.

    Every digit in the text is kept (``"1,234"`` -> 1234, ``"Lv. 3"`` -> 3),
    the result is negated when the text starts with ``-`` and text with no
    digits yields 0. Integers pass through unchanged.
    """
    if isinstance(value, bool):
        raise TypeError("Cannot parse a boolean as an integer")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Cannot parse {type(value).__name__} as an integer")

    digits = "".join(ch for ch in value if "0" <= ch <= "9")
    if not digits:
        return 0
    number = int(digits)
    return -number if value.startswith("-") else number


def resolve_trainer_path(name: str) -> str:
    """Encode a trainer name as its pokemasdb URL path segment."""
    return WHITESPACE_RE.sub("%20", name)


def user_label(trainer: str, pokemon: str) -> str:
    """Return the ``"<trainer>'s <pokemon>"`` label of a sync pair."""
    return f"{trainer}'s {pokemon}"
