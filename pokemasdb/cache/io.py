"""JSON text helpers.

Provides:
- lenient JSON file reading for configuration
- strict JSON text decoding that raises ``ParseError``
- canonical compact JSON encoding for entity serialization
"""

import json
import os
from typing import Any, Dict, Optional

from ..errors import ParseError


def read_json(path: str) -> Optional[Dict[str, Any]]:
    """Read JSON from disk; return None if missing or invalid."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


def loads(text: str, entity: str = "JSON") -> Any:
    """Decode JSON ``text``; raise ``ParseError`` naming ``entity`` on failure."""
    if not isinstance(text, (str, bytes, bytearray)):
        raise ParseError(entity, f"expected JSON text, got {type(text).__name__}")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(entity, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc


def dumps(obj: Any) -> str:
    """Encode ``obj`` as compact JSON, keeping key order and non-ASCII text."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
