"""
Dotted-path field extraction over parsed JSON values.

Provider responses are arbitrary JSON; the configuration names the fields to
read with paths such as ``data.access_token`` or ``items.0.email``:

- segments are separated by ``.``; ``\\.`` escapes a literal dot in a key
- an integer segment indexes into a list
- an empty path, or any segment that does not resolve, yields ``MISSING``

The typed getters never raise on a missing path; they return the zero value
for their type instead.
"""

import json
import math
from typing import Any, List


class _Missing:
    """Sentinel for a path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def split_path(path: str) -> List[str]:
    """Split a dotted path into segments, honouring ``\\.`` escapes."""
    segments: List[str] = []
    current: List[str] = []
    escaped = False
    for char in path:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ".":
            segments.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    segments.append("".join(current))
    return segments


def resolve(data: Any, path: str) -> Any:
    """Resolve ``path`` against ``data``; return ``MISSING`` if any step fails."""
    if not path:
        return MISSING

    node = data
    for segment in split_path(path):
        if isinstance(node, dict):
            if segment not in node:
                return MISSING
            node = node[segment]
        elif isinstance(node, list):
            try:
                index = int(segment)
            except ValueError:
                return MISSING
            if index < 0 or index >= len(node):
                return MISSING
            node = node[index]
        else:
            return MISSING
    return node


def to_string(value: Any) -> str:
    """String form of a JSON value."""
    if value is MISSING or value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def to_int(value: Any) -> int:
    """Integer form of a JSON value (0 when not numeric)."""
    if value is MISSING or value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            try:
                return int(float(value))
            except (ValueError, OverflowError):
                return 0
    return 0


def get_string(data: Any, path: str) -> str:
    return to_string(resolve(data, path))


def get_int(data: Any, path: str) -> int:
    return to_int(resolve(data, path))


def get_strings(data: Any, path: str) -> List[str]:
    """
    Collect the string form of every element at ``path``.

    Lists yield their elements in order, objects their values in order, and
    a scalar becomes a one-element list. Missing or null yields ``[]``.
    """
    node = resolve(data, path)
    if node is MISSING or node is None:
        return []
    if isinstance(node, list):
        return [to_string(item) for item in node]
    if isinstance(node, dict):
        return [to_string(item) for item in node.values()]
    return [to_string(node)]
