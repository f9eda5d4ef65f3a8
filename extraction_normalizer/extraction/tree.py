"""Lenient navigation over parsed (json.loads) extraction payloads.

The extraction engine is inconsistent about shapes: a list can arrive as a
bare object, a number as a string, a missing node as an explicit null. These
helpers absorb that so traversal code never type-checks nodes itself:

    get_child(node, key)  -> child value or None (null / non-object parent => None)
    as_values(node)       -> list for "one or many" positions (array, lone object, else [])
    read_text(node, key)  -> child rendered as text, or None
    read_float(node, key) -> float with a caller-supplied default for junk
    read_int(node, key)   -> Optional[int]; raises on present-but-unusable values
"""

import json
import math
from typing import Any, List, Optional


def get_child(node: Any, key: str) -> Any:
    """Return node[key] when node is an object and the child is present and not null."""
    if not isinstance(node, dict):
        return None
    return node.get(key)


def get_object(node: Any, key: str) -> Optional[dict]:
    """Like get_child but only yields JSON objects."""
    value = get_child(node, key)
    return value if isinstance(value, dict) else None


def as_values(node: Any) -> List[Any]:
    if isinstance(node, list):
        return list(node)
    if isinstance(node, dict):
        return [node]
    return []


def to_text(value: Any) -> Optional[str]:
    """Render a JSON scalar (or container) the way it reads in the source payload."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def read_text(node: Any, key: str) -> Optional[str]:
    return to_text(get_child(node, key))


def _parse_number(text: str) -> float:
    # Invariant culture: '.' decimal point, ',' group separator; no '_' digit grouping.
    text = text.strip()
    if "_" in text:
        raise ValueError(f"not a number: {text!r}")
    return float(text.replace(",", ""))


def read_float(node: Any, key: str, default: float) -> float:
    """Read a numeric child as float.

    Numbers and numeric strings are accepted; null, absent, booleans,
    containers, unparsable, overflowing or non-finite values all yield default.
    """
    value = get_child(node, key)
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        result = _parse_number(value) if isinstance(value, str) else float(value)
    except (OverflowError, ValueError):
        return default
    return result if math.isfinite(result) else default


def read_int(node: Any, key: str) -> Optional[int]:
    """Read an integral child; None when null, absent or an empty string.

    Anything else that cannot be read as a whole number raises ValueError,
    which the transformer reports against the stage in flight.
    """
    value = get_child(node, key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"'{key}' is a boolean, expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"'{key}' is not a whole number: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        number = _parse_number(text)
        if not number.is_integer():
            raise ValueError(f"'{key}' is not a whole number: {value!r}")
        return int(number)
    raise ValueError(f"'{key}' has unsupported type {type(value).__name__}")
