"""Structural equality for JSON-like values.

Used by ``uniqueItems`` checks. Values are compared by JSON kind first, so
``True`` never equals ``1`` while a list and a tuple with equal items do.
Container pairs already under comparison are memoized, which makes
self-referencing structures terminate.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

MAX_COMPARE_DEPTH = 200


class ComparisonDepthError(ValueError):
    """Raised when values nest deeper than MAX_COMPARE_DEPTH."""


def json_kind(value: Any) -> str:
    """Classify a Python value by its JSON type name."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return "other"


def _numbers_equal(a: int | float, b: int | float) -> bool:
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return a == b


def deep_equal(
    a: Any, b: Any, _seen: set[tuple[int, int]] | None = None, _depth: int = 0
) -> bool:
    """Return True when ``a`` and ``b`` are structurally equal.

    Raises:
        ComparisonDepthError: If both values nest past MAX_COMPARE_DEPTH.
    """
    if a is b:
        return True

    kind = json_kind(a)
    if kind != json_kind(b):
        return False

    if kind == "number":
        return _numbers_equal(a, b)
    if kind not in ("array", "object"):
        return bool(a == b)

    if _depth >= MAX_COMPARE_DEPTH:
        raise ComparisonDepthError(f"Values nest deeper than {MAX_COMPARE_DEPTH} levels")

    seen = _seen if _seen is not None else set()
    pair = (id(a), id(b))
    if pair in seen:
        return True
    seen.add(pair)

    if kind == "array":
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y, seen, _depth + 1) for x, y in zip(a, b))

    if len(a) != len(b):
        return False
    for key, value in a.items():
        if key not in b:
            return False
        if not deep_equal(value, b[key], seen, _depth + 1):
            return False
    return True


__all__ = ["MAX_COMPARE_DEPTH", "ComparisonDepthError", "deep_equal", "json_kind"]
