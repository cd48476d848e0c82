"""Canonical serialization and content hashing for schema documents.

Two schema documents that differ only in key order (or in list-vs-tuple
containers) serialize identically, so they share one compiled validator.
"""

from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Mapping
from typing import Any

from toolbridge.core.result import SchemaCompileError

# Container nesting, not schema-node nesting; a schema at the node limit
# stays well inside it.
MAX_DOCUMENT_DEPTH = 200

_NON_FINITE_NUMBER = '"__non_finite_number__"'


def _circular_reference_error() -> SchemaCompileError:
    return SchemaCompileError(
        'Invalid JSON Schema at "#": Circular references are not supported',
        kind="invalid",
        pointer="#",
    )


def canonical_serialize(value: Any, _seen: set[int] | None = None, _depth: int = 0) -> str:
    """Serialize ``value`` with sorted keys.

    Raises:
        SchemaCompileError: If a container references itself, nests deeper
            than MAX_DOCUMENT_DEPTH, or holds a value with no JSON form.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return _NON_FINITE_NUMBER
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)

    if not isinstance(value, (list, tuple, Mapping)):
        raise SchemaCompileError(
            f'Invalid JSON Schema at "#": {type(value).__name__} is not a JSON value',
            kind="invalid",
            pointer="#",
        )

    if _depth >= MAX_DOCUMENT_DEPTH:
        raise SchemaCompileError(
            'JSON Schema limit exceeded at "#": '
            f"document nesting exceeds maximum of {MAX_DOCUMENT_DEPTH}",
            kind="limit",
            pointer="#",
        )

    seen = _seen if _seen is not None else set()
    marker = id(value)
    if marker in seen:
        raise _circular_reference_error()

    seen.add(marker)
    try:
        if isinstance(value, Mapping):
            entries = [
                f"{json.dumps(str(key))}:{canonical_serialize(value[key], seen, _depth + 1)}"
                for key in sorted(value, key=str)
            ]
            return "{" + ",".join(entries) + "}"
        return "[" + ",".join(canonical_serialize(item, seen, _depth + 1) for item in value) + "]"
    finally:
        seen.discard(marker)


def schema_fingerprint(schema: Any) -> str:
    """Return the SHA-256 hex digest of the canonical serialization."""
    return hashlib.sha256(canonical_serialize(schema).encode("utf-8")).hexdigest()


__all__ = ["MAX_DOCUMENT_DEPTH", "canonical_serialize", "schema_fingerprint"]
