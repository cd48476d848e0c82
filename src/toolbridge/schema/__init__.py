"""Schema compilation for tool input and output contracts.

Exports the compiler entry points and the issue types returned by compiled
validators.
"""

from __future__ import annotations

from toolbridge.schema.compiler import (
    MAX_ISSUES,
    MAX_SCHEMA_DEPTH,
    PASSTHROUGH_VALIDATOR,
    UNSUPPORTED_KEYWORDS,
    CompiledValidator,
    SchemaCompiler,
    ValidationIssue,
    compile_schema,
    default_input_schema,
    format_issues,
    get_default_compiler,
    normalize_schema,
    to_json_pointer,
)
from toolbridge.schema.equality import deep_equal, json_kind
from toolbridge.schema.hashing import canonical_serialize, schema_fingerprint

__all__ = [
    "MAX_ISSUES",
    "MAX_SCHEMA_DEPTH",
    "PASSTHROUGH_VALIDATOR",
    "UNSUPPORTED_KEYWORDS",
    "CompiledValidator",
    "SchemaCompiler",
    "ValidationIssue",
    "canonical_serialize",
    "compile_schema",
    "deep_equal",
    "default_input_schema",
    "format_issues",
    "get_default_compiler",
    "json_kind",
    "normalize_schema",
    "schema_fingerprint",
    "to_json_pointer",
]
