"""JSON Schema subset compiler.

Turns a declarative schema document into a reusable validator. The supported
subset is deliberately closed:

    object   properties, required, additionalProperties (boolean),
             minProperties, maxProperties
    array    items (single schema), minItems, maxItems, uniqueItems
    string   minLength, maxLength, pattern
    number   minimum, maximum, exclusiveMinimum, exclusiveMaximum, multipleOf
    integer  same as number
    any primitive type: const, enum

Annotation keywords (``title``, ``description``, ``default`` ...) and ``x-*``
extensions are ignored. Any other keyword is rejected when the schema is
compiled, never when data is validated.

Usage:
    from toolbridge.schema import compile_schema

    validator = compile_schema({"type": "object", "required": ["x"]}, strict=True)
    issues = validator({"y": 1})
    # [ValidationIssue(path=('x',), message='Missing required property')]
"""

from __future__ import annotations

import json
import math
import re
import sys
from collections import OrderedDict
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from toolbridge.core.console import get_logger
from toolbridge.core.result import SchemaCompileError
from toolbridge.schema.equality import ComparisonDepthError, deep_equal
from toolbridge.schema.hashing import schema_fingerprint

logger = get_logger(__name__)

MAX_SCHEMA_DEPTH = 25
MAX_OBJECT_PROPERTIES = 1000
MAX_ENUM_SIZE = 500
MAX_PATTERN_LENGTH = 4096
MAX_ISSUES = 50
FLOAT_EPSILON = sys.float_info.epsilon

SUPPORTED_TYPES = ("array", "boolean", "integer", "null", "number", "object", "string")

UNSUPPORTED_KEYWORDS = frozenset(
    {
        "$defs",
        "$ref",
        "additionalItems",
        "allOf",
        "anyOf",
        "contains",
        "definitions",
        "dependentRequired",
        "dependentSchemas",
        "format",
        "if",
        "maxContains",
        "minContains",
        "not",
        "oneOf",
        "patternProperties",
        "prefixItems",
        "propertyNames",
        "then",
        "unevaluatedItems",
        "unevaluatedProperties",
    }
)

STRUCTURAL_KEYWORDS = frozenset(
    {
        "type",
        "properties",
        "required",
        "additionalProperties",
        "minProperties",
        "maxProperties",
        "items",
        "minItems",
        "maxItems",
        "uniqueItems",
        "minLength",
        "maxLength",
        "pattern",
        "minimum",
        "maximum",
        "exclusiveMinimum",
        "exclusiveMaximum",
        "multipleOf",
        "const",
        "enum",
    }
)

ANNOTATION_KEYWORDS = frozenset(
    {
        "$comment",
        "$id",
        "$schema",
        "default",
        "deprecated",
        "description",
        "examples",
        "readOnly",
        "title",
        "writeOnly",
    }
)

PathPart = str | int
Path = tuple[PathPart, ...]


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One data-shape mismatch found during validation."""

    path: Path
    message: str

    @property
    def pointer(self) -> str:
        return to_json_pointer(self.path)


_NodeCheck = Callable[[Any, Path, list[ValidationIssue]], None]


@dataclass(frozen=True, slots=True)
class CompiledValidator:
    """Immutable validator produced by :func:`compile_schema`.

    Calling it returns the list of issues (empty when the value conforms).
    """

    check: _NodeCheck
    permissive: bool = False

    def __call__(self, value: Any) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        try:
            self.check(value, (), issues)
        except (ComparisonDepthError, RecursionError):
            del issues[MAX_ISSUES - 1 :]
            issues.append(ValidationIssue((), "Value is nested too deeply to validate"))
        return issues

    def validate(self, value: Any) -> list[ValidationIssue]:
        return self(value)

    def is_valid(self, value: Any) -> bool:
        return not self(value)


def _accept_everything(value: Any, path: Path, issues: list[ValidationIssue]) -> None:
    return None


PASSTHROUGH_VALIDATOR = CompiledValidator(_accept_everything, permissive=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_json_pointer(path: Sequence[PathPart]) -> str:
    if not path:
        return "#"
    return "#" + "".join(
        "/" + str(part).replace("~", "~0").replace("/", "~1") for part in path
    )


def default_input_schema() -> dict[str, Any]:
    """Schema used for tools that declare none: an object with any properties."""
    return {"type": "object", "properties": {}}


def _schema_error(kind: str, path: Path, message: str) -> SchemaCompileError:
    pointer = to_json_pointer(path)
    if kind == "unsupported":
        text = f'Unsupported JSON Schema keyword {message} at "{pointer}"'
    elif kind == "limit":
        text = f'JSON Schema limit exceeded at "{pointer}": {message}'
    else:
        text = f'Invalid JSON Schema at "{pointer}": {message}'
    return SchemaCompileError(text, kind=kind, pointer=pointer)


def _push_issue(issues: list[ValidationIssue], path: Path, message: str) -> None:
    if len(issues) >= MAX_ISSUES:
        return
    issues.append(ValidationIssue(path=path, message=message))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and (isinstance(value, int) or math.isfinite(value))


def _is_integral(value: Any) -> bool:
    if not _is_finite_number(value):
        return False
    return isinstance(value, int) or value.is_integer()


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, str)) or _is_number(value)


def _matches_primitive_type(value: Any, expected: str) -> bool:
    if expected == "null":
        return value is None
    if expected == "integer":
        return _is_integral(value)
    if expected == "number":
        return _is_number(value)
    if expected == "boolean":
        return isinstance(value, bool)
    return isinstance(value, str)


def _fmt(value: Any) -> str:
    """Render a JSON scalar the way it appears in JSON text."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_issues(issues: Sequence[ValidationIssue], header: str = "Validation failed:") -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in issue.path) or 'root'}: {issue.message}"
        for issue in issues
    ]
    return "\n".join([header, *lines]) if header else "\n".join(lines)


# ---------------------------------------------------------------------------
# Keyword parsing
# ---------------------------------------------------------------------------


def _ensure_known_keywords(schema: Mapping[str, Any], path: Path) -> None:
    for key in schema:
        if key in UNSUPPORTED_KEYWORDS:
            raise _schema_error("unsupported", (*path, key), f'"{key}"')
        if not isinstance(key, str):
            raise _schema_error("invalid", path, f"Schema keys must be strings, got {key!r}")
        if key in STRUCTURAL_KEYWORDS or key in ANNOTATION_KEYWORDS or key.startswith("x-"):
            continue
        raise _schema_error("unsupported", (*path, key), f'"{key}"')


def _parse_type(schema: Mapping[str, Any], path: Path) -> str:
    type_value = schema.get("type")

    if type_value is None and "type" not in schema and not path:
        # A bare root ``{}`` is a permissive object schema.
        return "object"

    if not isinstance(type_value, str):
        raise _schema_error("invalid", (*path, "type"), 'Expected "type" to be a string')

    if type_value not in SUPPORTED_TYPES:
        raise _schema_error(
            "invalid",
            (*path, "type"),
            f'Unsupported type "{type_value}". Supported types: {", ".join(SUPPORTED_TYPES)}',
        )

    return type_value


def _parse_number_keyword(
    schema: Mapping[str, Any],
    keyword: str,
    path: Path,
    *,
    integer: bool = False,
    minimum: float | None = None,
) -> int | float | None:
    if keyword not in schema:
        return None
    raw = schema[keyword]

    if not _is_finite_number(raw):
        raise _schema_error("invalid", (*path, keyword), f'Expected "{keyword}" to be a finite number')

    if integer and not _is_integral(raw):
        raise _schema_error("invalid", (*path, keyword), f'Expected "{keyword}" to be an integer')

    if minimum is not None and raw < minimum:
        raise _schema_error(
            "invalid", (*path, keyword), f'Expected "{keyword}" to be >= {_fmt(minimum)}'
        )

    return int(raw) if integer else raw


def _parse_required(schema: Mapping[str, Any], path: Path) -> tuple[str, ...]:
    if "required" not in schema:
        return ()
    raw = schema["required"]
    if not isinstance(raw, (list, tuple)) or any(not isinstance(entry, str) for entry in raw):
        raise _schema_error(
            "invalid", (*path, "required"), 'Expected "required" to be an array of strings'
        )
    return tuple(dict.fromkeys(raw))


def _parse_const(schema: Mapping[str, Any], path: Path, expected: str) -> tuple[bool, Any]:
    if "const" not in schema:
        return False, None
    raw = schema["const"]

    if not _is_primitive(raw):
        raise _schema_error(
            "invalid", (*path, "const"), 'Expected "const" to be a primitive JSON value'
        )
    if not _matches_primitive_type(raw, expected):
        raise _schema_error(
            "invalid", (*path, "const"), f'Expected "const" to match schema type "{expected}"'
        )
    return True, raw


def _parse_enum(schema: Mapping[str, Any], path: Path, expected: str) -> tuple[Any, ...] | None:
    if "enum" not in schema:
        return None
    raw = schema["enum"]

    if not isinstance(raw, (list, tuple)):
        raise _schema_error("invalid", (*path, "enum"), 'Expected "enum" to be an array')

    if len(raw) > MAX_ENUM_SIZE:
        raise _schema_error(
            "limit",
            (*path, "enum"),
            f"Enum size {len(raw)} exceeds max supported size {MAX_ENUM_SIZE}",
        )

    for index, entry in enumerate(raw):
        if not _is_primitive(entry):
            raise _schema_error(
                "invalid", (*path, "enum", index), "Expected enum values to be primitive JSON values"
            )
        if not _matches_primitive_type(entry, expected):
            raise _schema_error(
                "invalid",
                (*path, "enum", index),
                f'Expected enum values to match schema type "{expected}"',
            )
    return tuple(raw)


def _ensure_no_const_enum(schema: Mapping[str, Any], path: Path) -> None:
    for keyword in ("const", "enum"):
        if keyword in schema:
            raise _schema_error(
                "invalid",
                (*path, keyword),
                f'"{keyword}" is only supported for primitive schema types',
            )


def _ensure_ordered(
    low: int | float | None, high: int | float | None, path: Path, low_name: str, high_name: str
) -> None:
    if low is not None and high is not None and low > high:
        raise _schema_error(
            "invalid", path, f'"{low_name}" ({_fmt(low)}) must be <= "{high_name}" ({_fmt(high)})'
        )


# ---------------------------------------------------------------------------
# Node compilers
# ---------------------------------------------------------------------------


def _compile_object(schema: Mapping[str, Any], path: Path, depth: int) -> _NodeCheck:
    _ensure_no_const_enum(schema, path)

    property_checks: dict[str, _NodeCheck] = {}
    if "properties" in schema:
        properties = schema["properties"]
        if not isinstance(properties, Mapping):
            raise _schema_error(
                "invalid", (*path, "properties"), 'Expected "properties" to be an object'
            )
        if len(properties) > MAX_OBJECT_PROPERTIES:
            raise _schema_error(
                "limit",
                (*path, "properties"),
                f"Property count {len(properties)} exceeds max supported count "
                f"{MAX_OBJECT_PROPERTIES}",
            )
        for name, property_schema in properties.items():
            property_checks[str(name)] = _compile_node(
                property_schema, (*path, "properties", str(name)), depth + 1
            )

    required = _parse_required(schema, path)

    additional = schema.get("additionalProperties")
    if "additionalProperties" in schema and not isinstance(additional, bool):
        raise _schema_error(
            "unsupported",
            (*path, "additionalProperties"),
            '"additionalProperties" (object schema form)',
        )
    closed = additional is False

    min_properties = _parse_number_keyword(schema, "minProperties", path, integer=True, minimum=0)
    max_properties = _parse_number_keyword(schema, "maxProperties", path, integer=True, minimum=0)
    _ensure_ordered(min_properties, max_properties, path, "minProperties", "maxProperties")

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if not isinstance(value, Mapping):
            _push_issue(issues, current, "Expected object")
            return

        count = len(value)
        if min_properties is not None and count < min_properties:
            _push_issue(
                issues, current, f"Expected at least {min_properties} properties, received {count}"
            )
        if max_properties is not None and count > max_properties:
            _push_issue(
                issues, current, f"Expected at most {max_properties} properties, received {count}"
            )

        for key in required:
            if key not in value:
                _push_issue(issues, (*current, key), "Missing required property")
                if len(issues) >= MAX_ISSUES:
                    return

        for key, property_check in property_checks.items():
            if key in value:
                property_check(value[key], (*current, key), issues)
                if len(issues) >= MAX_ISSUES:
                    return

        if closed:
            for key in value:
                if key not in property_checks:
                    _push_issue(issues, (*current, key), "Unknown property is not allowed")
                    if len(issues) >= MAX_ISSUES:
                        return

    return check


def _compile_array(schema: Mapping[str, Any], path: Path, depth: int) -> _NodeCheck:
    _ensure_no_const_enum(schema, path)

    if "items" not in schema:
        raise _schema_error("invalid", (*path, "items"), 'Expected "items" schema for array type')
    if isinstance(schema["items"], (list, tuple)):
        raise _schema_error(
            "unsupported", (*path, "items"), '"items" (tuple form)'
        )

    item_check = _compile_node(schema["items"], (*path, "items"), depth + 1)
    min_items = _parse_number_keyword(schema, "minItems", path, integer=True, minimum=0)
    max_items = _parse_number_keyword(schema, "maxItems", path, integer=True, minimum=0)
    _ensure_ordered(min_items, max_items, path, "minItems", "maxItems")

    unique_raw = schema.get("uniqueItems")
    if "uniqueItems" in schema and not isinstance(unique_raw, bool):
        raise _schema_error(
            "invalid", (*path, "uniqueItems"), 'Expected "uniqueItems" to be a boolean'
        )
    unique_items = unique_raw is True

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if not isinstance(value, (list, tuple)):
            _push_issue(issues, current, "Expected array")
            return

        length = len(value)
        if min_items is not None and length < min_items:
            _push_issue(issues, current, f"Expected at least {min_items} items, received {length}")
            if len(issues) >= MAX_ISSUES:
                return
        if max_items is not None and length > max_items:
            _push_issue(issues, current, f"Expected at most {max_items} items, received {length}")
            if len(issues) >= MAX_ISSUES:
                return

        if unique_items:
            for i in range(length):
                for j in range(i + 1, length):
                    if deep_equal(value[i], value[j]):
                        _push_issue(
                            issues,
                            (*current, j),
                            f"Array items must be unique (duplicate of index {i})",
                        )
                        if len(issues) >= MAX_ISSUES:
                            return

        for index, item in enumerate(value):
            item_check(item, (*current, index), issues)
            if len(issues) >= MAX_ISSUES:
                return

    return check


def _compile_string(schema: Mapping[str, Any], path: Path) -> _NodeCheck:
    has_const, const_value = _parse_const(schema, path, "string")
    enum_values = _parse_enum(schema, path, "string")
    min_length = _parse_number_keyword(schema, "minLength", path, integer=True, minimum=0)
    max_length = _parse_number_keyword(schema, "maxLength", path, integer=True, minimum=0)
    _ensure_ordered(min_length, max_length, path, "minLength", "maxLength")

    pattern: re.Pattern[str] | None = None
    if "pattern" in schema:
        raw = schema["pattern"]
        if not isinstance(raw, str):
            raise _schema_error("invalid", (*path, "pattern"), 'Expected "pattern" to be a string')
        if len(raw) > MAX_PATTERN_LENGTH:
            raise _schema_error(
                "limit",
                (*path, "pattern"),
                f"Pattern length {len(raw)} exceeds max supported length {MAX_PATTERN_LENGTH}",
            )
        try:
            pattern = re.compile(raw)
        except re.error as exc:
            raise _schema_error(
                "invalid", (*path, "pattern"), f"Invalid regular expression: {exc}"
            ) from exc

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if not isinstance(value, str):
            _push_issue(issues, current, "Expected string")
            return

        if has_const and value != const_value:
            _push_issue(issues, current, f'Expected constant value "{const_value}"')
        if enum_values is not None and value not in enum_values:
            _push_issue(issues, current, f"Expected one of: {', '.join(enum_values)}")
        if min_length is not None and len(value) < min_length:
            _push_issue(
                issues,
                current,
                f"Expected minimum string length {min_length}, received {len(value)}",
            )
        if max_length is not None and len(value) > max_length:
            _push_issue(
                issues,
                current,
                f"Expected maximum string length {max_length}, received {len(value)}",
            )
        if pattern is not None and pattern.search(value) is None:
            _push_issue(issues, current, f'String does not match pattern "{pattern.pattern}"')

    return check


def _is_multiple_of(value: int | float, divisor: int | float) -> bool:
    if isinstance(value, int) and isinstance(divisor, int):
        return value % divisor == 0
    try:
        quotient = value / divisor
    except OverflowError:
        return False
    if not math.isfinite(quotient):
        return False
    return abs(round(quotient) - quotient) <= FLOAT_EPSILON * 10


def _compile_numeric(schema: Mapping[str, Any], path: Path, type_name: str) -> _NodeCheck:
    has_const, const_value = _parse_const(schema, path, type_name)
    enum_values = _parse_enum(schema, path, type_name)
    minimum = _parse_number_keyword(schema, "minimum", path)
    maximum = _parse_number_keyword(schema, "maximum", path)
    exclusive_minimum = _parse_number_keyword(schema, "exclusiveMinimum", path)
    exclusive_maximum = _parse_number_keyword(schema, "exclusiveMaximum", path)
    multiple_of = _parse_number_keyword(schema, "multipleOf", path)

    if multiple_of is not None and multiple_of <= 0:
        raise _schema_error("invalid", (*path, "multipleOf"), 'Expected "multipleOf" to be > 0')

    _ensure_ordered(minimum, maximum, path, "minimum", "maximum")
    if (
        exclusive_minimum is not None
        and exclusive_maximum is not None
        and exclusive_minimum >= exclusive_maximum
    ):
        raise _schema_error(
            "invalid",
            path,
            f'"exclusiveMinimum" ({_fmt(exclusive_minimum)}) must be < '
            f'"exclusiveMaximum" ({_fmt(exclusive_maximum)})',
        )

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if not _is_finite_number(value):
            _push_issue(issues, current, "Expected finite number")
            return

        if type_name == "integer" and not _is_integral(value):
            _push_issue(issues, current, "Expected integer")
        if has_const and value != const_value:
            _push_issue(issues, current, f"Expected constant value {_fmt(const_value)}")
        if enum_values is not None and value not in enum_values:
            _push_issue(
                issues, current, f"Expected one of: {', '.join(_fmt(v) for v in enum_values)}"
            )
        if minimum is not None and value < minimum:
            _push_issue(issues, current, f"Expected value >= {_fmt(minimum)}")
        if maximum is not None and value > maximum:
            _push_issue(issues, current, f"Expected value <= {_fmt(maximum)}")
        if exclusive_minimum is not None and value <= exclusive_minimum:
            _push_issue(issues, current, f"Expected value > {_fmt(exclusive_minimum)}")
        if exclusive_maximum is not None and value >= exclusive_maximum:
            _push_issue(issues, current, f"Expected value < {_fmt(exclusive_maximum)}")
        if multiple_of is not None and not _is_multiple_of(value, multiple_of):
            _push_issue(issues, current, f"Expected value to be a multiple of {_fmt(multiple_of)}")

    return check


def _compile_boolean(schema: Mapping[str, Any], path: Path) -> _NodeCheck:
    has_const, const_value = _parse_const(schema, path, "boolean")
    enum_values = _parse_enum(schema, path, "boolean")

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if not isinstance(value, bool):
            _push_issue(issues, current, "Expected boolean")
            return
        if has_const and value is not const_value:
            _push_issue(issues, current, f"Expected constant value {_fmt(const_value)}")
        if enum_values is not None and not any(value is v for v in enum_values):
            _push_issue(
                issues, current, f"Expected one of: {', '.join(_fmt(v) for v in enum_values)}"
            )

    return check


def _compile_null(schema: Mapping[str, Any], path: Path) -> _NodeCheck:
    _parse_const(schema, path, "null")
    enum_values = _parse_enum(schema, path, "null")

    def check(value: Any, current: Path, issues: list[ValidationIssue]) -> None:
        if value is not None:
            _push_issue(issues, current, "Expected null")
            return
        if enum_values is not None and None not in enum_values:
            _push_issue(issues, current, "Expected value from null enum")

    return check


def _compile_node(raw: Any, path: Path, depth: int) -> _NodeCheck:
    if depth > MAX_SCHEMA_DEPTH:
        raise _schema_error(
            "limit", path, f"Schema nesting depth exceeds maximum of {MAX_SCHEMA_DEPTH}"
        )

    if not isinstance(raw, Mapping):
        raise _schema_error("invalid", path, "Schema node must be an object")

    _ensure_known_keywords(raw, path)
    type_name = _parse_type(raw, path)

    if type_name == "object":
        return _compile_object(raw, path, depth)
    if type_name == "array":
        return _compile_array(raw, path, depth)
    if type_name == "string":
        return _compile_string(raw, path)
    if type_name in ("number", "integer"):
        return _compile_numeric(raw, path, type_name)
    if type_name == "boolean":
        return _compile_boolean(raw, path)
    return _compile_null(raw, path)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_schema(schema: Mapping[str, Any] | str | bytes | None) -> Mapping[str, Any]:
    """Return the mapping form of a schema given inline or as JSON text.

    ``None`` yields :func:`default_input_schema`. Mappings are returned as-is
    so that identity caching keeps working.
    """
    if schema is None:
        return default_input_schema()
    if isinstance(schema, Mapping):
        return schema
    if isinstance(schema, (str, bytes)):
        try:
            parsed = json.loads(schema)
        except RecursionError as exc:
            raise _schema_error(
                "limit", (), f"Schema nesting depth exceeds maximum of {MAX_SCHEMA_DEPTH}"
            ) from exc
        except ValueError as exc:
            raise _schema_error("invalid", (), f"Schema string is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise _schema_error("invalid", (), "Schema node must be an object")
        return parsed
    raise _schema_error("invalid", (), "Schema node must be an object")


class SchemaCompiler:
    """Compiles schemas and caches validators by identity and by content.

    The identity cache keeps a reference to each schema it has seen so that a
    recycled ``id()`` can never alias a different document. Both caches are
    bounded LRUs. Schemas are treated as immutable once compiled.
    """

    def __init__(self, *, max_cache_entries: int = 512) -> None:
        if max_cache_entries <= 0:
            raise ValueError("max_cache_entries must be positive")
        self.max_cache_entries = max_cache_entries
        self.compile_count = 0
        self._by_identity: OrderedDict[int, tuple[Mapping[str, Any], CompiledValidator]] = (
            OrderedDict()
        )
        self._by_hash: OrderedDict[str, CompiledValidator] = OrderedDict()

    def __len__(self) -> int:
        return len(self._by_hash)

    def clear(self) -> None:
        self._by_identity.clear()
        self._by_hash.clear()

    def _remember_identity(self, schema: Mapping[str, Any], validator: CompiledValidator) -> None:
        self._by_identity[id(schema)] = (schema, validator)
        self._by_identity.move_to_end(id(schema))
        while len(self._by_identity) > self.max_cache_entries:
            self._by_identity.popitem(last=False)

    def _remember_hash(self, key: str, validator: CompiledValidator) -> None:
        self._by_hash[key] = validator
        self._by_hash.move_to_end(key)
        while len(self._by_hash) > self.max_cache_entries:
            self._by_hash.popitem(last=False)

    def compile(
        self, schema: Mapping[str, Any] | str | bytes | None, *, strict: bool = False
    ) -> CompiledValidator:
        """Compile ``schema`` into a validator.

        Args:
            schema: Schema mapping, JSON text, or None for the default object schema.
            strict: Raise SchemaCompileError instead of degrading to
                PASSTHROUGH_VALIDATOR on a malformed schema.
        """
        try:
            document = normalize_schema(schema)
        except SchemaCompileError as exc:
            if strict:
                raise
            logger.warning("Schema compilation failed, accepting all input: %s", exc)
            return PASSTHROUGH_VALIDATOR

        cached = self._by_identity.get(id(document))
        if cached is not None and cached[0] is document:
            self._by_identity.move_to_end(id(document))
            return cached[1]

        try:
            key = schema_fingerprint(document)
        except SchemaCompileError as exc:
            if strict:
                raise
            logger.warning("Schema compilation failed, accepting all input: %s", exc)
            return PASSTHROUGH_VALIDATOR

        by_hash = self._by_hash.get(key)
        if by_hash is not None:
            self._by_hash.move_to_end(key)
            self._remember_identity(document, by_hash)
            return by_hash

        try:
            validator = CompiledValidator(_compile_node(document, (), 0))
        except SchemaCompileError as exc:
            if strict:
                raise
            logger.warning("Schema compilation failed, accepting all input: %s", exc)
            return PASSTHROUGH_VALIDATOR

        self.compile_count += 1
        self._remember_identity(document, validator)
        self._remember_hash(key, validator)
        return validator


_default_compiler = SchemaCompiler()


def get_default_compiler() -> SchemaCompiler:
    return _default_compiler


def compile_schema(
    schema: Mapping[str, Any] | str | None, *, strict: bool = False
) -> CompiledValidator:
    """Compile ``schema`` with the process-wide default compiler."""
    return _default_compiler.compile(schema, strict=strict)


__all__ = [
    "MAX_ISSUES",
    "MAX_SCHEMA_DEPTH",
    "PASSTHROUGH_VALIDATOR",
    "UNSUPPORTED_KEYWORDS",
    "CompiledValidator",
    "SchemaCompiler",
    "ValidationIssue",
    "compile_schema",
    "default_input_schema",
    "format_issues",
    "get_default_compiler",
    "normalize_schema",
    "to_json_pointer",
]
