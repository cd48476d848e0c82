"""Tests for schema/compiler.py - keyword subset, limits, caching."""

from __future__ import annotations

import dataclasses
import logging
import math
from decimal import Decimal
from typing import Any

import pytest

from toolbridge.core.result import SchemaCompileError
from toolbridge.schema import (
    MAX_ISSUES,
    PASSTHROUGH_VALIDATOR,
    SchemaCompiler,
    ValidationIssue,
    compile_schema,
    format_issues,
    to_json_pointer,
)

POINT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"x": {"type": "integer"}},
    "required": ["x"],
}


def _strict(compiler: SchemaCompiler, schema: Any):
    return compiler.compile(schema, strict=True)


def _deep_array_schema(depth: int) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string"}
    for _ in range(depth):
        schema = {"type": "array", "items": schema}
    return schema


def _deep_array_text(depth: int) -> str:
    return '{"type": "array", "items": ' * depth + '{"type": "string"}' + "}" * depth


# ---------------------------------------------------------------------------
# Object validation
# ---------------------------------------------------------------------------


class TestObjectSchemas:
    def test_missing_required_property(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, POINT_SCHEMA)
        assert validator({}) == [ValidationIssue(path=("x",), message="Missing required property")]

    def test_non_integer_value(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, POINT_SCHEMA)
        assert validator({"x": 3.5}) == [ValidationIssue(path=("x",), message="Expected integer")]

    def test_conforming_value(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, POINT_SCHEMA)
        assert validator({"x": 3}) == []
        assert validator.is_valid({"x": 3.0})

    def test_non_object_value(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, POINT_SCHEMA)
        assert validator([1]) == [ValidationIssue(path=(), message="Expected object")]

    def test_additional_properties_false(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler,
            {
                "type": "object",
                "properties": {"a": {"type": "string"}},
                "additionalProperties": False,
            },
        )
        issues = validator({"a": "x", "b": 1})
        assert issues == [ValidationIssue(path=("b",), message="Unknown property is not allowed")]

    def test_property_count_bounds(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "object", "minProperties": 1, "maxProperties": 2})
        assert validator({})[0].message == "Expected at least 1 properties, received 0"
        assert validator({"a": 1, "b": 2, "c": 3})[0].message == (
            "Expected at most 2 properties, received 3"
        )
        assert validator({"a": 1}) == []

    def test_nested_issue_paths(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler,
            {
                "type": "object",
                "properties": {
                    "items": {"type": "array", "items": {"type": "string", "minLength": 2}}
                },
            },
        )
        issues = validator({"items": ["ok", "x"]})
        assert [issue.path for issue in issues] == [("items", 1)]
        assert issues[0].pointer == "#/items/1"

    def test_root_without_type_is_object(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"properties": {"a": {"type": "boolean"}}})
        assert validator({"a": True}) == []
        assert validator("nope") == [ValidationIssue(path=(), message="Expected object")]


# ---------------------------------------------------------------------------
# Arrays and primitives
# ---------------------------------------------------------------------------


class TestArraySchemas:
    def test_unique_items_reports_duplicate_index(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler, {"type": "array", "items": {"type": "integer"}, "uniqueItems": True}
        )
        assert validator([1, 2, 1]) == [
            ValidationIssue(path=(2,), message="Array items must be unique (duplicate of index 0)")
        ]

    def test_unique_items_compares_structurally(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler, {"type": "array", "items": {"type": "object"}, "uniqueItems": True}
        )
        assert len(validator([{"a": [1, 2]}, {"a": [1, 2]}])) == 1
        assert validator([{"a": [1, 2]}, {"a": [2, 1]}]) == []

    def test_length_bounds(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler, {"type": "array", "items": {"type": "string"}, "minItems": 1, "maxItems": 2}
        )
        assert validator([])[0].message == "Expected at least 1 items, received 0"
        assert validator(["a", "b", "c"])[0].message == "Expected at most 2 items, received 3"

    def test_tuple_accepted_as_array(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "array", "items": {"type": "integer"}})
        assert validator((1, 2)) == []

    def test_issue_cap(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "array", "items": {"type": "string"}})
        assert len(validator(list(range(MAX_ISSUES + 10)))) == MAX_ISSUES


class TestPrimitiveSchemas:
    def test_bool_is_not_a_number(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "number"})
        assert validator(True) == [ValidationIssue(path=(), message="Expected finite number")]

    def test_non_finite_numbers_rejected(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "number"})
        assert validator(math.nan)[0].message == "Expected finite number"
        assert validator(math.inf)[0].message == "Expected finite number"

    def test_integral_float_is_integer(self, compiler: SchemaCompiler) -> None:
        assert _strict(compiler, {"type": "integer"})(2.0) == []

    def test_range_checks(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler,
            {"type": "number", "minimum": 0, "exclusiveMaximum": 10},
        )
        assert validator(-1)[0].message == "Expected value >= 0"
        assert validator(10)[0].message == "Expected value < 10"
        assert validator(9.5) == []

    def test_multiple_of_tolerates_float_error(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "number", "multipleOf": 0.1})
        assert validator(0.3) == []
        assert validator(0.35)[0].message == "Expected value to be a multiple of 0.1"

    def test_integer_multiple_of(self, compiler: SchemaCompiler) -> None:
        validator = _strict(compiler, {"type": "integer", "multipleOf": 3})
        assert validator(9) == []
        assert validator(10)[0].message == "Expected value to be a multiple of 3"

    def test_string_checks(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler, {"type": "string", "minLength": 2, "maxLength": 4, "pattern": "^a"}
        )
        assert validator("abc") == []
        assert validator("a")[0].message == "Expected minimum string length 2, received 1"
        assert validator("abcde")[0].message == "Expected maximum string length 4, received 5"
        assert validator("bab")[0].message == 'String does not match pattern "^a"'

    def test_pattern_uses_search_semantics(self, compiler: SchemaCompiler) -> None:
        assert _strict(compiler, {"type": "string", "pattern": "b+"})("abbc") == []

    def test_enum_and_const(self, compiler: SchemaCompiler) -> None:
        enum_validator = _strict(compiler, {"type": "string", "enum": ["red", "green"]})
        assert enum_validator("red") == []
        assert enum_validator("blue")[0].message == "Expected one of: red, green"

        const_validator = _strict(compiler, {"type": "integer", "const": 7})
        assert const_validator(7) == []
        assert const_validator(8)[0].message == "Expected constant value 7"

    def test_boolean_and_null(self, compiler: SchemaCompiler) -> None:
        assert _strict(compiler, {"type": "boolean"})(1) == [
            ValidationIssue(path=(), message="Expected boolean")
        ]
        assert _strict(compiler, {"type": "null"})(None) == []
        assert _strict(compiler, {"type": "null"})(0)[0].message == "Expected null"


# ---------------------------------------------------------------------------
# Compile errors
# ---------------------------------------------------------------------------


class TestCompileErrors:
    def test_ref_anywhere_is_unsupported(self, compiler: SchemaCompiler) -> None:
        schema = {"type": "object", "properties": {"a": {"$ref": "#/definitions/a"}}}
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, schema)

        assert exc_info.value.kind == "unsupported"
        assert exc_info.value.pointer == "#/properties/a/$ref"
        assert '"$ref"' in str(exc_info.value)

    @pytest.mark.parametrize("keyword", ["anyOf", "oneOf", "allOf", "not", "format", "if"])
    def test_composition_keywords_rejected(self, compiler: SchemaCompiler, keyword: str) -> None:
        with pytest.raises(SchemaCompileError, match="Unsupported JSON Schema keyword"):
            _strict(compiler, {"type": "string", keyword: []})

    def test_unknown_keyword_rejected(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "string", "minLenght": 1})
        assert exc_info.value.pointer == "#/minLenght"

    def test_annotations_and_extensions_ignored(self, compiler: SchemaCompiler) -> None:
        validator = _strict(
            compiler,
            {
                "type": "string",
                "title": "Name",
                "description": "A name",
                "default": "x",
                "examples": ["y"],
                "x-ui-widget": "text",
            },
        )
        assert validator("z") == []

    def test_nested_node_requires_type(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "object", "properties": {"a": {}}})
        assert exc_info.value.kind == "invalid"
        assert exc_info.value.pointer == "#/properties/a/type"

    def test_unknown_type(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError, match='Unsupported type "date"'):
            _strict(compiler, {"type": "date"})

    def test_array_requires_items(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError, match='Expected "items" schema for array type'):
            _strict(compiler, {"type": "array"})

    def test_additional_properties_schema_form_unsupported(
        self, compiler: SchemaCompiler
    ) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "object", "additionalProperties": {"type": "string"}})
        assert exc_info.value.kind == "unsupported"

    def test_enum_values_must_match_type(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "string", "enum": ["a", 1]})
        assert exc_info.value.pointer == "#/enum/1"

    def test_const_on_object_rejected(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError, match="only supported for primitive schema types"):
            _strict(compiler, {"type": "object", "const": 1})

    @pytest.mark.parametrize(
        "schema",
        [
            {"type": "number", "minimum": 5, "maximum": 1},
            {"type": "number", "exclusiveMinimum": 5, "exclusiveMaximum": 5},
            {"type": "string", "minLength": 3, "maxLength": 1},
            {"type": "array", "items": {"type": "string"}, "minItems": 2, "maxItems": 1},
            {"type": "object", "minProperties": 2, "maxProperties": 1},
            {"type": "number", "multipleOf": 0},
            {"type": "string", "minLength": -1},
            {"type": "string", "minLength": 1.5},
            {"type": "number", "minimum": math.inf},
            {"type": "object", "required": "a"},
            {"type": "string", "pattern": "("},
        ],
    )
    def test_malformed_keyword_values(self, compiler: SchemaCompiler, schema: Any) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, schema)
        assert exc_info.value.kind == "invalid"

    def test_depth_limit(self, compiler: SchemaCompiler) -> None:
        schema: dict[str, Any] = {"type": "string"}
        for _ in range(25):
            schema = {"type": "array", "items": schema}
        _strict(compiler, schema)

        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "array", "items": schema})
        assert exc_info.value.kind == "limit"

    def test_property_count_limit(self, compiler: SchemaCompiler) -> None:
        properties = {f"p{i}": {"type": "string"} for i in range(1001)}
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, {"type": "object", "properties": properties})
        assert exc_info.value.kind == "limit"

    def test_enum_size_limit(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError, match="Enum size 501"):
            _strict(compiler, {"type": "integer", "enum": list(range(501))})

    def test_pattern_length_limit(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError, match="Pattern length 4097"):
            _strict(compiler, {"type": "string", "pattern": "a" * 4097})

    def test_circular_schema(self, compiler: SchemaCompiler) -> None:
        schema: dict[str, Any] = {"type": "object", "properties": {}}
        schema["properties"]["self"] = schema
        with pytest.raises(SchemaCompileError, match="Circular references are not supported"):
            _strict(compiler, schema)

    def test_deeply_nested_schema_is_a_limit_error(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, _deep_array_schema(1500))
        assert exc_info.value.kind == "limit"

    def test_deeply_nested_json_text_is_a_limit_error(self, compiler: SchemaCompiler) -> None:
        with pytest.raises(SchemaCompileError) as exc_info:
            _strict(compiler, _deep_array_text(5000))
        assert exc_info.value.kind == "limit"

    def test_non_json_value_does_not_alias_a_string(self, compiler: SchemaCompiler) -> None:
        _strict(compiler, {"type": "string", "enum": ["1.5"]})
        with pytest.raises(SchemaCompileError, match="Decimal is not a JSON value"):
            _strict(compiler, {"type": "string", "enum": [Decimal("1.5")]})


class TestLenientMode:
    def test_falls_back_to_passthrough(
        self, compiler: SchemaCompiler, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="toolbridge"):
            validator = compiler.compile({"type": "string", "$ref": "#"})

        assert validator is PASSTHROUGH_VALIDATOR
        assert validator.permissive
        assert validator(object()) == []
        assert "accepting all input" in caplog.text

    def test_invalid_json_text(self, compiler: SchemaCompiler) -> None:
        assert compiler.compile("{not json") is PASSTHROUGH_VALIDATOR
        with pytest.raises(SchemaCompileError, match="not valid JSON"):
            compiler.compile("{not json", strict=True)

    def test_invalid_utf8_bytes(self, compiler: SchemaCompiler) -> None:
        assert compiler.compile(b'{"type": "\xff"}') is PASSTHROUGH_VALIDATOR
        with pytest.raises(SchemaCompileError, match="not valid JSON"):
            compiler.compile(b'{"type": "\xff"}', strict=True)

    @pytest.mark.parametrize("depth", [300, 1500])
    def test_deeply_nested_schema_falls_back(self, compiler: SchemaCompiler, depth: int) -> None:
        assert compiler.compile(_deep_array_schema(depth)) is PASSTHROUGH_VALIDATOR
        assert compiler.compile(_deep_array_text(depth)) is PASSTHROUGH_VALIDATOR


# ---------------------------------------------------------------------------
# Caching and helpers
# ---------------------------------------------------------------------------


class TestCaching:
    def test_identity_cache(self, compiler: SchemaCompiler) -> None:
        first = compiler.compile(POINT_SCHEMA)
        assert compiler.compile(POINT_SCHEMA) is first
        assert compiler.compile_count == 1

    def test_content_cache_ignores_key_order(self, compiler: SchemaCompiler) -> None:
        a = {"type": "object", "required": ["x"], "properties": {"x": {"type": "string"}}}
        b = {"properties": {"x": {"type": "string"}}, "required": ["x"], "type": "object"}
        assert compiler.compile(a) is compiler.compile(b)
        assert compiler.compile_count == 1

    def test_json_text_schema(self, compiler: SchemaCompiler) -> None:
        validator = compiler.compile('{"type": "integer"}', strict=True)
        assert validator(1) == []
        assert validator("1")[0].message == "Expected finite number"

    def test_none_is_open_object(self, compiler: SchemaCompiler) -> None:
        validator = compiler.compile(None, strict=True)
        assert validator({"anything": 1}) == []

    def test_cache_is_bounded(self) -> None:
        compiler = SchemaCompiler(max_cache_entries=2)
        for length in range(5):
            compiler.compile({"type": "string", "minLength": length})
        assert len(compiler) == 2

    def test_clear(self, compiler: SchemaCompiler) -> None:
        compiler.compile(POINT_SCHEMA)
        compiler.clear()
        compiler.compile(POINT_SCHEMA)
        assert compiler.compile_count == 2

    def test_validator_is_immutable(self) -> None:
        validator = compile_schema({"type": "string"}, strict=True)
        with pytest.raises(dataclasses.FrozenInstanceError):
            validator.permissive = True  # type: ignore[misc]


def test_to_json_pointer_escapes_segments() -> None:
    assert to_json_pointer(()) == "#"
    assert to_json_pointer(("a/b", "~c", 0)) == "#/a~1b/~0c/0"


def test_format_issues() -> None:
    issues = [
        ValidationIssue(path=("a", "b"), message="Expected string"),
        ValidationIssue(path=(), message="Expected object"),
    ]
    assert format_issues(issues) == (
        "Validation failed:\n  - a.b: Expected string\n  - root: Expected object"
    )
