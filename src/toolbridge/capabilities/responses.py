"""Normalization of handler results into :class:`ToolResponse` envelopes."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from toolbridge.capabilities.types import TextContent, ToolResponse
from toolbridge.core.error_middleware import format_error


def text_response(text: str, *, is_error: bool = False) -> ToolResponse:
    return ToolResponse(content=[TextContent(text=text)], is_error=is_error)


def error_response(error: BaseException | str) -> ToolResponse:
    """Wrap a handler failure as ``Error: <message>`` with ``isError`` set."""
    message = error if isinstance(error, str) else format_error(error).message
    return text_response(f"Error: {message}", is_error=True)


def _as_envelope(value: Any) -> ToolResponse | None:
    if not isinstance(value, Mapping) or not isinstance(value.get("content"), list):
        return None
    try:
        return ToolResponse.model_validate(value)
    except ValidationError:
        return None


def _json_text(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def to_tool_response(result: Any) -> ToolResponse:
    """Normalize whatever a handler returned.

    - ToolResponse passes through; a mapping shaped like one is parsed.
    - ``str`` becomes one text block, ``None`` an empty one.
    - Other mappings become pretty JSON text plus ``structuredContent``;
      lists and scalars become JSON text.
    """
    if isinstance(result, ToolResponse):
        return result

    envelope = _as_envelope(result)
    if envelope is not None:
        return envelope

    if result is None:
        return text_response("")
    if isinstance(result, str):
        return text_response(result)
    if isinstance(result, Mapping):
        return ToolResponse(
            content=[TextContent(text=_json_text(result))],
            structured_content=dict(result),
        )
    if isinstance(result, (list, tuple)):
        return text_response(_json_text(list(result)))
    if isinstance(result, bool):
        return text_response("true" if result else "false")
    return text_response(str(result))


def host_result_to_response(raw: Any) -> ToolResponse:
    """Normalize a host ``execute_tool`` result, which is usually JSON text."""
    if not isinstance(raw, str):
        return to_tool_response(raw)

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return text_response(raw)

    if isinstance(parsed, str):
        return text_response(parsed)
    return to_tool_response(parsed)


__all__ = [
    "error_response",
    "host_result_to_response",
    "text_response",
    "to_tool_response",
]
