"""Data types for tool registration and invocation.

Wire-facing envelopes (responses, tool listings, call requests) are pydantic
models so they round-trip through JSON with their camelCase field names.
In-process records (descriptors, registered tools, handles) are dataclasses.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from toolbridge.schema import CompiledValidator

# ---------------------------------------------------------------------------
# Wire envelopes
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """A ``{"type": "text", "text": ...}`` content block."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    text: str


class MediaContent(BaseModel):
    """Opaque non-text content block. Extra fields are preserved verbatim."""

    model_config = ConfigDict(extra="allow")

    type: str

    @field_validator("type")
    @classmethod
    def reject_text_type(cls, v: str) -> str:
        if v == "text":
            raise ValueError('text blocks must use TextContent')
        return v


ContentBlock = TextContent | MediaContent


class ToolResponse(BaseModel):
    """Uniform response envelope returned by every invocation."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    content: list[ContentBlock] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")
    structured_content: dict[str, Any] | None = Field(default=None, alias="structuredContent")

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "\n".join(block.text for block in self.content if isinstance(block, TextContent))

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not self.is_error:
            data.pop("isError", None)
        return data


class ToolInfo(BaseModel):
    """Listing entry for one tool, as seen by a consumer."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: dict[str, Any] = Field(alias="inputSchema")
    output_schema: dict[str, Any] | None = Field(default=None, alias="outputSchema")
    annotations: dict[str, Any] | None = None


class ToolCallRequest(BaseModel):
    """Invocation request envelope ``{name, arguments}``."""

    model_config = ConfigDict(extra="forbid")

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# In-process records
# ---------------------------------------------------------------------------


class ToolTier(str, Enum):
    """Registration class. Tier A is bulk-replaced, tier B managed per entry."""

    A = "A"
    B = "B"


@dataclass
class InvocationContext:
    """Per-call context handed to tool handlers as their second argument."""

    tool_name: str
    cancel_event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


ToolHandler = (
    Callable[[dict[str, Any]], Any | Awaitable[Any]]
    | Callable[[dict[str, Any], InvocationContext], Any | Awaitable[Any]]
)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def accepts_context(handler: Callable[..., Any]) -> bool:
    """True when ``handler`` can take the invocation context as a second argument."""
    try:
        parameters = inspect.signature(handler).parameters.values()
    except (TypeError, ValueError):
        return True
    positional = 0
    for parameter in parameters:
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if parameter.kind in _POSITIONAL:
            positional += 1
    return positional >= 2


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Declarative description of a tool before registration.

    ``handler`` is called as ``handler(arguments, context)``, or as
    ``handler(arguments)`` when it takes a single positional argument. It may
    be sync or async. ``input_schema`` may be a mapping, JSON text, or None.
    """

    name: str
    description: str
    handler: ToolHandler
    input_schema: Mapping[str, Any] | str | None = None
    output_schema: Mapping[str, Any] | str | None = None
    annotations: Mapping[str, Any] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ToolDescriptor:
        """Build a descriptor from a camelCase or snake_case mapping."""
        return cls(
            name=data.get("name"),  # type: ignore[arg-type]
            description=data.get("description"),  # type: ignore[arg-type]
            handler=data.get("handler", data.get("execute")),  # type: ignore[arg-type]
            input_schema=data.get("input_schema", data.get("inputSchema")),
            output_schema=data.get("output_schema", data.get("outputSchema")),
            annotations=data.get("annotations"),
        )


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    """A descriptor after validation, with its compiled validators."""

    descriptor: ToolDescriptor
    tier: ToolTier
    input_schema: dict[str, Any]
    validator: CompiledValidator
    output_schema: dict[str, Any] | None = None
    output_validator: CompiledValidator | None = None
    token: int = 0
    passes_context: bool = True

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def description(self) -> str:
        return self.descriptor.description

    @property
    def handler(self) -> ToolHandler:
        return self.descriptor.handler

    def to_info(self) -> ToolInfo:
        annotations = self.descriptor.annotations
        return ToolInfo(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
            output_schema=self.output_schema,
            annotations=dict(annotations) if annotations is not None else None,
        )


@dataclass(eq=False)
class RegistrationHandle:
    """Returned by tier B registration; ``unregister()`` removes exactly that entry."""

    name: str
    token: int
    unregister: Callable[[], bool] = field(repr=False)


__all__ = [
    "ContentBlock",
    "InvocationContext",
    "MediaContent",
    "RegisteredTool",
    "RegistrationHandle",
    "TextContent",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolHandler",
    "ToolInfo",
    "ToolResponse",
    "ToolTier",
    "accepts_context",
]
