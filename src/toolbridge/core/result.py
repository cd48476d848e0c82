"""
Result types and error hierarchy for toolbridge.

Per-item outcomes (one mirrored host tool, one compiled schema) are returned
as ``Ok``/``Err`` and consumed with ``match``; everything that aborts a whole
operation raises a :class:`ToolBridgeError` subclass.

Usage:
    from toolbridge.core.result import Err, Ok, SchemaCompileError, try_result

    match try_result(lambda: compiler.compile(schema, strict=True), SchemaCompileError):
        case Ok(validator):
            ...
        case Err(error):
            logger.error("Skipping tool: %s", error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class ToolBridgeError(Exception):
    """Base exception for all toolbridge errors.

    Carries an optional ``context`` mapping that is rendered after the
    message, e.g. ``Tool already registered: t [tier=B]``.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class SchemaCompileError(ToolBridgeError):
    """Raised when a schema document is malformed or uses unsupported keywords.

    Attributes:
        kind: ``"invalid"``, ``"limit"`` or ``"unsupported"``.
        pointer: JSON pointer of the offending node (``#`` for the root).
    """

    def __init__(self, message: str, *, kind: str, pointer: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.pointer = pointer


class RegistrationError(ToolBridgeError):
    """Raised for rejected registrations.

    Examples:
    - Name collision with an existing tool in either tier
    - Duplicate names inside a tier A replacement set
    - Missing name, description or handler
    """


class ToolNotFoundError(ToolBridgeError):
    """Raised when invoking a name that is not registered."""


class ToolCancelledError(ToolBridgeError):
    """Raised when an invocation's cancel event fires before the handler settles."""


class ToolExecutionError(ToolBridgeError):
    """Raised by host adapters when a tool ran but reported failure."""


class ConfigurationError(ToolBridgeError):
    """Raised for configuration issues.

    Examples:
    - Config file parse errors
    - Config root that is not a mapping
    """


def try_result(fn: Callable[[], T], error_type: type[E]) -> Result[T, E]:
    """Call ``fn``; an ``error_type`` exception becomes ``Err``, anything else propagates."""
    try:
        return Ok(fn())
    except error_type as exc:
        return Err(exc)


__all__ = [
    "ConfigurationError",
    "Err",
    "Ok",
    "RegistrationError",
    "Result",
    "SchemaCompileError",
    "ToolBridgeError",
    "ToolCancelledError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "try_result",
]
