"""
Centralized error formatting for CLI and tool-response contexts.

Exceptions that cross a reporting boundary (a CLI command, a tool response
envelope) are mapped to stable codes and severities here so that every
surface presents them the same way.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rich.markup import escape

from toolbridge.core.result import (
    ConfigurationError,
    RegistrationError,
    SchemaCompileError,
    ToolBridgeError,
    ToolCancelledError,
    ToolExecutionError,
    ToolNotFoundError,
)


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class FormattedError:
    message: str
    severity: ErrorSeverity
    code: str
    details: dict[str, Any] = field(default_factory=dict)
    traceback: str | None = None


# First match wins, so subclasses precede ToolBridgeError.
_CLASSIFICATION: tuple[tuple[type[BaseException], str, ErrorSeverity], ...] = (
    (SchemaCompileError, "SCHEMA_ERROR", ErrorSeverity.WARNING),
    (RegistrationError, "REGISTRATION_ERROR", ErrorSeverity.ERROR),
    (ToolNotFoundError, "TOOL_NOT_FOUND", ErrorSeverity.WARNING),
    (ToolCancelledError, "CANCELLED", ErrorSeverity.INFO),
    (ToolExecutionError, "TOOL_ERROR", ErrorSeverity.ERROR),
    (ConfigurationError, "CONFIG_ERROR", ErrorSeverity.ERROR),
    (ToolBridgeError, "TOOLBRIDGE_ERROR", ErrorSeverity.ERROR),
    (TimeoutError, "TIMEOUT", ErrorSeverity.ERROR),
)

_SEVERITY_STYLE = {
    ErrorSeverity.INFO: "cyan",
    ErrorSeverity.WARNING: "yellow",
    ErrorSeverity.ERROR: "red",
    ErrorSeverity.CRITICAL: "bold red",
}


def classify(exc: BaseException) -> tuple[str, ErrorSeverity]:
    for exc_type, code, severity in _CLASSIFICATION:
        if isinstance(exc, exc_type):
            return code, severity
    return "UNEXPECTED_ERROR", ErrorSeverity.ERROR


def format_error(exc: BaseException, *, include_traceback: bool = False) -> FormattedError:
    """Turn ``exc`` into a :class:`FormattedError`.

    ``details`` holds a copy of the error's ``context`` and, for schema
    errors, its ``kind`` and ``pointer``.
    """
    code, severity = classify(exc)

    details: dict[str, Any] = {}
    if isinstance(exc, ToolBridgeError):
        details.update(exc.context)
    if isinstance(exc, SchemaCompileError):
        details["kind"] = exc.kind
        details["pointer"] = exc.pointer

    rendered_tb = None
    if include_traceback:
        rendered_tb = "".join(traceback.format_exception(exc))

    return FormattedError(
        message=str(exc),
        severity=severity,
        code=code,
        details=details,
        traceback=rendered_tb,
    )


def format_for_cli(error: FormattedError) -> list[str]:
    """Rich markup lines: the styled code and message, then one line per detail."""
    style = _SEVERITY_STYLE[error.severity]
    lines = [f"[{style}]{error.code}[/{style}] {escape(error.message)}"]
    lines.extend(f"  {key}: {escape(str(value))}" for key, value in error.details.items())
    return lines


__all__ = [
    "ErrorSeverity",
    "FormattedError",
    "classify",
    "format_error",
    "format_for_cli",
]
