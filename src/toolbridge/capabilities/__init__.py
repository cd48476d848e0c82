"""Capability registry: tool descriptors, tiers, invocation and notifications."""

from __future__ import annotations

from toolbridge.capabilities.invocation import InvocationHooks, invoke_tool
from toolbridge.capabilities.notifier import ChangeListener, ChangeNotifier
from toolbridge.capabilities.registry import CapabilityRegistry, coerce_descriptor, name_warnings
from toolbridge.capabilities.responses import (
    error_response,
    host_result_to_response,
    text_response,
    to_tool_response,
)
from toolbridge.capabilities.types import (
    InvocationContext,
    MediaContent,
    RegisteredTool,
    RegistrationHandle,
    TextContent,
    ToolCallRequest,
    ToolDescriptor,
    ToolInfo,
    ToolResponse,
    ToolTier,
    accepts_context,
)

__all__ = [
    "CapabilityRegistry",
    "ChangeListener",
    "ChangeNotifier",
    "InvocationContext",
    "InvocationHooks",
    "MediaContent",
    "RegisteredTool",
    "RegistrationHandle",
    "TextContent",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolInfo",
    "ToolResponse",
    "ToolTier",
    "accepts_context",
    "coerce_descriptor",
    "error_response",
    "host_result_to_response",
    "invoke_tool",
    "name_warnings",
    "text_response",
    "to_tool_response",
]
