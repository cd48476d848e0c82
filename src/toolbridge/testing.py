"""Testing hooks for tool registries.

Records every validated invocation and can short-circuit handlers with mock
responses, so consumers can exercise their tool wiring without side effects.

Usage:
    from toolbridge.testing import create_test_helper

    helper = create_test_helper(registry)
    helper.set_mock_tool_response("search", {"hits": []})
    await helper.execute_tool("search", {"query": "x"})
    assert helper.get_tool_calls()[0].arguments == {"query": "x"}
"""

from __future__ import annotations

import copy
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from toolbridge.capabilities import CapabilityRegistry, ToolInfo, ToolResponse


@dataclass(frozen=True, slots=True)
class ToolCall:
    tool_name: str
    arguments: dict[str, Any]
    timestamp: float = field(default_factory=time.time)


class ToolCallRecorder:
    """Invocation hooks that record calls and serve mock responses."""

    def __init__(self) -> None:
        self._calls: list[ToolCall] = []
        self._mocks: dict[str, Any] = {}

    def record_call(self, tool_name: str, arguments: dict[str, Any]) -> None:
        self._calls.append(ToolCall(tool_name=tool_name, arguments=copy.deepcopy(arguments)))

    def has_mock_response(self, tool_name: str) -> bool:
        return tool_name in self._mocks

    def get_mock_response(self, tool_name: str) -> Any:
        return self._mocks[tool_name]

    def set_mock_response(self, tool_name: str, response: Any) -> None:
        self._mocks[tool_name] = response

    def clear_mock_response(self, tool_name: str) -> None:
        self._mocks.pop(tool_name, None)

    def get_tool_calls(self, tool_name: str | None = None) -> list[ToolCall]:
        if tool_name is None:
            return list(self._calls)
        return [call for call in self._calls if call.tool_name == tool_name]

    def clear_tool_calls(self) -> None:
        self._calls.clear()

    def reset(self) -> None:
        self._calls.clear()
        self._mocks.clear()


class RegistryTestHelper:
    """Convenience facade over a registry and its recorder."""

    def __init__(self, registry: CapabilityRegistry, recorder: ToolCallRecorder) -> None:
        self.registry = registry
        self.recorder = recorder

    async def execute_tool(
        self, name: str, arguments: Mapping[str, Any] | None = None
    ) -> ToolResponse:
        return await self.registry.invoke(name, arguments)

    def list_tools(self) -> list[ToolInfo]:
        return self.registry.list_tools()

    def get_tool_calls(self, tool_name: str | None = None) -> list[ToolCall]:
        return self.recorder.get_tool_calls(tool_name)

    def set_mock_tool_response(self, tool_name: str, response: Any) -> None:
        self.recorder.set_mock_response(tool_name, response)

    def clear_mock_tool_response(self, tool_name: str) -> None:
        self.recorder.clear_mock_response(tool_name)

    def reset(self) -> None:
        self.recorder.reset()


def create_test_helper(registry: CapabilityRegistry) -> RegistryTestHelper:
    """Attach a :class:`ToolCallRecorder` to ``registry`` (reusing an existing one).

    Raises:
        TypeError: If the registry already carries hooks of another type.
    """
    hooks = registry.hooks
    if hooks is None:
        hooks = ToolCallRecorder()
        registry.hooks = hooks
    elif not isinstance(hooks, ToolCallRecorder):
        raise TypeError(f"Registry already has invocation hooks: {type(hooks).__name__}")
    return RegistryTestHelper(registry, hooks)


__all__ = [
    "RegistryTestHelper",
    "ToolCall",
    "ToolCallRecorder",
    "create_test_helper",
]
