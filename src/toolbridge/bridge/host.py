"""Host registry protocols and the in-process reference host.

A host is any object that owns the authoritative tool list. The bridge only
relies on the duck-typed surface described by :class:`HostRegistry`; the
change signal and producer methods are optional.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from toolbridge.capabilities import CapabilityRegistry, RegistrationHandle
from toolbridge.core.console import get_logger
from toolbridge.core.result import ToolExecutionError

logger = get_logger(__name__)

PRODUCER_METHODS = ("provide_context", "register_tool", "unregister_tool", "clear_context")


@runtime_checkable
class HostRegistry(Protocol):
    """Minimum host surface: list descriptors and execute by name.

    ``list_tools`` returns mappings (or objects) with ``name``, ``description``
    and an ``inputSchema`` JSON string. ``execute_tool`` may be sync or async
    and returns JSON text.
    """

    def list_tools(self) -> Sequence[Any]: ...

    def execute_tool(self, name: str, input_args_json: str) -> Any: ...


@runtime_checkable
class HostChangeSignal(Protocol):
    """Single-subscriber change signal; a new callback replaces the old one."""

    def register_tools_changed_callback(self, callback: Callable[[], object]) -> None: ...


@runtime_checkable
class HostProducer(Protocol):
    def provide_context(self, context: Mapping[str, Any] | None = None) -> Any: ...

    def register_tool(self, tool: Any) -> Any: ...

    def unregister_tool(self, name: str) -> Any: ...

    def clear_context(self) -> Any: ...


def has_change_signal(host: object) -> bool:
    return callable(getattr(host, "register_tools_changed_callback", None))


class RegistryHost:
    """Expose a :class:`CapabilityRegistry` through the host protocols.

    Lets the bridge run against local registrations without an external host,
    and serves as the reference host in tests.
    """

    def __init__(self, registry: CapabilityRegistry | None = None) -> None:
        self.registry = registry or CapabilityRegistry()
        self._callback: Callable[[], object] | None = None
        self.registry.subscribe(self._fire_tools_changed)

    def _fire_tools_changed(self) -> None:
        if self._callback is not None:
            self._callback()

    # -- HostRegistry ---------------------------------------------------

    def list_tools(self) -> list[dict[str, Any]]:
        return [
            {
                "name": info.name,
                "description": info.description,
                "inputSchema": json.dumps(info.input_schema),
            }
            for info in self.registry.list_tools()
        ]

    async def execute_tool(self, name: str, input_args_json: str) -> str:
        """Run a registered tool and return its response envelope as JSON.

        Raises:
            ToolExecutionError: If the arguments are not a JSON object.
            ToolNotFoundError: If ``name`` is not registered.
        """
        try:
            arguments = json.loads(input_args_json) if input_args_json else {}
        except json.JSONDecodeError as exc:
            raise ToolExecutionError(
                f"Invalid tool arguments JSON: {exc}", context={"tool": name}
            ) from exc
        if not isinstance(arguments, dict):
            raise ToolExecutionError("Tool arguments must be a JSON object", context={"tool": name})

        response = await self.registry.invoke(name, arguments)
        return json.dumps(response.to_wire())

    # -- HostChangeSignal -----------------------------------------------

    def register_tools_changed_callback(self, callback: Callable[[], object]) -> None:
        if not callable(callback):
            raise TypeError("register_tools_changed_callback expects a callable")
        self._callback = callback

    # -- HostProducer ---------------------------------------------------

    def provide_context(self, context: Mapping[str, Any] | None = None) -> None:
        tools = (context or {}).get("tools") or []
        self.registry.replace_tier_a(tools)

    def register_tool(self, tool: Any) -> RegistrationHandle:
        return self.registry.add_tier_b(tool)

    def unregister_tool(self, name: str) -> bool:
        return self.registry.remove_tier_b(name)

    def clear_context(self) -> None:
        self.registry.clear()


__all__ = [
    "PRODUCER_METHODS",
    "HostChangeSignal",
    "HostProducer",
    "HostRegistry",
    "RegistryHost",
    "has_change_signal",
]
