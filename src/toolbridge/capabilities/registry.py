"""Two-tier capability registry.

This module is the single source of truth for locally registered tools:
- Descriptor validation and schema compilation at registration time
- Tier A (bulk-replaced) and tier B (individually managed) storage
- Name uniqueness across both tiers
- Invocation by name and coalesced change notification

Usage:
    from toolbridge.capabilities import CapabilityRegistry

    registry = CapabilityRegistry()
    registry.replace_tier_a([{"name": "echo", "description": "Echo", "handler": echo}])
    handle = registry.add_tier_b(ToolDescriptor(name="t", description="T", handler=t))
    response = await registry.invoke("echo", {"text": "hi"})
    handle.unregister()
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from toolbridge.capabilities.invocation import InvocationHooks, invoke_tool
from toolbridge.capabilities.notifier import ChangeListener, ChangeNotifier
from toolbridge.capabilities.types import (
    RegisteredTool,
    RegistrationHandle,
    ToolCallRequest,
    ToolDescriptor,
    ToolInfo,
    ToolResponse,
    ToolTier,
    accepts_context,
)
from toolbridge.core.console import get_logger
from toolbridge.core.result import RegistrationError, SchemaCompileError, ToolNotFoundError
from toolbridge.schema import (
    PASSTHROUGH_VALIDATOR,
    CompiledValidator,
    SchemaCompiler,
    default_input_schema,
    get_default_compiler,
    normalize_schema,
)

if TYPE_CHECKING:
    from toolbridge.core.config import AppConfig

logger = get_logger(__name__)

DescriptorLike = ToolDescriptor | Mapping[str, Any]


# ---------------------------------------------------------------------------
# Descriptor validation
# ---------------------------------------------------------------------------


def coerce_descriptor(value: DescriptorLike) -> ToolDescriptor:
    if isinstance(value, ToolDescriptor):
        return value
    if isinstance(value, Mapping):
        return ToolDescriptor.from_mapping(value)
    raise RegistrationError("Invalid tool descriptor")


def name_warnings(name: str) -> list[str]:
    """Return compatibility warnings for names some consumers reject."""
    warnings: list[str] = []
    if name.startswith("_"):
        warnings.append(
            f'Tool name "{name}" starts with underscore. '
            "Some consumers may not list it; prefer a leading letter."
        )
    if name[:1].isdigit():
        warnings.append(
            f'Tool name "{name}" starts with a number. '
            "Some consumers may reject it; prefer a leading letter."
        )
    if name.startswith("-"):
        warnings.append(
            f'Tool name "{name}" starts with hyphen. '
            "Some consumers may reject it; prefer a leading letter."
        )
    return warnings


def _check_descriptor(descriptor: ToolDescriptor) -> None:
    if not descriptor.name or not isinstance(descriptor.name, str):
        raise RegistrationError("Tool name is required and must be a string")
    if not descriptor.description or not isinstance(descriptor.description, str):
        raise RegistrationError(
            f'Tool "{descriptor.name}" description is required and must be a string'
        )
    if not callable(descriptor.handler):
        raise RegistrationError(f'Tool "{descriptor.name}" handler must be callable')


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CapabilityRegistry:
    """Registry of locally provided tools.

    Mutations are synchronous and all-or-nothing: every check runs before any
    state changes, and a failed call leaves both tiers untouched.
    """

    def __init__(
        self,
        *,
        strict_schemas: bool = True,
        compiler: SchemaCompiler | None = None,
        hooks: InvocationHooks | None = None,
    ) -> None:
        self.strict_schemas = strict_schemas
        self.compiler = compiler or get_default_compiler()
        self.hooks = hooks
        self.notifier = ChangeNotifier("registry")
        self._tier_a: dict[str, RegisteredTool] = {}
        self._tier_b: dict[str, RegisteredTool] = {}
        self._tokens = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        compiler: SchemaCompiler | None = None,
        hooks: InvocationHooks | None = None,
    ) -> CapabilityRegistry:
        return cls(strict_schemas=config.schemas.strict, compiler=compiler, hooks=hooks)

    # -- building -------------------------------------------------------

    def _compile(
        self, raw: Mapping[str, Any] | str | None
    ) -> tuple[dict[str, Any], CompiledValidator]:
        try:
            document = normalize_schema(raw)
        except SchemaCompileError:
            if self.strict_schemas:
                raise
            logger.warning("Tool schema is not valid JSON, accepting all input")
            return default_input_schema(), PASSTHROUGH_VALIDATOR
        return dict(document), self.compiler.compile(document, strict=self.strict_schemas)

    def _build(self, value: DescriptorLike, tier: ToolTier) -> RegisteredTool:
        descriptor = coerce_descriptor(value)
        _check_descriptor(descriptor)

        for warning in name_warnings(descriptor.name):
            logger.warning(warning)

        input_schema, validator = self._compile(descriptor.input_schema)

        output_schema = None
        output_validator = None
        if descriptor.output_schema is not None:
            output_schema, output_validator = self._compile(descriptor.output_schema)

        return RegisteredTool(
            descriptor=descriptor,
            tier=tier,
            input_schema=input_schema,
            validator=validator,
            output_schema=output_schema,
            output_validator=output_validator,
            token=next(self._tokens),
            passes_context=accepts_context(descriptor.handler),
        )

    # -- mutations ------------------------------------------------------

    def replace_tier_a(self, descriptors: Iterable[DescriptorLike]) -> None:
        """Atomically replace every tier A entry.

        Raises:
            RegistrationError: On duplicate names in ``descriptors`` or a
                collision with a tier B entry. Nothing changes in that case.
            SchemaCompileError: If a schema fails to compile in strict mode.
        """
        built: dict[str, RegisteredTool] = {}
        for value in descriptors:
            tool = self._build(value, ToolTier.A)
            if tool.name in built:
                raise RegistrationError(
                    f"Duplicate tool name in tier A set: {tool.name}", context={"tier": "A"}
                )
            if tool.name in self._tier_b:
                raise RegistrationError(
                    f"Tool already registered: {tool.name}", context={"tier": "B"}
                )
            built[tool.name] = tool

        self._tier_a = built
        logger.debug("Tier A replaced with %d tool(s)", len(built))
        self.notifier.schedule()

    def add_tier_b(self, descriptor: DescriptorLike) -> RegistrationHandle:
        """Register one tier B tool and return a handle that removes exactly it.

        Raises:
            RegistrationError: If the name exists in either tier.
        """
        tool = self._build(descriptor, ToolTier.B)
        if tool.name in self._tier_a or tool.name in self._tier_b:
            raise RegistrationError(f"Tool already registered: {tool.name}")

        self._tier_b[tool.name] = tool
        self.notifier.schedule()

        def release() -> bool:
            return self.remove_tier_b(handle)

        handle = RegistrationHandle(name=tool.name, token=tool.token, unregister=release)
        return handle

    def remove_tier_b(self, target: RegistrationHandle | str) -> bool:
        """Remove a tier B entry; returns False (and logs) when nothing matched.

        A handle only removes the registration it was issued for, so a stale
        handle cannot remove a later registration that reused the name.
        """
        name = target.name if isinstance(target, RegistrationHandle) else target
        entry = self._tier_b.get(name)

        if entry is None:
            if name in self._tier_a:
                logger.warning("Ignoring removal of %s: tool is owned by tier A", name)
            else:
                logger.warning("Ignoring removal of %s: tool is not registered", name)
            return False

        if isinstance(target, RegistrationHandle) and target.token != entry.token:
            logger.warning("Ignoring removal of %s: handle is stale", name)
            return False

        del self._tier_b[name]
        self.notifier.schedule()
        return True

    def clear(self) -> None:
        """Empty tier A. Tier B registrations are kept."""
        self._tier_a = {}
        self.notifier.schedule()

    # -- queries --------------------------------------------------------

    def get(self, name: str) -> RegisteredTool | None:
        return self._tier_a.get(name) or self._tier_b.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tier_a or name in self._tier_b

    def __len__(self) -> int:
        return len(self._tier_a) + len(self._tier_b)

    def snapshot(self) -> Mapping[str, RegisteredTool]:
        return MappingProxyType({**self._tier_a, **self._tier_b})

    def list_tools(self) -> list[ToolInfo]:
        return [tool.to_info() for tool in self.snapshot().values()]

    def list_tier_a(self) -> list[ToolInfo]:
        return [tool.to_info() for tool in self._tier_a.values()]

    def list_tier_b(self) -> list[ToolInfo]:
        return [tool.to_info() for tool in self._tier_b.values()]

    # -- invocation -----------------------------------------------------

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ToolResponse:
        """Invoke ``name`` with ``arguments``.

        Raises:
            ToolNotFoundError: If no tool has that name.
            ToolCancelledError: If ``cancel`` fires before the handler settles.
        """
        tool = self.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool not found: {name}")
        return await invoke_tool(tool, arguments, cancel=cancel, hooks=self.hooks)

    async def call_tool(
        self,
        request: ToolCallRequest | Mapping[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> ToolResponse:
        if not isinstance(request, ToolCallRequest):
            request = ToolCallRequest.model_validate(request)
        return await self.invoke(request.name, request.arguments, cancel=cancel)

    # -- notifications --------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self.notifier.subscribe(listener)

    on_tools_changed = subscribe


__all__ = [
    "CapabilityRegistry",
    "DescriptorLike",
    "coerce_descriptor",
    "name_warnings",
]
