"""Reconciliation bridge between a host registry and a local tool view.

The host owns the authoritative tool list and may change it at any time.
The bridge keeps a mirrored view that it rebuilds from scratch on every sync
pass, triggered by the host's change signal (through the callback
multiplexer) or by mutations made through the bridge itself.

Sync passes are single-flight. A request that arrives while a pass is in
flight marks the view dirty, and exactly one follow-up pass runs when the
current one finishes. The first completed pass emits no notification; every
later pass emits one, coalesced with any others in the same loop turn.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
import logging
import time
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

from toolbridge.bridge.host import has_change_signal
from toolbridge.bridge.multiplexer import ChangeCallbackMultiplexer, install_callback_multiplexer
from toolbridge.capabilities import (
    ChangeListener,
    ChangeNotifier,
    InvocationContext,
    RegisteredTool,
    ToolCallRequest,
    ToolDescriptor,
    ToolInfo,
    ToolResponse,
    ToolTier,
    host_result_to_response,
    invoke_tool,
)
from toolbridge.core.console import get_logger
from toolbridge.core.result import (
    Err,
    Ok,
    RegistrationError,
    Result,
    SchemaCompileError,
    ToolBridgeError,
    ToolNotFoundError,
    try_result,
)
from toolbridge.schema import (
    CompiledValidator,
    SchemaCompiler,
    default_input_schema,
    get_default_compiler,
    normalize_schema,
)

if TYPE_CHECKING:
    from toolbridge.core.config import AppConfig

logger = get_logger(__name__)

_tracer: trace.Tracer | None = None


def _get_tracer() -> trace.Tracer:
    """Return the bridge tracer.

    Spans are no-ops until the embedding application installs a tracer
    provider.
    """
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("toolbridge.bridge")
    return _tracer


def _field(info: Any, *names: str) -> Any:
    for name in names:
        if isinstance(info, Mapping):
            if name in info:
                return info[name]
        elif hasattr(info, name):
            return getattr(info, name)
    return None


class ReconciliationBridge:
    """Mirror of a host registry with single-flight, rebuild-from-scratch sync."""

    def __init__(
        self,
        host: Any,
        *,
        strict_schemas: bool = False,
        compiler: SchemaCompiler | None = None,
        trace_tool_flow: bool = False,
        initial_sync: bool = True,
    ) -> None:
        self.host = host
        self.strict_schemas = strict_schemas
        self.compiler = compiler or get_default_compiler()
        self.trace_tool_flow = trace_tool_flow
        self.notifier = ChangeNotifier("bridge")

        self._tools: dict[str, RegisteredTool] = {}
        self._sequence = itertools.count(1)
        self._sync_in_progress = False
        self._dirty = False
        self._sync_scheduled = False
        self._has_completed_initial_sync = False
        self._active_rebuilds = 0

        self.sync_sequence = 0
        self.rebuild_count = 0
        self.max_concurrent_rebuilds = 0
        self.skipped_syncs = 0

        self.multiplexer: ChangeCallbackMultiplexer | None = None
        self.has_change_signal = has_change_signal(host)
        if self.has_change_signal:
            self.multiplexer = install_callback_multiplexer(host)
            if self.multiplexer is not None:
                self.multiplexer.add_internal(self._on_host_change)
            else:
                host.register_tools_changed_callback(self._on_host_change)

        if initial_sync:
            self.sync("constructor.initial")

    @classmethod
    def from_config(cls, host: Any, config: AppConfig, **kwargs: Any) -> ReconciliationBridge:
        return cls(
            host,
            strict_schemas=config.bridge.strict_schemas,
            trace_tool_flow=config.bridge.trace_tool_flow,
            **kwargs,
        )

    # -- tracing --------------------------------------------------------

    def _trace(self, stage: str, **details: Any) -> None:
        level = logging.INFO if self.trace_tool_flow else logging.DEBUG
        rendered = " ".join(f"{key}={value}" for key, value in details.items())
        logger.log(level, "[ToolFlow] %s %s", stage, rendered)

    # -- sync -----------------------------------------------------------

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    @property
    def has_completed_initial_sync(self) -> bool:
        return self._has_completed_initial_sync

    def _on_host_change(self) -> None:
        self.sync("host.tools_changed")

    def sync(self, source: str = "manual") -> bool:
        """Rebuild the mirrored view from the host.

        Returns False when the request was folded into an in-flight pass.
        """
        sync_id = self._next_sync_id()
        if self._sync_in_progress:
            self._dirty = True
            self.skipped_syncs += 1
            self._trace("sync_skipped_in_progress", sync_id=sync_id, source=source)
            return False

        self._sync_in_progress = True
        try:
            self._run_pass(sync_id, source)
            while self._dirty:
                self._dirty = False
                self._run_pass(self._next_sync_id(), f"{source}.follow_up")
        finally:
            self._sync_in_progress = False
        return True

    def schedule_sync(self, source: str = "scheduled") -> None:
        """Request a sync on the next loop turn; repeated requests coalesce."""
        if self._sync_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.sync(source)
            return

        self._sync_scheduled = True

        def run() -> None:
            self._sync_scheduled = False
            self.sync(source)

        loop.call_soon(run)

    def _next_sync_id(self) -> int:
        self.sync_sequence = next(self._sequence)
        return self.sync_sequence

    def _run_pass(self, sync_id: int, source: str) -> None:
        self._active_rebuilds += 1
        self.max_concurrent_rebuilds = max(self.max_concurrent_rebuilds, self._active_rebuilds)
        started = time.monotonic()
        self._trace("sync_start", sync_id=sync_id, source=source)

        with _get_tracer().start_as_current_span("toolbridge.sync") as span:
            span.set_attribute("sync.id", sync_id)
            span.set_attribute("sync.source", source)
            try:
                rebuilt = self._rebuild(sync_id, source)
                span.set_attribute("sync.tool_count", len(self._tools))
            finally:
                self._active_rebuilds -= 1
                self._trace(
                    "sync_end",
                    sync_id=sync_id,
                    source=source,
                    duration_ms=round((time.monotonic() - started) * 1000, 3),
                    bridge_tools=len(self._tools),
                )

        if not rebuilt:
            return
        if self._has_completed_initial_sync:
            self.notifier.schedule()
        else:
            self._has_completed_initial_sync = True

    def _rebuild(self, sync_id: int, source: str) -> bool:
        try:
            host_tools = list(self.host.list_tools())
        except Exception:
            logger.error("Failed to list host tools (sync %d, %s)", sync_id, source, exc_info=True)
            return False

        self._trace("sync_host_list_result", sync_id=sync_id, host_tools=len(host_tools))
        self.rebuild_count += 1

        rebuilt: dict[str, RegisteredTool] = {}
        for info in host_tools:
            try:
                outcome = self._mirror_entry(info)
            except Exception:
                logger.error("Failed to sync tool %r", _field(info, "name"), exc_info=True)
                continue
            match outcome:
                case Ok(tool):
                    if tool.name in rebuilt:
                        logger.warning(
                            "Host listed %s more than once; keeping the first", tool.name
                        )
                        continue
                    rebuilt[tool.name] = tool
                case Err(error):
                    logger.error("Failed to sync tool %r: %s", _field(info, "name"), error)

        self._tools = rebuilt
        self._trace("sync_bridge_rebuilt", sync_id=sync_id, bridge_tools=len(rebuilt))
        return True

    def _compile_mirrored(self, raw_schema: Any) -> tuple[dict[str, Any], CompiledValidator]:
        schema = dict(normalize_schema(raw_schema)) if raw_schema else default_input_schema()
        return schema, self.compiler.compile(schema, strict=self.strict_schemas)

    def _mirror_entry(self, info: Any) -> Result[RegisteredTool, ToolBridgeError]:
        name = _field(info, "name")
        if not isinstance(name, str) or not name:
            return Err(RegistrationError("Host tool has no name"))

        description = _field(info, "description")
        raw_schema = _field(info, "inputSchema", "input_schema")
        compiled = try_result(lambda: self._compile_mirrored(raw_schema), SchemaCompileError)
        if isinstance(compiled, Err):
            return compiled
        schema, validator = compiled.value

        async def execute(arguments: dict[str, Any], context: InvocationContext) -> ToolResponse:
            return await self._execute_on_host(name, arguments)

        descriptor = ToolDescriptor(
            name=name,
            description=description if isinstance(description, str) else "",
            handler=execute,
            input_schema=schema,
        )
        return Ok(
            RegisteredTool(
                descriptor=descriptor,
                tier=ToolTier.A,
                input_schema=schema,
                validator=validator,
            )
        )

    async def _execute_on_host(self, name: str, arguments: dict[str, Any]) -> ToolResponse:
        try:
            payload = json.dumps(arguments)
        except (TypeError, ValueError) as exc:
            raise TypeError(f"Failed to serialize tool arguments: {exc}") from exc

        result = self.host.execute_tool(name, payload)
        if inspect.isawaitable(result):
            result = await result
        return host_result_to_response(result)

    # -- consumer surface -----------------------------------------------

    @property
    def tools(self) -> Mapping[str, RegisteredTool]:
        return MappingProxyType(self._tools)

    def list_tools(self) -> list[ToolInfo]:
        return [tool.to_info() for tool in self._tools.values()]

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ToolResponse:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool not found: {name}")
        return await invoke_tool(tool, arguments, cancel=cancel)

    async def call_tool(
        self,
        request: ToolCallRequest | Mapping[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> ToolResponse:
        if not isinstance(request, ToolCallRequest):
            request = ToolCallRequest.model_validate(request)
        return await self.invoke(request.name, request.arguments, cancel=cancel)

    def on_tools_changed(self, listener: ChangeListener) -> Callable[[], None]:
        return self.notifier.subscribe(listener)

    # -- producer surface -----------------------------------------------

    def _producer(self, method: str) -> Callable[..., Any]:
        target = getattr(self.host, method, None)
        if not callable(target):
            raise RegistrationError(f"Host does not support {method}")
        return target

    def provide_context(self, context: Mapping[str, Any] | None = None) -> Any:
        context = dict(context or {})
        seen: set[str] = set()
        for tool in context.get("tools") or []:
            name = _field(tool, "name")
            if name in seen:
                raise RegistrationError(
                    f'Tool name collision: "{name}" appears more than once in provide_context tools'
                )
            seen.add(name)

        result = self._producer("provide_context")(context)
        self.schedule_sync("bridge.provide_context")
        return result

    def register_tool(self, tool: Any) -> Any:
        name = _field(tool, "name")
        if name in self._tools:
            raise RegistrationError(f"Tool already registered: {name}")

        result = self._producer("register_tool")(tool)
        self.schedule_sync("bridge.register_tool")
        return result

    def unregister_tool(self, name: str) -> Any:
        result = self._producer("unregister_tool")(name)
        self.schedule_sync("bridge.unregister_tool")
        return result

    def clear_context(self) -> Any:
        result = self._producer("clear_context")()
        self.schedule_sync("bridge.clear_context")
        return result


__all__ = ["ReconciliationBridge"]
