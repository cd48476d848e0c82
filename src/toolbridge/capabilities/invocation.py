"""Tool invocation: validate, call, normalize.

Shared by the registry and the bridge so that local and mirrored tools
produce identical envelopes for identical failures.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Mapping
from typing import Any, Protocol

from toolbridge.capabilities.responses import error_response, text_response, to_tool_response
from toolbridge.capabilities.types import InvocationContext, RegisteredTool, ToolResponse
from toolbridge.core.console import get_logger
from toolbridge.core.result import ToolCancelledError
from toolbridge.schema import format_issues

logger = get_logger(__name__)


class InvocationHooks(Protocol):
    """Observer consulted after validation and before the handler runs."""

    def record_call(self, tool_name: str, arguments: dict[str, Any]) -> None: ...

    def has_mock_response(self, tool_name: str) -> bool: ...

    def get_mock_response(self, tool_name: str) -> Any: ...


def _consume_outcome(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Handler finished after cancellation with error: %s", exc)


async def _await_with_cancel(
    awaitable: Awaitable[Any], cancel: asyncio.Event | None, tool_name: str
) -> Any:
    task = asyncio.ensure_future(awaitable)
    if cancel is None:
        return await task

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.add_done_callback(_consume_outcome)
        raise
    finally:
        if not waiter.done():
            waiter.cancel()

    if task in done:
        return task.result()

    # The handler is left running; it can observe the event through its context.
    task.add_done_callback(_consume_outcome)
    raise ToolCancelledError(f"Tool call cancelled: {tool_name}", context={"tool": tool_name})


def _check_output(tool: RegisteredTool, response: ToolResponse) -> None:
    if tool.output_validator is None or response.is_error:
        return
    if response.structured_content is None:
        return
    issues = tool.output_validator(response.structured_content)
    if issues:
        logger.warning(
            'Output validation failed for tool "%s":\n%s',
            tool.name,
            format_issues(issues),
        )


async def invoke_tool(
    tool: RegisteredTool,
    arguments: Mapping[str, Any] | None,
    *,
    cancel: asyncio.Event | None = None,
    hooks: InvocationHooks | None = None,
) -> ToolResponse:
    """Run ``tool`` against ``arguments`` and return its response envelope.

    Validation failures and handler exceptions become ``isError`` responses.

    Raises:
        ToolCancelledError: If ``cancel`` is set before the handler settles.
    """
    args: Any = {} if arguments is None else arguments
    issues = tool.validator(args)
    if issues:
        logger.warning("Rejected arguments for tool %s (%d issue(s))", tool.name, len(issues))
        return text_response(
            f'Input validation error for tool "{tool.name}":\n{format_issues(issues)}',
            is_error=True,
        )

    if not isinstance(args, Mapping):
        # Only reachable when the tool fell back to the passthrough validator.
        return text_response(
            f'Input validation error for tool "{tool.name}":\n'
            "Validation failed:\n  - root: Expected object",
            is_error=True,
        )
    call_args = dict(args)

    if hooks is not None:
        hooks.record_call(tool.name, call_args)
        if hooks.has_mock_response(tool.name):
            return to_tool_response(hooks.get_mock_response(tool.name))

    if cancel is not None and cancel.is_set():
        raise ToolCancelledError(f"Tool call cancelled: {tool.name}", context={"tool": tool.name})

    context = InvocationContext(tool_name=tool.name, cancel_event=cancel)
    try:
        if tool.passes_context:
            result = tool.handler(call_args, context)
        else:
            result = tool.handler(call_args)
        if inspect.isawaitable(result):
            result = await _await_with_cancel(result, cancel, tool.name)
    except (ToolCancelledError, asyncio.CancelledError):
        raise
    except Exception as exc:
        logger.error("Tool %s failed: %s", tool.name, exc, exc_info=True)
        return error_response(exc)

    response = to_tool_response(result)
    _check_output(tool, response)
    return response


__all__ = ["InvocationHooks", "invoke_tool"]
