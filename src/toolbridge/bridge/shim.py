"""Consumer shim installer.

Gives a host object the consumer surface (``call_tool`` plus event
subscription) by delegating to a :class:`ReconciliationBridge`. Hosts
without a change signal also get their producer methods wrapped so every
successful mutation schedules a bridge sync.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from toolbridge.bridge.events import TOOLS_CHANGED, Event, EventTarget
from toolbridge.bridge.host import PRODUCER_METHODS
from toolbridge.bridge.reconciler import ReconciliationBridge
from toolbridge.core.console import get_logger

logger = get_logger(__name__)

SHIM_ATTR = "__toolbridge_consumer_shim__"
CALL_TOOL_SHIM_ATTR = "__toolbridge_call_tool_shim__"
EVENT_METHODS = ("add_event_listener", "remove_event_listener", "dispatch_event")


def _define(host: object, name: str, value: Any) -> bool:
    try:
        setattr(host, name, value)
    except (AttributeError, TypeError) as exc:
        logger.warning("Failed to install %s shim: %s", name, exc)
        return False
    return True


def _dispatch_tools_changed(host: object) -> None:
    try:
        host.dispatch_event(Event(TOOLS_CHANGED))  # type: ignore[attr-defined]
    except Exception:
        logger.warning('Failed to dispatch "%s" event', TOOLS_CHANGED, exc_info=True)


def _track_handle(handle: Any, bridge: ReconciliationBridge) -> None:
    original = getattr(handle, "unregister", None)
    if not callable(original):
        return

    @functools.wraps(original)
    def unregister(*args: Any, **kwargs: Any) -> Any:
        result = original(*args, **kwargs)
        bridge.schedule_sync("shim.handle.unregister")
        return result

    try:
        handle.unregister = unregister
    except (AttributeError, TypeError):
        logger.debug("Registration handle %r does not accept a wrapped unregister", handle)


def _wrap_producer(host: object, method: str, bridge: ReconciliationBridge) -> bool:
    original: Callable[..., Any] | None = getattr(host, method, None)
    if not callable(original):
        return False

    @functools.wraps(original)
    def wrapped(*args: Any, **kwargs: Any) -> Any:
        if method == "provide_context" and not args and not kwargs:
            args = ({},)
        result = original(*args, **kwargs)
        if method == "register_tool":
            _track_handle(result, bridge)
        bridge.schedule_sync(f"shim.{method}")
        return result

    return _define(host, method, wrapped)


def install_consumer_shim(
    host: object,
    bridge: ReconciliationBridge,
    *,
    has_change_signal: bool | None = None,
) -> bool:
    """Install the consumer surface on ``host``.

    Args:
        host: Host object to patch in place.
        bridge: Bridge that serves ``call_tool`` and emits change notifications.
        has_change_signal: Whether the host reports its own mutations.
            Defaults to what the bridge detected at construction.

    Returns:
        False if the shim was already installed on ``host``, True otherwise.
    """
    if getattr(host, SHIM_ATTR, False) is True:
        return False

    installed_call_tool = False
    if not callable(getattr(host, "call_tool", None)):
        installed_call_tool = _define(host, "call_tool", bridge.call_tool)

    events = EventTarget()
    for method in EVENT_METHODS:
        if not callable(getattr(host, method, None)):
            _define(host, method, getattr(events, method))

    bridge.on_tools_changed(lambda: _dispatch_tools_changed(host))

    if has_change_signal is None:
        has_change_signal = bridge.has_change_signal
    if not has_change_signal:
        wrapped = [method for method in PRODUCER_METHODS if _wrap_producer(host, method, bridge)]
        logger.debug("Wrapped producer methods for change tracking: %s", ", ".join(wrapped))

    _define(host, SHIM_ATTR, True)
    if installed_call_tool:
        _define(host, CALL_TOOL_SHIM_ATTR, True)
    return True


__all__ = [
    "CALL_TOOL_SHIM_ATTR",
    "SHIM_ATTR",
    "install_consumer_shim",
]
