"""Reconciliation between an external host registry and local consumers.

Usage:
    from toolbridge.bridge import attach

    bridge = attach(host)
    await host.call_tool({"name": "echo", "arguments": {"text": "hi"}})
"""

from __future__ import annotations

from typing import Any

from toolbridge.bridge.events import TOOLS_CHANGED, Event, EventTarget
from toolbridge.bridge.host import (
    PRODUCER_METHODS,
    HostChangeSignal,
    HostProducer,
    HostRegistry,
    RegistryHost,
    has_change_signal,
)
from toolbridge.bridge.multiplexer import ChangeCallbackMultiplexer, install_callback_multiplexer
from toolbridge.bridge.reconciler import ReconciliationBridge
from toolbridge.bridge.shim import install_consumer_shim


def attach(host: Any, **bridge_options: Any) -> ReconciliationBridge:
    """Create a bridge for ``host`` and install the consumer shim on it."""
    bridge = ReconciliationBridge(host, **bridge_options)
    install_consumer_shim(host, bridge)
    return bridge


__all__ = [
    "PRODUCER_METHODS",
    "TOOLS_CHANGED",
    "ChangeCallbackMultiplexer",
    "Event",
    "EventTarget",
    "HostChangeSignal",
    "HostProducer",
    "HostRegistry",
    "ReconciliationBridge",
    "RegistryHost",
    "attach",
    "has_change_signal",
    "install_callback_multiplexer",
    "install_consumer_shim",
]
