"""Fan-out wrapper around a host's single-subscriber change callback.

Hosts that accept only one ``register_tools_changed_callback`` subscriber
silently drop the previous one on every registration. The multiplexer keeps
one composite callback installed on the host. It always runs the internal
listeners, then the latest externally registered callback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from toolbridge.core.console import get_logger

logger = get_logger(__name__)

MULTIPLEXER_ATTR = "__toolbridge_multiplexer__"
_REGISTER_METHOD = "register_tools_changed_callback"

Callback = Callable[[], object]


def _run_guarded(callback: Callback, source: str) -> None:
    try:
        callback()
    except Exception:
        logger.warning("Error in %s tools-changed callback", source, exc_info=True)


class ChangeCallbackMultiplexer:
    def __init__(self, register: Callable[[Callback], Any]) -> None:
        self._register = register
        self._internal: list[Callback] = []
        self._external: Callback | None = None

    @property
    def external(self) -> Callback | None:
        return self._external

    @property
    def internal_count(self) -> int:
        return len(self._internal)

    def composed(self) -> None:
        for callback in list(self._internal):
            _run_guarded(callback, "internal")
        if self._external is not None:
            _run_guarded(self._external, "external")

    def prime(self) -> None:
        self._register(self.composed)

    def add_internal(self, callback: Callback) -> None:
        if callback not in self._internal:
            self._internal.append(callback)
        # Re-prime in case something bypassed the wrapper.
        self._register(self.composed)

    def remove_internal(self, callback: Callback) -> None:
        if callback in self._internal:
            self._internal.remove(callback)

    def register_external(self, callback: Callback) -> None:
        """Replacement for the host method: latest external callback wins."""
        if not callable(callback):
            # Let the host produce its own error for invalid input.
            self._register(callback)
            return
        self._external = callback
        self._register(self.composed)


def _rollback(host: object, original: Callable[..., Any], had_own_attr: bool) -> None:
    try:
        if had_own_attr:
            setattr(host, _REGISTER_METHOD, original)
        else:
            delattr(host, _REGISTER_METHOD)
    except (AttributeError, TypeError):
        logger.debug("Could not roll back %s on %r", _REGISTER_METHOD, host)


def install_callback_multiplexer(host: object) -> ChangeCallbackMultiplexer | None:
    """Install (once per host) and return the multiplexer.

    Returns None when the host has no change signal, the method cannot be
    replaced, or priming the composite callback fails.
    """
    existing = getattr(host, MULTIPLEXER_ATTR, None)
    if isinstance(existing, ChangeCallbackMultiplexer):
        return existing

    original = getattr(host, _REGISTER_METHOD, None)
    if not callable(original):
        return None

    had_own_attr = _REGISTER_METHOD in getattr(host, "__dict__", {})
    multiplexer = ChangeCallbackMultiplexer(original)

    try:
        setattr(host, _REGISTER_METHOD, multiplexer.register_external)
    except (AttributeError, TypeError) as exc:
        logger.warning("Failed to install %s multiplexer: %s", _REGISTER_METHOD, exc)
        return None

    try:
        multiplexer.prime()
    except Exception as exc:
        logger.warning("Failed to prime %s multiplexer: %s", _REGISTER_METHOD, exc)
        _rollback(host, original, had_own_attr)
        return None

    try:
        setattr(host, MULTIPLEXER_ATTR, multiplexer)
    except (AttributeError, TypeError):
        logger.debug("Could not mark %r as multiplexed", host)

    return multiplexer


__all__ = [
    "MULTIPLEXER_ATTR",
    "ChangeCallbackMultiplexer",
    "install_callback_multiplexer",
]
