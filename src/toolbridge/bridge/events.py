"""Minimal event-subscription surface for hosts that lack one."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from toolbridge.core.console import get_logger

logger = get_logger(__name__)

TOOLS_CHANGED = "toolschanged"


@dataclass(frozen=True, slots=True)
class Event:
    type: str


EventListener = Callable[[Event], object]


class EventTarget:
    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: Event | str) -> bool:
        if isinstance(event, str):
            event = Event(event)
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener(event)
            except Exception:
                logger.warning("Error in %r event listener", event.type, exc_info=True)
        return True


__all__ = ["TOOLS_CHANGED", "Event", "EventListener", "EventTarget"]
