"""Coalesced change notifications.

Any number of :meth:`ChangeNotifier.schedule` calls made within one turn of
the event loop produce a single delivery to each listener on the next turn.
Without a running loop, delivery happens synchronously.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from toolbridge.core.console import get_logger

logger = get_logger(__name__)

ChangeListener = Callable[[], object]


class ChangeNotifier:
    def __init__(self, name: str = "tools") -> None:
        self.name = name
        self.emitted = 0
        self._listeners: list[ChangeListener] = []
        self._scheduled = False

    @property
    def pending(self) -> bool:
        return self._scheduled

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Add ``listener`` and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def schedule(self) -> None:
        if self._scheduled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver()
            return

        self._scheduled = True
        loop.call_soon(self._flush)

    def _flush(self) -> None:
        self._scheduled = False
        self._deliver()

    def _deliver(self) -> None:
        self.emitted += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.warning("%s change listener failed", self.name, exc_info=True)


__all__ = ["ChangeListener", "ChangeNotifier"]
