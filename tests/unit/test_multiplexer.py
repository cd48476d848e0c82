"""Tests for bridge/multiplexer.py."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest

from toolbridge.bridge import (
    ChangeCallbackMultiplexer,
    ReconciliationBridge,
    install_callback_multiplexer,
)
from toolbridge.bridge.multiplexer import MULTIPLEXER_ATTR


class SingleSlotHost:
    """Host whose change signal keeps only the most recent callback."""

    def __init__(self) -> None:
        self.callback: Callable[[], object] | None = None
        self.registrations = 0

    def register_tools_changed_callback(self, callback: Any) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        self.registrations += 1
        self.callback = callback

    def list_tools(self) -> list[dict[str, Any]]:
        return []

    def fire(self) -> None:
        assert self.callback is not None
        self.callback()


class RefusingHost(SingleSlotHost):
    def register_tools_changed_callback(self, callback: Any) -> None:
        raise RuntimeError("registration refused")


class SlottedHost:
    __slots__ = ("callback",)

    def __init__(self) -> None:
        self.callback: Callable[[], object] | None = None

    def register_tools_changed_callback(self, callback: Callable[[], object]) -> None:
        self.callback = callback

    def list_tools(self) -> list[dict[str, Any]]:
        return []

    def execute_tool(self, name: str, input_args_json: str) -> str:
        return "{}"


class TestInstall:
    def test_primes_composed_callback(self) -> None:
        host = SingleSlotHost()
        mux = install_callback_multiplexer(host)

        assert isinstance(mux, ChangeCallbackMultiplexer)
        assert host.callback == mux.composed
        assert getattr(host, MULTIPLEXER_ATTR) is mux

    def test_install_is_idempotent(self) -> None:
        host = SingleSlotHost()
        first = install_callback_multiplexer(host)
        assert install_callback_multiplexer(host) is first

    def test_host_without_signal(self) -> None:
        assert install_callback_multiplexer(object()) is None

    def test_prime_failure_rolls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        host = RefusingHost()
        with caplog.at_level(logging.WARNING, logger="toolbridge"):
            assert install_callback_multiplexer(host) is None

        assert "register_tools_changed_callback" not in vars(host)
        assert not hasattr(host, MULTIPLEXER_ATTR)
        assert "Failed to prime" in caplog.text

    def test_unpatchable_host_falls_back_to_direct_registration(self) -> None:
        host = SlottedHost()
        assert install_callback_multiplexer(host) is None

        bridge = ReconciliationBridge(host)
        assert bridge.multiplexer is None
        assert host.callback == bridge._on_host_change


class TestFanOut:
    def test_latest_external_wins_and_internal_always_runs(self) -> None:
        host = SingleSlotHost()
        mux = install_callback_multiplexer(host)
        assert mux is not None
        order: list[str] = []

        mux.add_internal(lambda: order.append("internal"))
        host.register_tools_changed_callback(lambda: order.append("first"))
        host.register_tools_changed_callback(lambda: order.append("second"))
        host.fire()

        assert order == ["internal", "second"]
        assert host.callback == mux.composed

    def test_failures_are_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        host = SingleSlotHost()
        mux = install_callback_multiplexer(host)
        assert mux is not None
        seen: list[str] = []

        def broken() -> None:
            raise RuntimeError("internal bug")

        mux.add_internal(broken)
        host.register_tools_changed_callback(lambda: seen.append("external"))
        with caplog.at_level(logging.WARNING, logger="toolbridge"):
            host.fire()

        assert seen == ["external"]
        assert "Error in internal tools-changed callback" in caplog.text

    def test_non_callable_is_delegated_to_host(self) -> None:
        host = SingleSlotHost()
        install_callback_multiplexer(host)
        with pytest.raises(TypeError, match="callback must be callable"):
            host.register_tools_changed_callback("nope")

    def test_internal_listener_bookkeeping(self) -> None:
        host = SingleSlotHost()
        mux = install_callback_multiplexer(host)
        assert mux is not None
        calls: list[int] = []

        def listener() -> None:
            calls.append(1)

        mux.add_internal(listener)
        mux.add_internal(listener)
        assert mux.internal_count == 1

        mux.remove_internal(listener)
        host.fire()
        assert calls == []

    def test_bridge_and_external_consumer_coexist(self) -> None:
        host = SingleSlotHost()
        bridge = ReconciliationBridge(host)
        external: list[int] = []

        host.register_tools_changed_callback(lambda: external.append(1))
        host.fire()

        assert external == [1]
        assert bridge.rebuild_count == 2
