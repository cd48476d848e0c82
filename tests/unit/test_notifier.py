from __future__ import annotations

import asyncio
import logging

import pytest

from toolbridge.capabilities import ChangeNotifier


@pytest.mark.asyncio
async def test_schedules_coalesce_within_a_turn() -> None:
    notifier = ChangeNotifier()
    calls: list[int] = []
    notifier.subscribe(lambda: calls.append(1))

    for _ in range(10):
        notifier.schedule()
    assert notifier.pending
    assert calls == []

    await asyncio.sleep(0)
    assert calls == [1]
    assert notifier.emitted == 1
    assert not notifier.pending


@pytest.mark.asyncio
async def test_later_turn_emits_again() -> None:
    notifier = ChangeNotifier()
    notifier.schedule()
    await asyncio.sleep(0)
    notifier.schedule()
    await asyncio.sleep(0)
    assert notifier.emitted == 2


def test_delivery_without_loop_is_immediate() -> None:
    notifier = ChangeNotifier()
    calls: list[int] = []
    notifier.subscribe(lambda: calls.append(1))
    notifier.schedule()
    notifier.schedule()
    assert calls == [1, 1]


def test_unsubscribe_and_failing_listener(caplog: pytest.LogCaptureFixture) -> None:
    notifier = ChangeNotifier("demo")
    calls: list[str] = []

    def broken() -> None:
        raise RuntimeError("listener bug")

    notifier.subscribe(broken)
    unsubscribe = notifier.subscribe(lambda: calls.append("second"))

    with caplog.at_level(logging.WARNING, logger="toolbridge"):
        notifier.schedule()
    assert calls == ["second"]
    assert "demo change listener failed" in caplog.text

    unsubscribe()
    unsubscribe()
    notifier.schedule()
    assert calls == ["second"]
