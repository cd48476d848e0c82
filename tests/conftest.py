from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from toolbridge.capabilities import CapabilityRegistry, InvocationContext  # noqa: E402
from toolbridge.schema import SchemaCompiler  # noqa: E402


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("TOOLBRIDGE_CONFIG", str(cfg_path))
    for key in (
        "TOOLBRIDGE_LOG_LEVEL",
        "TOOLBRIDGE_SCHEMAS__STRICT",
        "TOOLBRIDGE_BRIDGE__STRICT_SCHEMAS",
        "TOOLBRIDGE_BRIDGE__TRACE_TOOL_FLOW",
    ):
        monkeypatch.delenv(key, raising=False)
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200)
    import toolbridge.core.console as core_console
    import toolbridge.main as tb_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(tb_main, "console", test_console)
    return test_console


@pytest.fixture
def compiler() -> SchemaCompiler:
    return SchemaCompiler()


@pytest.fixture
def registry(compiler: SchemaCompiler) -> CapabilityRegistry:
    return CapabilityRegistry(compiler=compiler)


def echo_handler(args: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
    return {"echo": args}


def _make_tool(name: str, /, **overrides: Any) -> dict[str, Any]:
    tool: dict[str, Any] = {
        "name": name,
        "description": f"{name} tool",
        "handler": echo_handler,
    }
    tool.update(overrides)
    return tool


async def _drain_callbacks(turns: int = 5) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def make_tool() -> Callable[..., dict[str, Any]]:
    """Factory for descriptor mappings with an echoing handler."""
    return _make_tool


@pytest.fixture
def drain() -> Callable[..., Awaitable[None]]:
    """Coroutine that lets ``call_soon`` callbacks from notifiers and syncs run."""
    return _drain_callbacks
