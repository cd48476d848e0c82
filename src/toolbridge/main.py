from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.error_middleware import format_error, format_for_cli
from .core.result import SchemaCompileError
from .schema import CompiledValidator, SchemaCompiler, schema_fingerprint

app = typer.Typer(help="toolbridge: schema checks and configuration for tool registries.")


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a toolbridge config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    app_logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=app_logger)

    if meta.error:
        console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {meta.path}:\n{meta.error}\n\n"
                f"[yellow]Using default settings.[/yellow]",
                border_style="red",
            )
        )
    else:
        app_logger.debug(
            "Loaded configuration from %s (env overrides: %s)",
            meta.path,
            sorted(meta.env_overrides),
        )


def _read_json(source: str, *, label: str) -> Any:
    text = source
    if source.startswith("@"):
        path = Path(source[1:]).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise typer.BadParameter(f"Cannot read {path}: {exc}", param_hint=label) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON: {exc}", param_hint=label) from exc


def _report_error(exc: BaseException) -> None:
    for line in format_for_cli(format_error(exc)):
        console.print(line)


def _compile_file(path: Path) -> tuple[Any, CompiledValidator]:
    schema = _read_json(f"@{path}", label="SCHEMA_PATH")
    return schema, SchemaCompiler().compile(schema, strict=True)


@app.command("check-schema")
def check_schema(
    path: Path = typer.Argument(..., help="Schema file (JSON)."),
) -> None:
    """Compile a schema strictly and print its fingerprint."""
    try:
        schema, _ = _compile_file(path)
    except SchemaCompileError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from exc

    console.print(f"[green]OK[/green] {path}")
    console.print(f"fingerprint: {schema_fingerprint(schema)}", markup=False)


@app.command("validate")
def validate(
    schema_path: Path = typer.Argument(..., help="Schema file (JSON)."),
    data: str = typer.Argument(..., help="JSON value to validate, or @file."),
) -> None:
    """Validate a JSON value against a schema and list every issue."""
    try:
        _, validator = _compile_file(schema_path)
    except SchemaCompileError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from exc

    value = _read_json(data, label="DATA")
    issues = validator(value)

    if not issues:
        console.print("[green]Valid[/green]")
        return

    table = Table(title=f"{len(issues)} issue(s)", box=box.SIMPLE, expand=True)
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Message", style="white")
    for issue in issues:
        table.add_row(issue.pointer, issue.message)

    console.print(table)
    raise typer.Exit(code=1)


@app.command("show-config")
def show_config(ctx: typer.Context) -> None:
    """Show the active configuration and where it came from."""
    state: AppState = ctx.obj
    config = state.config
    meta = state.config_meta

    table = Table(title="Config", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in config.model_dump().items():
        table.add_row(key, str(value))

    console.print(table)

    meta_lines = [
        f"Path: {meta.path}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]

    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))

    console.print(Panel("\n".join(meta_lines), title="Config source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the toolbridge version."""
    console.print(__version__)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
