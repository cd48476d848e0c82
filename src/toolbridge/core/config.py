"""Configuration for toolbridge.

Sources, highest priority first:
    1. ``TOOLBRIDGE_*`` environment variables (``__`` separates nested keys,
       e.g. ``TOOLBRIDGE_BRIDGE__TRACE_TOOL_FLOW=1``)
    2. A TOML or JSON file (``--config``, ``$TOOLBRIDGE_CONFIG`` or
       ``~/.toolbridge.toml``)
    3. Field defaults

``load_config`` never raises for a bad file. It falls back to defaults and
reports the problem in :class:`ConfigLoadResult` so the CLI can show a
safe-mode banner.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from toolbridge.core.result import ConfigurationError

CONFIG_ENV_VAR = "TOOLBRIDGE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.toolbridge.toml")

ENV_PREFIX = "TOOLBRIDGE_"
ENV_NESTED_DELIMITER = "__"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------


class SchemaConfig(BaseModel):
    """Schema compilation behavior for locally registered tools."""

    strict: bool = Field(
        default=True,
        description="Reject tool registrations whose input schema fails to compile.",
    )


class BridgeConfig(BaseModel):
    """Reconciliation bridge behavior."""

    strict_schemas: bool = Field(
        default=False,
        description=(
            "Compile mirrored host schemas strictly. When false, a bad schema "
            "degrades to an accept-everything validator."
        ),
    )
    trace_tool_flow: bool = Field(
        default=False,
        description="Emit per-stage sync trace lines at INFO instead of DEBUG.",
    )


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter=ENV_NESTED_DELIMITER,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Log level for toolbridge output.")
    schemas: SchemaConfig = Field(default_factory=SchemaConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment must beat them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


@dataclass
class ConfigLoadResult:
    """Where the active configuration came from."""

    path: Path
    file_loaded: bool
    env_overrides: set[str] = field(default_factory=set)
    error: str | None = None


# -----------------------------------------------------------------------------
# Loading
# -----------------------------------------------------------------------------


def config_path_from(explicit: Path | None, environ: Mapping[str, str]) -> Path:
    if explicit is not None:
        return explicit.expanduser()
    from_env = environ.get(CONFIG_ENV_VAR)
    return Path(from_env or DEFAULT_CONFIG_PATH).expanduser()


def parse_config_file(path: Path) -> dict[str, Any]:
    """Parse ``path`` as JSON (``.json``) or TOML. A missing file is empty.

    Raises:
        ConfigurationError: On a syntax error or a non-mapping document.
    """
    if not path.is_file():
        return {}

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            document = json.loads(text)
        else:
            document = tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ConfigurationError(f"Config root in {path} must be a mapping.")
    return document


def env_override_keys(environ: Mapping[str, str]) -> set[str]:
    """Dotted field names that ``environ`` overrides, e.g. ``bridge.trace_tool_flow``."""
    keys: set[str] = set()
    for name, info in AppConfig.model_fields.items():
        annotation = info.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            for sub_name in annotation.model_fields:
                var = f"{ENV_PREFIX}{name}{ENV_NESTED_DELIMITER}{sub_name}".upper()
                if var in environ:
                    keys.add(f"{name}.{sub_name}")
        elif f"{ENV_PREFIX}{name}".upper() in environ:
            keys.add(name)
    return keys


@contextmanager
def _environment(extra: Mapping[str, str] | None) -> Iterator[None]:
    if not extra:
        yield
        return
    saved = {key: os.environ.get(key) for key in extra}
    os.environ.update(extra)
    try:
        yield
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """Load configuration, falling back to defaults on any file problem.

    Args:
        config_path: Explicit file path; otherwise ``$TOOLBRIDGE_CONFIG`` or
            ``~/.toolbridge.toml``.
        env: Extra environment variables layered over ``os.environ``.
    """
    environ: Mapping[str, str] = {**os.environ, **(env or {})}
    result = ConfigLoadResult(
        path=config_path_from(config_path, environ),
        file_loaded=False,
        env_overrides=env_override_keys(environ),
    )

    file_values: dict[str, Any] = {}
    try:
        file_values = parse_config_file(result.path)
        result.file_loaded = result.path.is_file()
    except ConfigurationError as exc:
        result.error = str(exc)

    with _environment(env):
        try:
            config = AppConfig(**file_values)
        except ValidationError as exc:
            result.error = str(exc)
            config = AppConfig.model_construct()

    return config, result


__all__ = [
    "CONFIG_ENV_VAR",
    "AppConfig",
    "BridgeConfig",
    "ConfigLoadResult",
    "SchemaConfig",
    "env_override_keys",
    "load_config",
    "parse_config_file",
]
