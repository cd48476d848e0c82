"""Core shared infrastructure for toolbridge.

This package contains foundational utilities:
    - config: Application configuration management
    - console: Rich console output and logging
    - result: Result types and the error hierarchy
    - error_middleware: Error codes and severities for reporting surfaces
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
