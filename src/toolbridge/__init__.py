"""toolbridge - schema-validated tool registry and host reconciliation bridge.

This package lets a host application expose named, described tools with
declarative argument schemas, and keeps an internal mirror consistent with an
external host registry.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
