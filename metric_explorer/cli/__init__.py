"""CLI utilities for metric-explorer.

Rich-based formatting helpers plus the shared error reporting and loading
used by every command.
"""

from __future__ import annotations

from metric_explorer.cli.formatting import (
    format_error,
    format_success,
    format_warning,
)

__all__ = [
    "format_error",
    "format_success",
    "format_warning",
]
