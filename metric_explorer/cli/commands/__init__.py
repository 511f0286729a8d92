"""CLI commands for metric-explorer.

Commands are registered on the `mx` group in __main__.py.
"""

from __future__ import annotations

from metric_explorer.cli.commands.catalog import compat, dimensions, metrics
from metric_explorer.cli.commands.query import compare, generate, query
from metric_explorer.cli.commands.validate import validate

__all__ = [
    "compat",
    "compare",
    "dimensions",
    "generate",
    "metrics",
    "query",
    "validate",
]
