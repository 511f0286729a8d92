"""Query layer: compatibility, comparison periods, query specs and execution."""

from metric_explorer.query.comparison import (
    COMPARISON_LABELS,
    comparison_label,
    fallback_comparison_mode,
    resolve_comparison_range,
    valid_comparison_modes,
)
from metric_explorer.query.compatibility import CompatibilityResolver
from metric_explorer.query.executor import (
    Column,
    ColumnKind,
    QueryExecutor,
    QueryResult,
)
from metric_explorer.query.spec import QuerySpec

__all__ = [
    "COMPARISON_LABELS",
    "Column",
    "ColumnKind",
    "CompatibilityResolver",
    "QueryExecutor",
    "QueryResult",
    "QuerySpec",
    "comparison_label",
    "fallback_comparison_mode",
    "resolve_comparison_range",
    "valid_comparison_modes",
]
