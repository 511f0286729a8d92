"""Domain layer - query model primitives.

This layer contains presentation-agnostic concepts:
- Metrics, dimensions and the catalog that registers them
- Filters, hour filters, date ranges and comparison modes

Rendering (charts, tables, pickers) belongs to whatever view consumes these.
"""

from metric_explorer.domain.catalog import (
    Catalog,
    CategoryNode,
    DatePreset,
    LabelGroup,
    LabelOption,
)
from metric_explorer.domain.dimension import DATE_DIMENSION, Dimension, TimeGranularity
from metric_explorer.domain.filter import (
    Filter,
    FilterOperator,
    FilterSet,
    HourFilter,
    HourFilterMode,
    HourRange,
    filters_from_mapping,
)
from metric_explorer.domain.metric import (
    AggregationType,
    LabelColor,
    Metric,
    MetricLabel,
    MetricType,
)
from metric_explorer.domain.period import ComparisonMode, DateRange

__all__ = [
    # Catalog
    "Catalog",
    "CategoryNode",
    "DatePreset",
    "LabelGroup",
    "LabelOption",
    # Dimension
    "DATE_DIMENSION",
    "Dimension",
    "TimeGranularity",
    # Filter
    "Filter",
    "FilterOperator",
    "FilterSet",
    "HourFilter",
    "HourFilterMode",
    "HourRange",
    "filters_from_mapping",
    # Metric
    "AggregationType",
    "LabelColor",
    "Metric",
    "MetricLabel",
    "MetricType",
    # Period
    "ComparisonMode",
    "DateRange",
]
