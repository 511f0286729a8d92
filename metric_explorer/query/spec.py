"""QuerySpec - one user's query: metrics, slicing, filters, dates, comparison."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator

from metric_explorer.domain.dimension import DATE_DIMENSION, TimeGranularity
from metric_explorer.domain.filter import Filter, HourFilter
from metric_explorer.domain.period import ComparisonMode, DateRange
from metric_explorer.errors import InvalidQuery
from metric_explorer.query.comparison import (
    fallback_comparison_mode,
    resolve_comparison_range,
)
from metric_explorer.query.compatibility import CompatibilityResolver


def _check_metrics(metric_ids: tuple[str, ...]) -> tuple[str, ...]:
    if not metric_ids:
        raise ValueError("A query needs at least one metric")
    return tuple(dict.fromkeys(metric_ids))


def _check_filters(filters: tuple[Filter, ...]) -> tuple[Filter, ...]:
    dims = [f.dim_id for f in filters]
    duplicates = sorted({d for d in dims if dims.count(d) > 1})
    if duplicates:
        raise ValueError(f"More than one filter on: {', '.join(duplicates)}")
    return filters


class QuerySpec(BaseModel):
    """
    An immutable query specification.

    The comparison range is computed from `date_range` and `comparison` on
    access, so it can never go stale. Use the `with_*` methods to derive
    updated specs.
    """

    metrics: tuple[str, ...]
    dimensions: tuple[str, ...] = ()
    granularity: TimeGranularity = TimeGranularity.DAY
    date_range: DateRange
    filters: tuple[Filter, ...] = Field(default_factory=tuple)
    hour_filter: HourFilter = Field(default_factory=HourFilter)
    comparison: ComparisonMode | None = None

    @field_validator("metrics")
    @classmethod
    def validate_metrics(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_metrics(v)

    @field_validator("dimensions")
    @classmethod
    def dedupe_dimensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(v))

    @field_validator("filters")
    @classmethod
    def one_filter_per_dimension(cls, v: tuple[Filter, ...]) -> tuple[Filter, ...]:
        return _check_filters(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def comparison_range(self) -> DateRange | None:
        if self.comparison is None:
            return None
        return resolve_comparison_range(self.date_range, self.comparison)

    @property
    def group_by(self) -> tuple[str, ...]:
        """Categorical dimensions to group by (the date axis is the bucket)."""
        return tuple(d for d in self.dimensions if d != DATE_DIMENSION)

    def matches(self, row: Any) -> bool:
        """Hour filter and dimension filters, AND-ed."""
        return self.hour_filter.matches(row["hour"]) and all(
            f.matches(row) for f in self.filters
        )

    # -------------------------------------------------------------------------
    # Derived specs
    # -------------------------------------------------------------------------

    def with_metrics(
        self, metric_ids: Iterable[str], resolver: CompatibilityResolver
    ) -> QuerySpec:
        """Change the metric selection, dropping dimensions it disables."""
        metric_ids = tuple(metric_ids)
        if not metric_ids:
            raise InvalidQuery("Select at least one metric")
        allowed = resolver.compatible_dimensions(metric_ids)
        return self.model_copy(
            update={
                "metrics": _check_metrics(metric_ids),
                "dimensions": tuple(d for d in self.dimensions if d in allowed),
            }
        )

    def with_granularity(self, granularity: TimeGranularity | str) -> QuerySpec:
        """Change granularity, falling back to a comparison mode valid for it."""
        granularity = TimeGranularity(granularity)
        return self.model_copy(
            update={
                "granularity": granularity,
                "comparison": fallback_comparison_mode(self.comparison, granularity),
            }
        )

    def with_date_range(self, date_range: DateRange) -> QuerySpec:
        return self.model_copy(update={"date_range": date_range})

    def with_comparison(self, mode: ComparisonMode | str | None) -> QuerySpec:
        return self.model_copy(
            update={"comparison": None if mode is None else ComparisonMode(mode)}
        )

    def with_filters(self, filters: Iterable[Filter]) -> QuerySpec:
        return self.model_copy(
            update={"filters": _check_filters(tuple(filters))}
        )

    model_config = {"frozen": True}
