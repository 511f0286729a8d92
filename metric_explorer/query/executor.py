"""
QueryExecutor - evaluates a QuerySpec against generated rows.

Pipeline:
    validate → WHERE (date range, hours, filters) → bucket by granularity
    → GROUP BY dimension combination → aggregate → attach comparison
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from metric_explorer.domain.catalog import Catalog
from metric_explorer.domain.dimension import TimeGranularity
from metric_explorer.domain.filter import FilterSet
from metric_explorer.domain.metric import AggregationType, Metric
from metric_explorer.domain.period import DateRange
from metric_explorer.errors import InvalidQuery
from metric_explorer.generator.series import SeriesRow
from metric_explorer.query.calendar import week_start
from metric_explorer.query.comparison import comparison_label
from metric_explorer.query.compatibility import CompatibilityResolver
from metric_explorer.query.spec import QuerySpec

DEFAULT_MAX_SERIES = 20

BUCKET_KEY = "dt"
COMPARISON_BUCKET_KEY = "comparison_dt"

GRANULARITY_HEADERS: dict[TimeGranularity, str] = {
    TimeGranularity.HOUR: "小时",
    TimeGranularity.DAY: "日期",
    TimeGranularity.WEEK: "周",
    TimeGranularity.MONTH: "月份",
}

GRANULARITY_NAMES: dict[TimeGranularity, str] = {
    TimeGranularity.HOUR: "小时",
    TimeGranularity.DAY: "日",
    TimeGranularity.WEEK: "周",
    TimeGranularity.MONTH: "月",
}


class ColumnKind(str, Enum):
    DIMENSION = "dimension"
    METRIC = "metric"
    COMPARISON = "comparison"
    RATE = "rate"


class Column(BaseModel):
    """A result table column."""

    key: str
    header: str
    kind: ColumnKind
    description: str = ""

    model_config = {"frozen": True}


class QueryResult(BaseModel):
    """Aggregated rows plus what a table or chart needs to display them."""

    rows: list[dict[str, Any]] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    comparison_range: DateRange | None = None
    series_limited: bool = False
    info: str = ""


def bucket_label(granularity: TimeGranularity, day: date, hour: int) -> str:
    """Time bucket for a row. Hour buckets merge the same hour across days."""
    if granularity == TimeGranularity.HOUR:
        return f"{hour:02d}:00"
    if granularity == TimeGranularity.WEEK:
        return week_start(day).isoformat()
    if granularity == TimeGranularity.MONTH:
        return day.strftime("%Y-%m")
    return day.isoformat()


def change_rate(current: float, baseline: float) -> float:
    """Percent change from baseline, 0.0 when there is no baseline."""
    if baseline <= 0:
        return 0.0
    return round((current - baseline) / baseline * 100, 1)


def _numeric(value: Any) -> float:
    return float(value) if value is not None else 0.0


class QueryExecutor:
    """
    Runs query specs against an in-memory row set.

    Example:
        rows = generate_series(120, catalog=catalog)
        result = QueryExecutor(catalog, rows).execute(spec)
    """

    def __init__(
        self,
        catalog: Catalog,
        rows: Sequence[SeriesRow],
        max_series: int = DEFAULT_MAX_SERIES,
    ) -> None:
        self.catalog = catalog
        self.rows = rows
        self.max_series = max_series
        self.resolver = CompatibilityResolver(catalog)

    def execute(self, spec: QuerySpec) -> QueryResult:
        """
        Evaluate a query spec.

        Raises:
            NotFound: Unknown metric or dimension
            InvalidQuery: Incompatible dimensions or granularity, or a metric
                or dimension the row set does not carry
            InvalidFilter: A filter does not fit the catalog
            EmptyGranularityIntersection: Metrics share no granularity
        """
        self.resolver.validate(spec.metrics, spec.dimensions, spec.granularity)
        FilterSet(self.catalog, spec.filters)
        metrics = [self.catalog.get_metric(m) for m in spec.metrics]
        self._require_columns(spec, metrics)

        primary = self._select(spec, spec.date_range)
        comparison_range = spec.comparison_range
        baseline = self._select(spec, comparison_range) if comparison_range else []

        combos = self._combinations(primary, spec.group_by)
        series_limited = len(combos) > self.max_series
        combos = combos[: self.max_series]

        grouped = self._group(primary, spec)
        grouped_baseline = self._group(baseline, spec)
        pairing = self._pair_buckets(
            sorted(grouped), sorted(grouped_baseline), spec.granularity
        )

        result_rows = []
        for bucket in sorted(grouped):
            baseline_bucket = pairing.get(bucket)
            for combo in combos:
                row: dict[str, Any] = {BUCKET_KEY: bucket}
                if comparison_range is not None:
                    row[COMPARISON_BUCKET_KEY] = baseline_bucket or ""
                row.update(zip(spec.group_by, combo))

                current_rows = grouped[bucket].get(combo, [])
                baseline_rows = (
                    grouped_baseline[baseline_bucket].get(combo, [])
                    if baseline_bucket
                    else []
                )
                for metric in metrics:
                    value = self._aggregate(metric, current_rows)
                    row[metric.id] = value
                    if comparison_range is not None:
                        base = self._aggregate(metric, baseline_rows)
                        row[f"{metric.id}_comp"] = base
                        row[f"{metric.id}_rate"] = change_rate(value, base)
                result_rows.append(row)

        return QueryResult(
            rows=result_rows,
            columns=self._columns(spec, metrics),
            comparison_range=comparison_range,
            series_limited=series_limited,
            info=self._describe(spec, metrics),
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _require_columns(self, spec: QuerySpec, metrics: list[Metric]) -> None:
        """Every selected metric and dimension must exist in the rows."""
        if not self.rows:
            return
        sample = self.rows[0]

        needed: list[str] = []
        for metric in metrics:
            if metric.is_ratio:
                needed.extend((metric.numerator, metric.denominator))
            else:
                needed.append(metric.id)
        missing = [m for m in dict.fromkeys(needed) if m not in sample.values]

        dims = dict.fromkeys([*spec.group_by, *(f.dim_id for f in spec.filters)])
        missing.extend(d for d in dims if d not in sample.dimensions)
        if missing:
            raise InvalidQuery(f"No data for: {', '.join(missing)}")

    def _select(self, spec: QuerySpec, date_range: DateRange) -> list[SeriesRow]:
        return [r for r in self.rows if r.dt in date_range and spec.matches(r)]

    def _combinations(
        self, rows: Sequence[SeriesRow], dims: Sequence[str]
    ) -> list[tuple[str, ...]]:
        """Cartesian product of the values present, in first-seen order."""
        if not dims:
            return [()]
        value_sets = [list(dict.fromkeys(r[d] for r in rows)) for d in dims]
        return list(itertools.product(*value_sets))

    def _group(
        self, rows: Sequence[SeriesRow], spec: QuerySpec
    ) -> dict[str, dict[tuple[str, ...], list[SeriesRow]]]:
        grouped: dict[str, dict[tuple[str, ...], list[SeriesRow]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for r in rows:
            bucket = bucket_label(spec.granularity, r.dt, r.hour)
            combo = tuple(r[d] for d in spec.group_by)
            grouped[bucket][combo].append(r)
        return grouped

    @staticmethod
    def _pair_buckets(
        primary: list[str], baseline: list[str], granularity: TimeGranularity
    ) -> dict[str, str]:
        """
        Pair primary buckets with baseline buckets.

        Hour buckets pair by label; other granularities pair by position.
        """
        if granularity == TimeGranularity.HOUR:
            present = set(baseline)
            return {b: b for b in primary if b in present}
        return dict(zip(primary, baseline))

    def _aggregate(self, metric: Metric, rows: Sequence[SeriesRow]) -> float:
        if metric.is_ratio:
            numerator = sum(_numeric(r[metric.numerator]) for r in rows)
            denominator = sum(_numeric(r[metric.denominator]) for r in rows)
            if denominator <= 0:
                return 0.0
            return round(numerator / denominator * 100, 1)

        values = [_numeric(r[metric.id]) for r in rows]
        reducer = _REDUCERS[metric.aggregation]
        return reducer(values)

    # -------------------------------------------------------------------------
    # Presentation metadata
    # -------------------------------------------------------------------------

    def _columns(self, spec: QuerySpec, metrics: list[Metric]) -> list[Column]:
        columns = [
            Column(
                key=BUCKET_KEY,
                header=GRANULARITY_HEADERS[spec.granularity],
                kind=ColumnKind.DIMENSION,
            )
        ]
        for dim_id in spec.group_by:
            dim = self.catalog.get_dimension(dim_id)
            columns.append(
                Column(key=dim_id, header=dim.name, kind=ColumnKind.DIMENSION)
            )

        for metric in metrics:
            columns.append(
                Column(
                    key=metric.id,
                    header=metric.name,
                    kind=ColumnKind.METRIC,
                    description=metric.description,
                )
            )
            if spec.comparison is not None:
                label = comparison_label(spec.comparison)
                columns.append(
                    Column(
                        key=f"{metric.id}_comp",
                        header=f"{label}数值",
                        kind=ColumnKind.COMPARISON,
                    )
                )
                columns.append(
                    Column(key=f"{metric.id}_rate", header=label, kind=ColumnKind.RATE)
                )
        return columns

    def _describe(self, spec: QuerySpec, metrics: list[Metric]) -> str:
        """One-line summary like '2024-03-01 ~ 2024-03-07 | 按日统计 | ...'."""
        dims = " + ".join(self.catalog.get_dimension(d).name for d in spec.dimensions)
        parts = [
            str(spec.date_range),
            f"按{GRANULARITY_NAMES[spec.granularity]}统计",
            "指标: " + "、".join(m.name for m in metrics),
            f"维度: {dims or '无'}",
        ]
        if spec.filters:
            parts.append(f"筛选: {len(spec.filters)}个条件")
        if spec.hour_filter.enabled:
            parts.append(f"小时: {spec.hour_filter.describe()}")
        if spec.comparison_range is not None:
            parts.append(
                f"{comparison_label(spec.comparison)}: {spec.comparison_range}"
            )
        return " | ".join(parts)


def _sum(values: list[float]) -> float:
    return round(sum(values), 1)


def _mean(values: list[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


_REDUCERS: dict[AggregationType, Callable[[list[float]], float]] = {
    AggregationType.SUM: _sum,
    AggregationType.COUNT_DISTINCT: _sum,
    AggregationType.AVG: _mean,
    AggregationType.CALC: _mean,
}
