"""
Compatibility resolution between selected metrics, dimensions and granularities.

The resolver only reports compatibility; dropping a dimension that became
disabled is up to the caller (see QuerySpec.with_metrics).
"""

from __future__ import annotations

from collections.abc import Iterable

from metric_explorer.domain.catalog import Catalog
from metric_explorer.domain.dimension import DATE_DIMENSION, TimeGranularity
from metric_explorer.domain.metric import Metric
from metric_explorer.errors import EmptyGranularityIntersection, InvalidQuery

_GRANULARITY_ORDER = list(TimeGranularity)


class CompatibilityResolver:
    """Pure compatibility queries over a catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def compatible_dimensions(self, metric_ids: Iterable[str]) -> frozenset[str]:
        """
        Dimensions every selected metric can be sliced by.

        Always contains the date dimension. With no metrics selected, every
        catalog dimension is compatible.
        """
        metrics = self._metrics(metric_ids)
        if not metrics:
            return frozenset(d.id for d in self.catalog.dimensions)

        dims = frozenset.intersection(*(m.compatible_dims for m in metrics))
        return dims | {DATE_DIMENSION}

    def compatible_granularities(
        self, metric_ids: Iterable[str]
    ) -> list[TimeGranularity]:
        """
        Granularities shared by every selected metric, finest first.

        Raises:
            EmptyGranularityIntersection: The metrics share no granularity,
                which makes the combination unselectable
        """
        metrics = self._metrics(metric_ids)
        if not metrics:
            return list(_GRANULARITY_ORDER)

        common = frozenset.intersection(*(m.compatible_granularities for m in metrics))
        if not common:
            raise EmptyGranularityIntersection(m.id for m in metrics)
        return [g for g in _GRANULARITY_ORDER if g in common]

    def is_dimension_disabled(self, dim_id: str, metric_ids: Iterable[str]) -> bool:
        return dim_id not in self.compatible_dimensions(metric_ids)

    def incompatible_reason(
        self, dim_id: str, metric_ids: Iterable[str]
    ) -> str | None:
        """
        Explain which selected metrics exclude a dimension.

        Returns:
            A message naming the excluding metrics in catalog order, or None
            when the dimension is compatible
        """
        self.catalog.get_dimension(dim_id)
        excluding = [m for m in self._metrics(metric_ids) if not m.supports(dim_id)]
        if not excluding:
            return None

        names = "、".join(f"{m.name}({m.id})" for m in excluding)
        return f"Not supported by: {names}"

    def compatible_metrics(self, dim_ids: Iterable[str]) -> list[Metric]:
        """Metrics that can be sliced by every selected dimension."""
        wanted = set(dim_ids)
        for dim_id in wanted:
            self.catalog.get_dimension(dim_id)
        return [m for m in self.catalog.metrics if wanted <= m.compatible_dims]

    def validate(
        self,
        metric_ids: Iterable[str],
        dim_ids: Iterable[str],
        granularity: TimeGranularity | str,
    ) -> None:
        """
        Check a metric/dimension/granularity selection.

        Raises:
            NotFound: Unknown metric or dimension id
            InvalidQuery: No metrics, incompatible dimension or granularity
            EmptyGranularityIntersection: Metrics share no granularity
        """
        metric_ids = list(metric_ids)
        if not metric_ids:
            raise InvalidQuery("Select at least one metric")

        allowed = self.compatible_dimensions(metric_ids)
        for dim_id in dim_ids:
            self.catalog.get_dimension(dim_id)
            if dim_id not in allowed:
                raise InvalidQuery(
                    f"Dimension '{dim_id}' is disabled. "
                    f"{self.incompatible_reason(dim_id, metric_ids)}"
                )

        granularity = TimeGranularity(granularity)
        if granularity not in self.compatible_granularities(metric_ids):
            raise InvalidQuery(
                f"Granularity '{granularity.value}' is not supported by the "
                "selected metrics"
            )

    def _metrics(self, metric_ids: Iterable[str]) -> list[Metric]:
        """Resolve ids to metrics in catalog order."""
        wanted = set(metric_ids)
        for metric_id in wanted:
            self.catalog.get_metric(metric_id)
        return [m for m in self.catalog.metrics if m.id in wanted]
