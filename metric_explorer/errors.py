"""Metric explorer exceptions."""

from __future__ import annotations

from collections.abc import Iterable


class MetricExplorerError(Exception):
    """Base class for all query model errors."""


class NotFound(MetricExplorerError):
    """A catalog id was referenced that does not exist."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"Unknown {kind} '{item_id}'")
        self.kind = kind
        self.item_id = item_id


class InvalidRange(MetricExplorerError):
    """A date range is reversed or not made of calendar dates."""


class InvalidFilter(MetricExplorerError):
    """A filter targets a non-enumerable dimension or carries bad values."""


class InvalidQuery(MetricExplorerError):
    """A query spec violates catalog compatibility."""


class CatalogError(MetricExplorerError):
    """Inconsistent catalog data or a rejected administrative change."""


class EmptyGranularityIntersection(CatalogError):
    """Selected metrics share no time granularity.

    This is a catalog configuration defect, not an ordinary incompatibility:
    such a metric combination can never be queried.
    """

    def __init__(self, metric_ids: Iterable[str]) -> None:
        self.metric_ids = list(metric_ids)
        super().__init__(
            "Metrics have no common granularity: " + ", ".join(self.metric_ids)
        )
