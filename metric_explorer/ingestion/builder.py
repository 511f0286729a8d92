"""CatalogBuilder - transforms catalog YAML into an immutable Catalog."""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Any

from metric_explorer.domain import (
    Catalog,
    DatePreset,
    Dimension,
    LabelGroup,
    Metric,
)
from metric_explorer.ingestion.loader import YamlLoader

DEFAULT_CATALOG_RESOURCE = "catalog.yml"


class CatalogBuilder:
    """
    Build a Catalog from YAML documents.

    Sections may be spread across documents; later documents append to the
    sections collected so far. Declaration order is kept.
    """

    def __init__(self) -> None:
        self._dimension_groups: list[str] = []
        self._dimensions: list[dict[str, Any]] = []
        self._metrics: list[dict[str, Any]] = []
        self._label_groups: list[dict[str, Any]] = []
        self._date_presets: list[dict[str, Any]] = []

    @classmethod
    def from_path(cls, path: str | Path) -> Catalog:
        """Load a catalog file or directory of catalog files."""
        builder = cls()
        for doc in YamlLoader(path).load_all():
            builder.add_document(doc)
        return builder.build()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Catalog:
        """Build a catalog from a single dict (for testing)."""
        builder = cls()
        builder.add_document(data)
        return builder.build()

    @classmethod
    def default(cls) -> Catalog:
        """The catalog shipped with the package."""
        resource = resources.files("metric_explorer.data") / DEFAULT_CATALOG_RESOURCE
        with resources.as_file(resource) as path:
            return cls.from_path(path)

    def add_document(self, doc: dict[str, Any]) -> None:
        """
        Collect catalog sections from a parsed document.

        Args:
            doc: Parsed YAML with any of dimension_groups, dimensions, metrics,
                label_groups and date_presets
        """
        for group in doc.get("dimension_groups", []):
            if group not in self._dimension_groups:
                self._dimension_groups.append(group)
        self._dimensions.extend(doc.get("dimensions", []))
        self._metrics.extend(doc.get("metrics", []))
        self._label_groups.extend(doc.get("label_groups", []))
        self._date_presets.extend(doc.get("date_presets", []))

    def build(self) -> Catalog:
        """
        Build the Catalog.

        Raises:
            pydantic.ValidationError: If an entry or the catalog as a whole
                is inconsistent
        """
        dimensions = [self._build_dimension(d) for d in self._dimensions]
        return Catalog(
            metrics=tuple(self._build_metric(m) for m in self._metrics),
            dimensions=tuple(dimensions),
            dimension_groups=tuple(self._dimension_groups),
            label_groups=tuple(LabelGroup.model_validate(g) for g in self._label_groups),
            date_presets=tuple(DatePreset.model_validate(p) for p in self._date_presets),
        )

    def _build_dimension(self, data: dict[str, Any]) -> Dimension:
        data = dict(data)
        # The date dimension is never enumerable, even when not stated
        if data.get("id") == "dt":
            data.setdefault("is_enumerable", False)
        return Dimension.model_validate(data)

    def _build_metric(self, data: dict[str, Any]) -> Metric:
        data = dict(data)
        data.setdefault(
            "metric_type", "calculated" if data.get("aggregation") == "CALC" else "atomic"
        )
        return Metric.model_validate(data)
