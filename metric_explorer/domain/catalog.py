"""
Catalog - the immutable registry of metrics and dimensions.

The catalog is a small embedded schema. It is never mutated in place:
administrative edits (adding a metric, renaming a dimension group, ...)
return a new Catalog snapshot and leave the receiver untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from metric_explorer.domain.dimension import DATE_DIMENSION, Dimension
from metric_explorer.domain.metric import Metric
from metric_explorer.domain.period import DateRange
from metric_explorer.errors import CatalogError, NotFound

# Bucket for metrics without a sub-group in the category tree
OTHER_SUB_GROUP = "其他"


class LabelOption(BaseModel):
    """One selectable option within a label group."""

    id: str
    name: str
    color: str = ""

    model_config = {"frozen": True}


class LabelGroup(BaseModel):
    """A family of label options used to filter metrics (priority, layer, ...)."""

    id: str
    name: str
    options: tuple[LabelOption, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}


class DatePreset(BaseModel):
    """A named relative date range, e.g. 'last7'."""

    id: str
    name: str
    days: int = Field(..., gt=0)

    def to_range(self, today: date | None = None) -> DateRange:
        return DateRange.last_days(self.days, today=today)

    model_config = {"frozen": True}


class CategoryNode(BaseModel):
    """A node of the metric category tree."""

    id: str
    name: str
    type: str  # category, subcategory
    count: int
    full_path: str
    children: tuple[CategoryNode, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}


class Catalog(BaseModel):
    """
    Metrics and dimensions keyed by id, in declaration order.

    Invariants (checked on construction):
    - metric and dimension ids are unique
    - the date dimension exists and is not enumerable
    - every metric only references known dimensions
    - every dimension belongs to a declared dimension group
    """

    metrics: tuple[Metric, ...] = Field(default_factory=tuple)
    dimensions: tuple[Dimension, ...] = Field(default_factory=tuple)
    dimension_groups: tuple[str, ...] = Field(default_factory=tuple)
    label_groups: tuple[LabelGroup, ...] = Field(default_factory=tuple)
    date_presets: tuple[DatePreset, ...] = Field(default_factory=tuple)

    _metric_index: dict[str, Metric] = PrivateAttr(default_factory=dict)
    _dimension_index: dict[str, Dimension] = PrivateAttr(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def default_dimension_groups(cls, data: object) -> object:
        """Derive dimension groups from dimensions when not declared."""
        if isinstance(data, dict) and not data.get("dimension_groups"):
            groups: dict[str, None] = {}
            for dim in data.get("dimensions", ()):
                group = dim.group if isinstance(dim, Dimension) else dim["group"]
                groups[group] = None
            data = {**data, "dimension_groups": tuple(groups)}
        return data

    @model_validator(mode="after")
    def validate_consistency(self) -> Catalog:
        metric_ids = [m.id for m in self.metrics]
        dim_ids = [d.id for d in self.dimensions]
        for kind, ids in (("metric", metric_ids), ("dimension", dim_ids)):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {kind} ids: {', '.join(duplicates)}")

        if DATE_DIMENSION not in dim_ids:
            raise ValueError(f"Catalog must define the '{DATE_DIMENSION}' dimension")

        known = set(dim_ids)
        for metric in self.metrics:
            unknown = sorted(metric.compatible_dims - known)
            if unknown:
                raise ValueError(
                    f"Metric '{metric.id}' references unknown dimensions: "
                    f"{', '.join(unknown)}"
                )

        groups = set(self.dimension_groups)
        for dim in self.dimensions:
            if dim.group not in groups:
                raise ValueError(
                    f"Dimension '{dim.id}' uses undeclared group '{dim.group}'"
                )
        return self

    def model_post_init(self, __context: object) -> None:
        self._metric_index = {m.id: m for m in self.metrics}
        self._dimension_index = {d.id: d for d in self.dimensions}

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_metric(self, metric_id: str) -> Metric:
        try:
            return self._metric_index[metric_id]
        except KeyError:
            raise NotFound("metric", metric_id) from None

    def get_dimension(self, dim_id: str) -> Dimension:
        try:
            return self._dimension_index[dim_id]
        except KeyError:
            raise NotFound("dimension", dim_id) from None

    def get_preset(self, preset_id: str) -> DatePreset:
        for preset in self.date_presets:
            if preset.id == preset_id:
                return preset
        raise NotFound("date preset", preset_id)

    def has_metric(self, metric_id: str) -> bool:
        return metric_id in self._metric_index

    def list_metrics(self) -> list[Metric]:
        return list(self.metrics)

    def list_dimensions(self) -> dict[str, list[Dimension]]:
        """Dimensions grouped by group, in dimension-group order."""
        grouped: dict[str, list[Dimension]] = {g: [] for g in self.dimension_groups}
        for dim in self.dimensions:
            grouped[dim.group].append(dim)
        return grouped

    def enum_values(self, dim_id: str) -> tuple[str, ...]:
        return self.get_dimension(dim_id).enum_values

    @property
    def metric_groups(self) -> list[str]:
        return list(dict.fromkeys(m.group for m in self.metrics))

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def search_metrics(
        self,
        text: str | None = None,
        group: str | None = None,
        sub_group: str | None = None,
        label_filters: Mapping[str, Iterable[str]] | None = None,
        starred_only: bool = False,
    ) -> list[Metric]:
        """
        Find metrics for the metric picker.

        Args:
            text: Case-insensitive substring of id, name or description
            group: Restrict to a metric group
            sub_group: Restrict to a sub-group ('其他' selects metrics without one)
            label_filters: {label_group_id: [option ids]}; options are OR-ed
                within a group and groups are AND-ed. An option matches a
                metric tag, its group or its update frequency.
            starred_only: Only starred metrics

        Returns:
            Matching metrics in catalog order
        """
        result = list(self.metrics)

        if group:
            result = [m for m in result if m.group == group]
            if sub_group:
                result = [
                    m
                    for m in result
                    if m.sub_group == sub_group
                    or (sub_group == OTHER_SUB_GROUP and not m.sub_group)
                ]

        if text:
            needle = text.casefold()
            result = [
                m
                for m in result
                if needle in m.id.casefold()
                or needle in m.name.casefold()
                or needle in m.description.casefold()
            ]

        for options in (label_filters or {}).values():
            selected = set(options)
            if selected:
                result = [m for m in result if self._matches_label(m, selected)]

        if starred_only:
            result = [m for m in result if m.is_starred]

        return result

    @staticmethod
    def _matches_label(metric: Metric, options: set[str]) -> bool:
        return bool(
            options & metric.tags
            or metric.group in options
            or metric.update_frequency in options
        )

    def metric_tree(self) -> list[CategoryNode]:
        """Group → sub-group category tree with metric counts."""
        tree: dict[str, dict[str, int]] = {}
        for metric in self.metrics:
            subs = tree.setdefault(metric.group, {})
            sub = metric.sub_group or OTHER_SUB_GROUP
            subs[sub] = subs.get(sub, 0) + 1

        nodes = []
        for group, subs in tree.items():
            children = tuple(
                CategoryNode(
                    id=f"{group}|{sub}",
                    name=sub,
                    type="subcategory",
                    count=count,
                    full_path=f"{group}|{sub}",
                )
                for sub, count in subs.items()
            )
            nodes.append(
                CategoryNode(
                    id=group,
                    name=group,
                    type="category",
                    count=sum(subs.values()),
                    full_path=group,
                    children=children,
                )
            )
        return nodes

    # -------------------------------------------------------------------------
    # Administration (each returns a new snapshot)
    # -------------------------------------------------------------------------

    def with_metric(self, metric: Metric) -> Catalog:
        """Add a metric, or replace the metric with the same id in place."""
        if self.has_metric(metric.id):
            metrics = tuple(metric if m.id == metric.id else m for m in self.metrics)
        else:
            metrics = (*self.metrics, metric)
        return self._snapshot(metrics=metrics)

    def without_metric(self, metric_id: str) -> Catalog:
        self.get_metric(metric_id)
        return self._snapshot(
            metrics=tuple(m for m in self.metrics if m.id != metric_id)
        )

    def with_dimension(self, dimension: Dimension) -> Catalog:
        """Add a dimension, or replace the dimension with the same id."""
        if dimension.group not in self.dimension_groups:
            raise CatalogError(f"Unknown dimension group '{dimension.group}'")
        if any(d.id == dimension.id for d in self.dimensions):
            dimensions = tuple(
                dimension if d.id == dimension.id else d for d in self.dimensions
            )
        else:
            dimensions = (*self.dimensions, dimension)
        return self._snapshot(dimensions=dimensions)

    def without_dimension(self, dim_id: str) -> Catalog:
        self.get_dimension(dim_id)
        if dim_id == DATE_DIMENSION:
            raise CatalogError(f"The '{DATE_DIMENSION}' dimension cannot be removed")
        users = [m.id for m in self.metrics if dim_id in m.compatible_dims]
        if users:
            raise CatalogError(
                f"Dimension '{dim_id}' is still used by: {', '.join(users)}"
            )
        return self._snapshot(
            dimensions=tuple(d for d in self.dimensions if d.id != dim_id)
        )

    def with_dimension_group(self, name: str) -> Catalog:
        name = name.strip()
        if not name:
            raise CatalogError("Dimension group name must not be blank")
        if name in self.dimension_groups:
            raise CatalogError(f"Dimension group '{name}' already exists")
        return self._snapshot(dimension_groups=(*self.dimension_groups, name))

    def rename_dimension_group(self, old: str, new: str) -> Catalog:
        """Rename a group and move its dimensions along with it."""
        new = new.strip()
        if old not in self.dimension_groups:
            raise NotFound("dimension group", old)
        if not new:
            raise CatalogError("Dimension group name must not be blank")
        if new != old and new in self.dimension_groups:
            raise CatalogError(f"Dimension group '{new}' already exists")

        return self._snapshot(
            dimension_groups=tuple(new if g == old else g for g in self.dimension_groups),
            dimensions=tuple(
                d.model_copy(update={"group": new}) if d.group == old else d
                for d in self.dimensions
            ),
        )

    def without_dimension_group(self, name: str) -> Catalog:
        if name not in self.dimension_groups:
            raise NotFound("dimension group", name)
        in_use = [d.id for d in self.dimensions if d.group == name]
        if in_use:
            raise CatalogError(
                f"Dimension group '{name}' still has {len(in_use)} dimensions"
            )
        return self._snapshot(
            dimension_groups=tuple(g for g in self.dimension_groups if g != name)
        )

    def _snapshot(self, **changes: object) -> Catalog:
        """Build a validated copy with some fields replaced."""
        data = {
            "metrics": self.metrics,
            "dimensions": self.dimensions,
            "dimension_groups": self.dimension_groups,
            "label_groups": self.label_groups,
            "date_presets": self.date_presets,
        }
        data.update(changes)
        try:
            return Catalog(**data)
        except ValueError as e:
            raise CatalogError(str(e)) from e

    model_config = {"frozen": True}
