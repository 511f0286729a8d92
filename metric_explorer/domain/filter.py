"""Filter domain - dimension conditions and hour restrictions for a query."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from metric_explorer.errors import InvalidFilter, NotFound

if TYPE_CHECKING:
    from metric_explorer.domain.catalog import Catalog


class FilterOperator(str, Enum):
    """Supported filter operators."""

    IN = "IN"
    NOT_IN = "NOT_IN"


def _new_filter_id() -> str:
    return f"f_{uuid.uuid4().hex[:12]}"


class Filter(BaseModel):
    """A single (dimension, operator, values) condition."""

    id: str = Field(default_factory=_new_filter_id)
    dim_id: str
    operator: FilterOperator
    values: tuple[str, ...]

    @field_validator("values")
    @classmethod
    def collapse_duplicates(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated values, keeping first-occurrence order."""
        v = tuple(dict.fromkeys(v))
        if not v:
            raise ValueError("Filter values must not be empty")
        return v

    def matches(self, row: Any) -> bool:
        """Check a row (mapping or SeriesRow) against this condition."""
        value = row[self.dim_id]
        if self.operator == FilterOperator.IN:
            return value in self.values
        return value not in self.values

    model_config = {"frozen": True}


class FilterSet:
    """
    The active filters of one query, AND-ed together.

    Keyed by dimension id: adding a filter on a dimension that already has
    one replaces the existing filter.
    """

    def __init__(self, catalog: Catalog, filters: Iterable[Filter] = ()) -> None:
        self._catalog = catalog
        self._filters: dict[str, Filter] = {}
        for f in filters:
            self._validate(f.dim_id, f.values)
            self._filters[f.dim_id] = f

    def add_filter(
        self,
        dim_id: str,
        operator: FilterOperator | str,
        values: Iterable[str],
    ) -> Filter:
        """
        Validate and add a filter.

        Args:
            dim_id: Enumerable dimension to filter on
            operator: IN or NOT_IN
            values: Values from the dimension's enum set

        Returns:
            The new Filter, with a freshly generated id

        Raises:
            InvalidFilter: If the dimension is unknown or not enumerable, the
                operator is unknown, or values are empty/outside the enum set
        """
        values = tuple(values)
        self._validate(dim_id, values)
        try:
            op = FilterOperator(operator)
        except ValueError:
            raise InvalidFilter(f"Unknown filter operator '{operator}'")

        new_filter = Filter(dim_id=dim_id, operator=op, values=values)
        self._filters[dim_id] = new_filter
        return new_filter

    def remove_filter(self, filter_id: str) -> None:
        """Remove a filter by id. Unknown ids are ignored."""
        for dim_id, f in list(self._filters.items()):
            if f.id == filter_id:
                del self._filters[dim_id]

    def clear(self) -> None:
        self._filters.clear()

    def get(self, dim_id: str) -> Filter | None:
        return self._filters.get(dim_id)

    def matches(self, row: Any) -> bool:
        return all(f.matches(row) for f in self._filters.values())

    def apply(self, rows: Iterable[Any]) -> list[Any]:
        """Keep only rows satisfying every filter."""
        return [row for row in rows if self.matches(row)]

    @property
    def filters(self) -> tuple[Filter, ...]:
        return tuple(self._filters.values())

    def __iter__(self) -> Iterator[Filter]:
        return iter(self.filters)

    def __len__(self) -> int:
        return len(self._filters)

    def _validate(self, dim_id: str, values: tuple[str, ...]) -> None:
        try:
            dimension = self._catalog.get_dimension(dim_id)
        except NotFound as e:
            raise InvalidFilter(str(e)) from e

        if not dimension.is_enumerable:
            raise InvalidFilter(f"Dimension '{dim_id}' is not enumerable")
        if not values:
            raise InvalidFilter(f"Filter on '{dim_id}' needs at least one value")

        unknown = [v for v in values if v not in dimension.enum_values]
        if unknown:
            raise InvalidFilter(
                f"Values not in '{dim_id}': {', '.join(unknown)}"
            )


# =============================================================================
# Hour filter
# =============================================================================


class HourFilterMode(str, Enum):
    RANGE = "range"
    SELECT = "select"


class HourRange(BaseModel):
    """Inclusive hour range within a day."""

    start: int = Field(..., ge=0, le=23)
    end: int = Field(..., ge=0, le=23)

    @model_validator(mode="after")
    def validate_order(self) -> HourRange:
        if self.start > self.end:
            raise ValueError(f"Hour range {self.start}-{self.end} is reversed")
        return self

    def __contains__(self, hour: int) -> bool:
        return self.start <= hour <= self.end

    model_config = {"frozen": True}


class HourFilter(BaseModel):
    """
    Restricts rows to certain hours of the day.

    - disabled: every hour matches
    - range mode: any range matches (no ranges means every hour)
    - select mode: listed hours only (no hours means none)
    """

    enabled: bool = False
    mode: HourFilterMode = HourFilterMode.RANGE
    ranges: tuple[HourRange, ...] = Field(default_factory=tuple)
    selected_hours: frozenset[int] = Field(default_factory=frozenset)

    @field_validator("selected_hours")
    @classmethod
    def validate_hours(cls, v: frozenset[int]) -> frozenset[int]:
        bad = sorted(h for h in v if not 0 <= h <= 23)
        if bad:
            raise ValueError(f"Hours out of range: {bad}")
        return v

    @classmethod
    def from_ranges(cls, *ranges: tuple[int, int]) -> HourFilter:
        return cls(
            enabled=True,
            mode=HourFilterMode.RANGE,
            ranges=tuple(HourRange(start=s, end=e) for s, e in ranges),
        )

    @classmethod
    def from_hours(cls, hours: Iterable[int]) -> HourFilter:
        return cls(
            enabled=True, mode=HourFilterMode.SELECT, selected_hours=frozenset(hours)
        )

    def matches(self, hour: int) -> bool:
        if not self.enabled:
            return True
        if self.mode == HourFilterMode.RANGE:
            if not self.ranges:
                return True
            return any(hour in r for r in self.ranges)
        return hour in self.selected_hours

    def describe(self) -> str:
        """Short summary like '7-9,17-19' or '3 hours'."""
        if self.mode == HourFilterMode.RANGE:
            return ",".join(f"{r.start}-{r.end}" for r in self.ranges) or "all"
        return f"{len(self.selected_hours)} hours"

    model_config = {"frozen": True}


def filters_from_mapping(
    catalog: Catalog, data: Mapping[str, Mapping[str, Any]]
) -> FilterSet:
    """
    Build a FilterSet from a plain mapping.

    Format:
        {"city": {"operator": "NOT_IN", "values": ["宿迁市"]}}
    """
    filter_set = FilterSet(catalog)
    for dim_id, spec in data.items():
        filter_set.add_filter(dim_id, spec.get("operator", "IN"), spec["values"])
    return filter_set
