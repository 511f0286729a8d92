"""
Synthetic series generator - the stand-in for an analytical backend.

Magnitudes are random; structure is not. For every row, whatever the draws:

    call_qty >= resp_qty >= pickup_qty >= board_qty
             >= depart_qty >= comp_qty >= pay_qty >= 0
    cancel_qty = max(0, call_qty - comp_qty)
    rate metrics = numerator / denominator as a one-decimal percentage,
                   "0.0" when the denominator is zero
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from datetime import date, timedelta
from types import MappingProxyType
from typing import Any

import numpy as np
from pydantic import BaseModel, field_serializer, field_validator

from metric_explorer.domain.catalog import Catalog
from metric_explorer.domain.dimension import DATE_DIMENSION
from metric_explorer.errors import CatalogError
from metric_explorer.generator.shapes import (
    FUNNEL_STAGES,
    JITTER_LOW,
    JITTER_SPREAD,
    GeneratorShape,
)

CITY = "city"
SERVICE_TYPE = "service_type"

# Rate metrics: (metric, numerator, denominator)
RATE_METRICS: tuple[tuple[str, str, str], ...] = (
    ("resp_rate", "resp_qty", "call_qty"),
    ("comp_rate", "comp_qty", "call_qty"),
    ("cancel_rate", "cancel_qty", "call_qty"),
    ("pickup_rate", "pickup_qty", "resp_qty"),
)

# Half-widths of the (mom, yoy) delta draws per metric, in percentage points
DELTA_SPREADS: dict[str, tuple[float, float]] = {
    "call_qty": (10, 15),
    "resp_qty": (10, 15),
    "pickup_qty": (10, 15),
    "board_qty": (10, 15),
    "depart_qty": (10, 15),
    "comp_qty": (10, 15),
    "pay_qty": (10, 15),
    "cancel_qty": (20, 25),
    "call_user_cnt": (10, 15),
    "comp_user_cnt": (10, 15),
    "resp_rate": (2.5, 4),
    "comp_rate": (2.5, 4),
    "cancel_rate": (2.5, 4),
    "pickup_rate": (2.5, 4),
    "avg_resp_time": (5, 7.5),
    "avg_pickup_time": (10, 15),
    "extreme_good_rate": (2, 3),
    "vehicle_cnt": (5, 7.5),
    "vehicle_online_hours": (10, 15),
}

GENERATED_METRICS: tuple[str, ...] = tuple(DELTA_SPREADS)

# Draws per row that do not depend on the extra dimensions:
# jitter + funnel conversions + five independent metrics + two deltas per metric
_FIXED_DRAWS = 1 + len(FUNNEL_STAGES) + 5 + 2 * len(GENERATED_METRICS)


def format_percent(value: float) -> str:
    """One-decimal percentage text without a negative zero."""
    text = f"{value:.1f}"
    return "0.0" if text == "-0.0" else text


def ratio_percent(numerator: float, denominator: float) -> str:
    if denominator <= 0:
        return "0.0"
    return format_percent(numerator / denominator * 100)


class SeriesRow(BaseModel):
    """
    One generated record for an (hour, dimension-value combination).

    `values` holds every metric's raw value plus `<metric>_mom` and
    `<metric>_yoy` deltas as signed percentage text. Both mappings are
    read-only once the row exists.
    """

    dt: date
    hour: int
    dimensions: Mapping[str, str]
    values: Mapping[str, int | float | str]

    @field_validator("dimensions", "values")
    @classmethod
    def freeze_mapping(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @field_serializer("dimensions", "values")
    def serialize_mapping(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return dict(v)

    def __getitem__(self, key: str) -> Any:
        if key == "dt":
            return self.dt
        if key == "hour":
            return self.hour
        if key in self.dimensions:
            return self.dimensions[key]
        return self.values[key]

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def to_dict(self) -> dict[str, Any]:
        """Flat record for tables and serialization."""
        return {
            "dt": self.dt.isoformat(),
            "hour": self.hour,
            **self.dimensions,
            **self.values,
        }

    model_config = {"frozen": True}


class SeriesGenerator:
    """
    Generates rows for every day × hour × city × service type.

    Other categorical dimensions (supplier, product line, ...) are drawn per
    row from their value sets. Randomness comes from an injectable numpy
    Generator so tests can seed it.
    """

    def __init__(
        self,
        shape: GeneratorShape | None = None,
        extra_dimensions: Mapping[str, Sequence[str]] | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        self.shape = shape or GeneratorShape()
        self.extra_dimensions = {
            dim_id: tuple(values)
            for dim_id, values in (extra_dimensions or {}).items()
            if dim_id not in (CITY, SERVICE_TYPE)
        }
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._draws_per_row = _FIXED_DRAWS + len(self.extra_dimensions)

    @classmethod
    def from_catalog(
        cls,
        catalog: Catalog,
        shape: GeneratorShape | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> SeriesGenerator:
        """
        Use the catalog's enumerable dimensions as the extra value sets.

        Raises:
            CatalogError: The shape's cities or service types are not in the
                catalog's value sets
        """
        shape = shape or GeneratorShape()
        check_shape_values(catalog, shape)
        extra = {d.id: d.enum_values for d in catalog.dimensions if d.is_enumerable}
        return cls(shape=shape, extra_dimensions=extra, rng=rng, seed=seed)

    def generate(self, days: int, end_date: date | None = None) -> list[SeriesRow]:
        """
        Generate `days` days of hourly rows.

        Args:
            days: Number of days (0 yields no rows)
            end_date: Last generated date (default: yesterday)

        Returns:
            days * 24 * len(cities) * len(service_types) rows, ordered by
            date, hour, city, service type

        Raises:
            ValueError: If days is negative
        """
        if days < 0:
            raise ValueError(f"days must be >= 0, got {days}")

        last = end_date or date.today() - timedelta(days=1)
        first = last - timedelta(days=days - 1)
        hourly = self.shape.hourly_weights()
        cities = [(city, self.shape.city_multiplier(city)) for city in self.shape.cities]

        rows = []
        for offset in range(days):
            day = first + timedelta(days=offset)
            for hour, hour_weight in enumerate(hourly):
                for city, city_multiplier in cities:
                    volume = self.shape.base_volume * hour_weight * city_multiplier
                    for service_type in self.shape.service_types:
                        rows.append(
                            self._row(day, hour, city, service_type, volume)
                        )
        return rows

    def _row(
        self, day: date, hour: int, city: str, service_type: str, volume: float
    ) -> SeriesRow:
        draws: Iterator[float] = iter(self.rng.random(self._draws_per_row))

        values: dict[str, Any] = {}
        values["call_qty"] = max(
            self.shape.min_call_qty,
            math.floor(volume * (JITTER_LOW + next(draws) * JITTER_SPREAD)),
        )
        for metric, previous, low, high in FUNNEL_STAGES:
            conversion = low + next(draws) * (high - low)
            values[metric] = math.floor(values[previous] * conversion)
        values["cancel_qty"] = max(0, values["call_qty"] - values["comp_qty"])

        values["call_user_cnt"] = math.floor(values["call_qty"] * 0.85)
        values["comp_user_cnt"] = math.floor(values["comp_qty"] * 0.9)

        for metric, numerator, denominator in RATE_METRICS:
            values[metric] = ratio_percent(values[numerator], values[denominator])

        values["avg_resp_time"] = math.floor(next(draws) * 60) + 30
        values["avg_pickup_time"] = math.floor(next(draws) * 300) + 180
        values["extreme_good_rate"] = format_percent(80 + next(draws) * 19)
        values["vehicle_cnt"] = math.floor(next(draws) * 10) + 5
        values["vehicle_online_hours"] = math.floor(next(draws) * 50) + 20

        for metric, (mom, yoy) in DELTA_SPREADS.items():
            values[f"{metric}_mom"] = format_percent((next(draws) * 2 - 1) * mom)
            values[f"{metric}_yoy"] = format_percent((next(draws) * 2 - 1) * yoy)

        dimensions = {CITY: city, SERVICE_TYPE: service_type}
        for dim_id, choices in self.extra_dimensions.items():
            dimensions[dim_id] = choices[int(next(draws) * len(choices))]

        return SeriesRow(dt=day, hour=hour, dimensions=dimensions, values=values)


def check_shape_values(catalog: Catalog, shape: GeneratorShape) -> None:
    """Cities and service types must be values the catalog can filter on."""
    dimensions = {d.id: d for d in catalog.dimensions}
    for dim_id, configured in (
        (CITY, tuple(shape.cities)),
        (SERVICE_TYPE, shape.service_types),
    ):
        dim = dimensions.get(dim_id)
        if dim is None or not dim.is_enumerable:
            continue
        unknown = [v for v in configured if v not in dim.enum_values]
        if unknown:
            raise CatalogError(
                f"Generator values not in '{dim_id}': {', '.join(unknown)}"
            )


def unsupported_by_generator(catalog: Catalog) -> tuple[list[str], list[str]]:
    """
    Catalog metrics and dimensions that generated rows never carry.

    Returns:
        (metric ids, dimension ids), in catalog order
    """
    generated = set(GENERATED_METRICS)
    metrics = [
        m.id
        for m in catalog.metrics
        if not (
            {m.numerator, m.denominator} <= generated if m.is_ratio else m.id in generated
        )
    ]
    dimensions = [
        d.id
        for d in catalog.dimensions
        if not (d.is_enumerable or d.id in (DATE_DIMENSION, CITY, SERVICE_TYPE))
    ]
    return metrics, dimensions


def generate_series(
    days: int,
    catalog: Catalog | None = None,
    shape: GeneratorShape | None = None,
    end_date: date | None = None,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> list[SeriesRow]:
    """Generate rows in one call; see SeriesGenerator.generate."""
    if catalog is not None:
        generator = SeriesGenerator.from_catalog(catalog, shape=shape, rng=rng, seed=seed)
    else:
        generator = SeriesGenerator(shape=shape, rng=rng, seed=seed)
    return generator.generate(days, end_date=end_date)
