"""Synthetic hourly series for exploring the catalog without a backend."""

from metric_explorer.generator.series import (
    GENERATED_METRICS,
    SeriesGenerator,
    SeriesRow,
    check_shape_values,
    generate_series,
    unsupported_by_generator,
)
from metric_explorer.generator.shapes import GeneratorShape, HourBand

__all__ = [
    "GENERATED_METRICS",
    "GeneratorShape",
    "HourBand",
    "SeriesGenerator",
    "SeriesRow",
    "check_shape_values",
    "generate_series",
    "unsupported_by_generator",
]
