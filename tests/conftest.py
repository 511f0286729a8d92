"""Shared fixtures: the packaged catalog and a seeded row set."""

from __future__ import annotations

from datetime import date

import pytest

from metric_explorer.domain import Catalog
from metric_explorer.generator import SeriesRow, generate_series
from metric_explorer.ingestion import CatalogBuilder

# Generated rows cover 2024-02-01 .. 2024-03-31
ROWS_END = date(2024, 3, 31)
ROWS_DAYS = 60


@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """The catalog shipped with the package."""
    return CatalogBuilder.default()


@pytest.fixture(scope="session")
def rows(catalog: Catalog) -> list[SeriesRow]:
    """Sixty days of seeded rows with every catalog dimension populated."""
    return generate_series(ROWS_DAYS, catalog=catalog, end_date=ROWS_END, seed=42)
