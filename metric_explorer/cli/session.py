"""Loading and error reporting shared by the CLI commands."""

from __future__ import annotations

import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from metric_explorer.cli.formatting import format_error
from metric_explorer.config import ExplorerConfig, load_config
from metric_explorer.domain import Catalog
from metric_explorer.errors import MetricExplorerError
from metric_explorer.generator import SeriesRow, check_shape_values, generate_series
from metric_explorer.ingestion import CatalogBuilder

console = Console()

# Longest series a query generates to reach back to its comparison range
MAX_GENERATED_DAYS = 800

# (exception type, message prefix), most specific first
_REPORTED: tuple[tuple[type[BaseException], str], ...] = (
    (FileNotFoundError, "File not found"),
    (yaml.YAMLError, "YAML parsing error"),
    (ValidationError, "Validation error"),
    (MetricExplorerError, "Error"),
    (ValueError, "Invalid value"),
)


@contextmanager
def reported_errors(debug: bool) -> Iterator[None]:
    """
    Report expected failures and exit through click.

    With debug set the full traceback is printed before the message.
    """
    try:
        yield
    except click.ClickException:
        raise
    except tuple(t for t, _ in _REPORTED) as e:
        if debug:
            console.print(traceback.format_exc(), markup=False)
        prefix = next(p for t, p in _REPORTED if isinstance(e, t))
        console.print(format_error(prefix, escape(str(e))))
        raise click.ClickException(str(e))


@dataclass
class Session:
    """Config plus the catalog it points at."""

    config: ExplorerConfig
    catalog: Catalog

    def generate(self, days: int | None = None, seed: int | None = None) -> list[SeriesRow]:
        generator = self.config.generator
        return generate_series(
            days if days is not None else generator.days,
            catalog=self.catalog,
            shape=generator.to_shape(),
            seed=seed if seed is not None else generator.seed,
        )

    def days_covering(self, earliest: date, last_day: date) -> int:
        """Configured days, extended back to `earliest` up to MAX_GENERATED_DAYS."""
        needed = min((last_day - earliest).days + 1, MAX_GENERATED_DAYS)
        return max(self.config.generator.days, needed)


def load_session(config_path: Path | None) -> Session:
    """
    Load mx.yml (explicit or discovered) and the catalog it names.

    Raises:
        FileNotFoundError: Explicit config or catalog path does not exist
        yaml.YAMLError: Unparseable YAML
        ValidationError: Invalid config or catalog
        CatalogError: Generator cities or service types missing from the catalog
    """
    cfg = load_config(config_path)
    catalog_path = cfg.catalog_path
    catalog = (
        CatalogBuilder.from_path(catalog_path)
        if catalog_path is not None
        else CatalogBuilder.default()
    )
    check_shape_values(catalog, cfg.generator.to_shape())
    return Session(config=cfg, catalog=catalog)
