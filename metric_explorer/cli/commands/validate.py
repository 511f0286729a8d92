"""Validate command for metric-explorer CLI."""

from __future__ import annotations

from pathlib import Path

import click

from metric_explorer.cli.commands.catalog import config_option, debug_option
from metric_explorer.cli.formatting import format_success
from metric_explorer.cli.session import console, load_session, reported_errors
from metric_explorer.config import find_config
from metric_explorer.errors import EmptyGranularityIntersection
from metric_explorer.generator import unsupported_by_generator
from metric_explorer.query import CompatibilityResolver


@click.command()
@config_option
@debug_option
def validate(config: Path | None, debug: bool) -> None:
    """Validate configuration and catalog.

    Checks that:
    - mx.yml (if any) is valid
    - The catalog parses and is consistent
    - The default date preset exists
    - Every metric group shares at least one granularity
    - Generator cities and service types are catalog values

    Warns about catalog metrics and dimensions the generator never fills.

    ## Examples

        $ mx validate

        $ mx validate --config mx.yml --debug
    """
    with reported_errors(debug):
        config_path = config or find_config()
        session = load_session(config_path)
        if config_path:
            console.print(f"[green]Config valid:[/green] {config_path}")
        else:
            console.print("[dim]No mx.yml found, using defaults[/dim]")

        catalog = session.catalog
        console.print(
            f"[green]Catalog valid:[/green] {len(catalog.metrics)} metrics, "
            f"{len(catalog.dimensions)} dimensions"
        )
        console.print(f"  [dim]{session.config.catalog_path or 'packaged catalog'}[/dim]")

        preset = catalog.get_preset(session.config.query.preset)
        console.print(f"[green]Date preset:[/green] {preset.id} ({preset.name})")

        resolver = CompatibilityResolver(catalog)
        for group in catalog.metric_groups:
            ids = [m.id for m in catalog.metrics if m.group == group]
            try:
                resolver.compatible_granularities(ids)
            except EmptyGranularityIntersection as e:
                console.print(f"[yellow]Warning:[/yellow] group '{group}': {e}")

        metrics, dimensions = unsupported_by_generator(catalog)
        for kind, ids in (("metrics", metrics), ("dimensions", dimensions)):
            if ids:
                console.print(
                    f"[yellow]Warning:[/yellow] no generated data for {kind}: "
                    f"{', '.join(ids)}"
                )

    console.print(format_success("Validation passed"))
