"""Command-line interface for metric-explorer."""

from __future__ import annotations

import click

from metric_explorer import __version__
from metric_explorer.cli.commands import (
    compare,
    compat,
    dimensions,
    generate,
    metrics,
    query,
    validate,
)


@click.group()
@click.version_option(__version__, prog_name="mx")
def cli() -> None:
    """Explore the metrics catalog and query synthetic data.

    Browse the catalog:

        $ mx metrics --search 完单

    Query with a comparison:

        $ mx query -m comp_qty -d city --compare wow
    """


cli.add_command(metrics)
cli.add_command(dimensions)
cli.add_command(compat)
cli.add_command(compare)
cli.add_command(generate)
cli.add_command(query)
cli.add_command(validate)


if __name__ == "__main__":
    cli()
