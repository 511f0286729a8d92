"""Catalog commands: metrics, dimensions, compat."""

from __future__ import annotations

from pathlib import Path

import click

from metric_explorer.cli.formatting import (
    category_tree,
    dimensions_table,
    format_warning,
    metrics_table,
)
from metric_explorer.cli.session import console, load_session, reported_errors
from metric_explorer.errors import EmptyGranularityIntersection
from metric_explorer.query import CompatibilityResolver

config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to mx.yml config file (auto-detected if not specified)",
)
debug_option = click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)


def _parse_labels(labels: tuple[str, ...]) -> dict[str, list[str]]:
    """Parse 'group=option' pairs into {group: [options]}."""
    parsed: dict[str, list[str]] = {}
    for label in labels:
        group, sep, option = label.partition("=")
        if not sep or not group or not option:
            raise click.BadParameter(
                f"Expected GROUP=OPTION, got '{label}'", param_hint="--label"
            )
        parsed.setdefault(group, []).append(option)
    return parsed


@click.command()
@click.option("--group", "-g", help="Only metrics in this group")
@click.option("--sub-group", help="Only metrics in this sub-group (needs --group)")
@click.option("--search", "-s", "text", help="Match id, name or description")
@click.option(
    "--label",
    "-l",
    "labels",
    multiple=True,
    help="Label filter as GROUP=OPTION (repeatable)",
)
@click.option("--starred", is_flag=True, help="Only starred metrics")
@click.option("--tree", is_flag=True, help="Show the category tree instead")
@config_option
@debug_option
def metrics(
    group: str | None,
    sub_group: str | None,
    text: str | None,
    labels: tuple[str, ...],
    starred: bool,
    tree: bool,
    config: Path | None,
    debug: bool,
) -> None:
    """List catalog metrics.

    ## Examples

        $ mx metrics --group 订单指标

        $ mx metrics --search 完单 --label priority=P0
    """
    with reported_errors(debug):
        session = load_session(config)
        catalog = session.catalog

        if tree:
            console.print(category_tree(catalog.metric_tree()))
            return

        found = catalog.search_metrics(
            text=text,
            group=group,
            sub_group=sub_group,
            label_filters=_parse_labels(labels),
            starred_only=starred,
        )
        if not found:
            console.print(format_warning("No metrics match"))
            return
        console.print(metrics_table(found, title=f"Metrics ({len(found)})"))


@click.command()
@config_option
@debug_option
def dimensions(config: Path | None, debug: bool) -> None:
    """List catalog dimensions by group."""
    with reported_errors(debug):
        session = load_session(config)
        console.print(dimensions_table(session.catalog.list_dimensions()))


@click.command()
@click.option(
    "--metric",
    "-m",
    "metric_ids",
    multiple=True,
    required=True,
    help="Selected metric id (repeatable)",
)
@click.option(
    "--dimension",
    "-d",
    "dim_ids",
    multiple=True,
    help="Also list the metrics compatible with these dimensions",
)
@config_option
@debug_option
def compat(
    metric_ids: tuple[str, ...],
    dim_ids: tuple[str, ...],
    config: Path | None,
    debug: bool,
) -> None:
    """Show which dimensions and granularities a metric selection allows.

    ## Examples

        $ mx compat -m call_qty -m avg_resp_time
    """
    with reported_errors(debug):
        session = load_session(config)
        resolver = CompatibilityResolver(session.catalog)

        allowed = resolver.compatible_dimensions(metric_ids)
        console.print("\n[bold]Dimensions[/bold]")
        for dims in session.catalog.list_dimensions().values():
            for dim in dims:
                if dim.id in allowed:
                    console.print(f"  [green]✓[/green] {dim.id} ({dim.name})")
                else:
                    reason = resolver.incompatible_reason(dim.id, metric_ids)
                    console.print(
                        f"  [red]✗[/red] {dim.id} ({dim.name}) [dim]{reason}[/dim]"
                    )

        console.print("\n[bold]Granularities[/bold]")
        try:
            granularities = resolver.compatible_granularities(metric_ids)
            console.print("  " + ", ".join(g.value for g in granularities))
        except EmptyGranularityIntersection as e:
            console.print(format_warning(str(e), "Check the catalog definitions"))

        if dim_ids:
            compatible = resolver.compatible_metrics(dim_ids)
            console.print(
                f"\n[bold]Metrics compatible with {', '.join(dim_ids)}[/bold] "
                f"({len(compatible)})"
            )
            for metric in compatible:
                console.print(f"  - {metric.id} ({metric.name})")
