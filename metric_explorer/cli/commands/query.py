"""Query commands: compare, generate, query."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path

import click

from metric_explorer.cli.commands.catalog import config_option, debug_option
from metric_explorer.cli.formatting import format_warning, result_table, rows_table
from metric_explorer.cli.session import console, load_session, reported_errors
from metric_explorer.config import load_config
from metric_explorer.domain import (
    ComparisonMode,
    DateRange,
    FilterSet,
    HourFilter,
    TimeGranularity,
)
from metric_explorer.query import (
    QueryExecutor,
    QuerySpec,
    comparison_label,
    resolve_comparison_range,
    valid_comparison_modes,
)

PREVIEW_COLUMNS = ("call_qty", "resp_qty", "comp_qty", "cancel_qty", "resp_rate")

granularity_choice = click.Choice([g.value for g in TimeGranularity])
mode_choice = click.Choice([m.value for m in ComparisonMode])


def _parse_filter(text: str) -> tuple[str, str, list[str]]:
    """Parse 'dim=OP:a,b' (OP defaults to IN) into (dim, op, values)."""
    dim_id, sep, rest = text.partition("=")
    if not sep or not dim_id or not rest:
        raise click.BadParameter(
            f"Expected DIM=[IN|NOT_IN:]V1,V2, got '{text}'", param_hint="--filter"
        )
    operator, colon, values = rest.partition(":")
    if not colon:
        operator, values = "IN", rest
    return dim_id, operator.upper(), [v for v in values.split(",") if v]


def _parse_hours(text: str) -> HourFilter:
    """Parse '7-9,17-19' into a range-mode hour filter."""
    ranges = []
    for part in text.split(","):
        start, _, end = part.partition("-")
        try:
            ranges.append((int(start), int(end or start)))
        except ValueError:
            raise click.BadParameter(
                f"Expected ranges like 7-9,17-19, got '{text}'", param_hint="--hours"
            )
    return HourFilter.from_ranges(*ranges)


@click.command()
@click.argument("start", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.argument("end", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--mode", "-m", type=mode_choice, required=True, help="Comparison mode")
@click.option(
    "--granularity",
    "-g",
    type=granularity_choice,
    help="Warn when the mode does not suit this granularity (default: config)",
)
@config_option
@debug_option
def compare(
    start: datetime,
    end: datetime,
    mode: str,
    granularity: str | None,
    config: Path | None,
    debug: bool,
) -> None:
    """Resolve the comparison range for START..END.

    ## Examples

        $ mx compare 2024-03-10 2024-03-12 --mode dod
    """
    with reported_errors(debug):
        primary = DateRange.of(start.date(), end.date())
        comparison = resolve_comparison_range(primary, mode)
        console.print(f"[bold]Primary:[/bold]    {primary} ({primary.days} days)")
        console.print(
            f"[bold]{comparison_label(mode)}:[/bold] {comparison} "
            f"({comparison.days} days)"
        )
        granularity = granularity or load_config(config).query.granularity.value
        if ComparisonMode(mode) not in valid_comparison_modes(granularity):
            valid = ", ".join(m.value for m in valid_comparison_modes(granularity))
            console.print(
                format_warning(
                    f"'{mode}' is not offered for {granularity} granularity",
                    f"Valid modes: {valid}",
                )
            )


@click.command()
@click.option("--days", "-n", type=int, help="Days to generate (default: config)")
@click.option("--seed", type=int, help="Random seed (default: config)")
@click.option("--limit", type=int, default=10, show_default=True, help="Rows to preview")
@config_option
@debug_option
def generate(
    days: int | None,
    seed: int | None,
    limit: int,
    config: Path | None,
    debug: bool,
) -> None:
    """Generate synthetic hourly rows and preview them."""
    with reported_errors(debug):
        session = load_session(config)
        rows = session.generate(days=days, seed=seed)
        console.print(f"[green]Generated[/green] {len(rows)} rows")
        if rows and limit > 0:
            console.print(rows_table(rows[:limit], PREVIEW_COLUMNS))


@click.command()
@click.option(
    "--metric",
    "-m",
    "metric_ids",
    multiple=True,
    required=True,
    help="Metric id (repeatable)",
)
@click.option(
    "--dimension", "-d", "dim_ids", multiple=True, help="Group by dimension (repeatable)"
)
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), help="Range start")
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), help="Range end")
@click.option("--preset", help="Date preset id (default: config)")
@click.option("--granularity", "-g", type=granularity_choice, help="Time bucket")
@click.option("--compare", "comparison", type=mode_choice, help="Comparison mode")
@click.option(
    "--filter",
    "-f",
    "filter_texts",
    multiple=True,
    help="Filter as DIM=[IN|NOT_IN:]V1,V2 (repeatable)",
)
@click.option("--hours", help="Hour ranges, e.g. 7-9,17-19")
@click.option("--seed", type=int, help="Random seed (default: config)")
@config_option
@debug_option
def query(
    metric_ids: tuple[str, ...],
    dim_ids: tuple[str, ...],
    start: datetime | None,
    end: datetime | None,
    preset: str | None,
    granularity: str | None,
    comparison: str | None,
    filter_texts: tuple[str, ...],
    hours: str | None,
    seed: int | None,
    config: Path | None,
    debug: bool,
) -> None:
    """Run a query against freshly generated rows.

    Without --start/--end the date preset is used, ending on the last
    generated day (yesterday).

    ## Examples

        $ mx query -m call_qty -m resp_rate -d city --preset last14

        $ mx query -m comp_qty -g week --compare wow -f city=NOT_IN:宿迁市
    """
    if (start is None) != (end is None):
        raise click.UsageError("--start and --end must be given together")

    with reported_errors(debug):
        session = load_session(config)
        catalog = session.catalog
        defaults = session.config.query

        last_day = date.today() - timedelta(days=1)
        if start is not None and end is not None:
            date_range = DateRange.of(start.date(), end.date())
        else:
            date_range = catalog.get_preset(preset or defaults.preset).to_range(
                today=last_day
            )

        filter_set = FilterSet(catalog)
        for text in filter_texts:
            filter_set.add_filter(*_parse_filter(text))

        spec = QuerySpec(
            metrics=metric_ids,
            dimensions=dim_ids,
            granularity=granularity or defaults.granularity,
            date_range=date_range,
            filters=filter_set.filters,
            hour_filter=_parse_hours(hours) if hours else HourFilter(),
            comparison=comparison,
        )

        earliest = min(
            r.start for r in (spec.date_range, spec.comparison_range) if r is not None
        )
        rows = session.generate(
            days=session.days_covering(earliest, last_day), seed=seed
        )
        executor = QueryExecutor(catalog, rows, max_series=defaults.max_series)
        result = executor.execute(spec)

        if result.series_limited:
            console.print(
                format_warning(
                    f"Showing the first {defaults.max_series} dimension combinations",
                    "Add filters or fewer dimensions to see the rest",
                )
            )
        baseline = result.comparison_range
        if baseline is not None and rows and baseline.start < rows[0].dt:
            console.print(
                format_warning(
                    "No baseline data for part of the comparison",
                    f"{comparison_label(spec.comparison)} range {baseline} starts "
                    f"before the generated data ({rows[0].dt})",
                )
            )
        if not result.rows:
            console.print(format_warning("No rows in range", result.info))
            return
        console.print(result_table(result))
