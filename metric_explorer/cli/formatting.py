"""Rich formatting utilities for CLI output.

Panels for errors/warnings/successes and tables for catalog entries,
generated rows and query results.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from metric_explorer.domain import CategoryNode, Dimension, Metric, TimeGranularity
from metric_explorer.generator import SeriesRow
from metric_explorer.query import ColumnKind, QueryResult


def _panel(content: str, title: str, style: str) -> Panel:
    return Panel(
        content,
        title=f"[bold {style}]{title}[/bold {style}]",
        border_style=style,
        width=78,
        expand=False,
    )


def format_error(message: str, context: str | None = None) -> Panel:
    """Create formatted error panel.

    Args:
        message: Error message
        context: Optional context hint for resolution

    Returns:
        Panel with error formatting
    """
    content = f"[bold red]{message}[/bold red]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"
    return _panel(content, "Error", "red")


def format_warning(message: str, context: str | None = None) -> Panel:
    content = f"[bold yellow]{message}[/bold yellow]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"
    return _panel(content, "Warning", "yellow")


def format_success(message: str, details: str | None = None) -> Panel:
    content = f"[bold green]✓ {message}[/bold green]"
    if details:
        content += f"\n\n[dim]{details}[/dim]"
    return _panel(content, "Success", "green")


# =============================================================================
# Tables
# =============================================================================


def metrics_table(metrics: Iterable[Metric], title: str = "Metrics") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category", style="dim")
    table.add_column("Agg")
    table.add_column("Unit")
    table.add_column("Granularities", style="dim")
    for m in metrics:
        granularities = ",".join(
            g.value for g in sorted(m.compatible_granularities, key=_granularity_rank)
        )
        name = f"★ {m.name}" if m.is_starred else m.name
        table.add_row(
            m.id, name, m.category_path, m.aggregation.value, m.unit, granularities
        )
    return table


def dimensions_table(groups: Mapping[str, Sequence[Dimension]]) -> Table:
    table = Table(title="Dimensions")
    table.add_column("Group", style="magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Values", style="dim")
    for group, dims in groups.items():
        for i, dim in enumerate(dims):
            values = ", ".join(dim.enum_values) if dim.is_enumerable else "-"
            table.add_row(group if i == 0 else "", dim.id, dim.name, values)
    return table


def category_tree(nodes: Iterable[CategoryNode]) -> Tree:
    tree = Tree("[bold]Metric categories[/bold]")
    for node in nodes:
        branch = tree.add(f"[magenta]{node.name}[/magenta] ({node.count})")
        for child in node.children:
            branch.add(f"{child.name} ({child.count})")
    return tree


def rows_table(rows: Sequence[SeriesRow], columns: Sequence[str]) -> Table:
    """Preview generated rows, showing only the given value columns."""
    table = Table(title=f"Generated rows (showing {len(rows)})")
    table.add_column("dt", style="cyan")
    table.add_column("hour", justify="right")
    table.add_column("city")
    table.add_column("service_type")
    for column in columns:
        table.add_column(column, justify="right")
    for row in rows:
        table.add_row(
            row.dt.isoformat(),
            str(row.hour),
            row["city"],
            row["service_type"],
            *(str(row.get(c, "")) for c in columns),
        )
    return table


def result_table(result: QueryResult) -> Table:
    table = Table(title=result.info, title_justify="left")
    for column in result.columns:
        justify = "left" if column.kind == ColumnKind.DIMENSION else "right"
        table.add_column(column.header, justify=justify)
    for row in result.rows:
        table.add_row(
            *(_cell(row.get(c.key), c.kind) for c in result.columns)
        )
    return table


def _cell(value: Any, kind: ColumnKind) -> str:
    if value is None:
        return ""
    if kind == ColumnKind.RATE:
        color = "green" if value > 0 else "red" if value < 0 else "dim"
        return f"[{color}]{value:+.1f}%[/{color}]"
    return str(value)


def _granularity_rank(granularity: TimeGranularity) -> int:
    return list(TimeGranularity).index(granularity)
