"""Comparison period resolution - baseline ranges for dod/wow/mom/yoy."""

from __future__ import annotations

from metric_explorer.domain.dimension import TimeGranularity
from metric_explorer.domain.period import ComparisonMode, DateRange
from metric_explorer.query.calendar import shift_days, shift_months, shift_years

COMPARISON_LABELS: dict[ComparisonMode, str] = {
    ComparisonMode.DAY_OVER_DAY: "日环比",
    ComparisonMode.WEEK_OVER_WEEK: "周环比",
    ComparisonMode.MONTH_OVER_MONTH: "月同比",
    ComparisonMode.YEAR_OVER_YEAR: "年同比",
}

# Modes that produce a meaningful baseline per granularity, preferred first
VALID_MODES: dict[TimeGranularity, tuple[ComparisonMode, ...]] = {
    TimeGranularity.HOUR: (
        ComparisonMode.DAY_OVER_DAY,
        ComparisonMode.WEEK_OVER_WEEK,
        ComparisonMode.MONTH_OVER_MONTH,
    ),
    TimeGranularity.DAY: (
        ComparisonMode.DAY_OVER_DAY,
        ComparisonMode.WEEK_OVER_WEEK,
        ComparisonMode.MONTH_OVER_MONTH,
        ComparisonMode.YEAR_OVER_YEAR,
    ),
    TimeGranularity.WEEK: (
        ComparisonMode.WEEK_OVER_WEEK,
        ComparisonMode.MONTH_OVER_MONTH,
        ComparisonMode.YEAR_OVER_YEAR,
    ),
    TimeGranularity.MONTH: (
        ComparisonMode.MONTH_OVER_MONTH,
        ComparisonMode.YEAR_OVER_YEAR,
    ),
}


def resolve_comparison_range(
    primary: DateRange, mode: ComparisonMode | str
) -> DateRange:
    """
    Derive the comparison range for a primary range.

    - dod: the same number of days immediately before the primary range
    - wow: both endpoints shifted back 7 days
    - mom: both endpoints shifted back one calendar month (day clamped)
    - yoy: both endpoints shifted back one calendar year (Feb 29 -> Feb 28)

    Args:
        primary: Inclusive primary range
        mode: Comparison mode

    Returns:
        The comparison range
    """
    mode = ComparisonMode(mode)
    start, end = primary.start, primary.end

    if mode == ComparisonMode.DAY_OVER_DAY:
        return DateRange(
            start=shift_days(start, -primary.days), end=shift_days(start, -1)
        )
    if mode == ComparisonMode.WEEK_OVER_WEEK:
        return DateRange(start=shift_days(start, -7), end=shift_days(end, -7))
    if mode == ComparisonMode.MONTH_OVER_MONTH:
        return DateRange(start=shift_months(start, -1), end=shift_months(end, -1))
    return DateRange(start=shift_years(start, -1), end=shift_years(end, -1))


def valid_comparison_modes(
    granularity: TimeGranularity | str,
) -> tuple[ComparisonMode, ...]:
    return VALID_MODES[TimeGranularity(granularity)]


def fallback_comparison_mode(
    mode: ComparisonMode | None, granularity: TimeGranularity | str
) -> ComparisonMode | None:
    """Keep `mode` if valid for the granularity, else the preferred valid mode."""
    if mode is None:
        return None
    valid = valid_comparison_modes(granularity)
    return mode if mode in valid else valid[0]


def comparison_label(mode: ComparisonMode | str) -> str:
    return COMPARISON_LABELS[ComparisonMode(mode)]
