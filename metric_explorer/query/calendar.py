"""
Calendar shifts with end-of-month clamping.

Month and year shifts keep the day of month when it exists in the target
month and clamp to the month's last day otherwise:

    shift_months(2024-03-31, -1) -> 2024-02-29
    shift_years(2024-02-29, -1)  -> 2023-02-28
"""

from __future__ import annotations

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


def shift_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def shift_months(day: date, months: int) -> date:
    return day + relativedelta(months=months)


def shift_years(day: date, years: int) -> date:
    return day + relativedelta(years=years)


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())
