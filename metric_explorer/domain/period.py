"""Period domain - inclusive calendar date ranges and comparison modes."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from metric_explorer.errors import InvalidRange


class ComparisonMode(str, Enum):
    """Rule for deriving a baseline range from the primary range."""

    DAY_OVER_DAY = "dod"
    WEEK_OVER_WEEK = "wow"
    MONTH_OVER_MONTH = "mom"
    YEAR_OVER_YEAR = "yoy"


class DateRange(BaseModel):
    """An inclusive range of calendar dates."""

    start: date
    end: date

    @field_validator("start", "end", mode="before")
    @classmethod
    def require_calendar_date(cls, v: Any) -> Any:
        """Datetimes carry a time of day and are not calendar dates."""
        if isinstance(v, datetime):
            raise InvalidRange(f"Expected a calendar date, got datetime {v}")
        return v

    @model_validator(mode="after")
    def validate_order(self) -> DateRange:
        if self.start > self.end:
            raise InvalidRange(f"Range start {self.start} is after end {self.end}")
        return self

    @classmethod
    def of(cls, start: date | str, end: date | str) -> DateRange:
        """
        Build a range, raising InvalidRange for anything that is not a valid
        pair of calendar dates.
        """
        try:
            return cls(start=start, end=end)
        except InvalidRange:
            raise
        except ValueError as e:
            raise InvalidRange(f"Invalid date range {start!r}..{end!r}") from e

    @classmethod
    def last_days(cls, days: int, today: date | None = None) -> DateRange:
        """The `days` days ending today, e.g. last7 = today-6 .. today."""
        if days < 1:
            raise InvalidRange(f"A range covers at least one day, got {days}")
        end = today or date.today()
        return cls(start=end - timedelta(days=days - 1), end=end)

    @property
    def days(self) -> int:
        """Inclusive day count."""
        return (self.end - self.start).days + 1

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} ~ {self.end.isoformat()}"

    model_config = {"frozen": True}
