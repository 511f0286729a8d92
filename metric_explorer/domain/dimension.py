"""Dimension domain - categorical and temporal axes for slicing metrics."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

# The date dimension: never enumerable, compatible with every metric.
DATE_DIMENSION = "dt"


class TimeGranularity(str, Enum):
    """Time bucket size for a query."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Dimension(BaseModel):
    """
    A dimension is an axis along which metrics can be sliced or filtered.

    Enumerable dimensions carry the fixed value set used by filters and the
    synthetic generator.
    """

    id: str = Field(..., description="Unique identifier")
    name: str = Field(..., description="Display name")
    group: str = Field(..., description="Dimension group (e.g. 时间, 地域)")
    description: str = Field("", description="Business description")
    is_core: bool = Field(False, description="Core dimension flag")

    is_enumerable: bool = Field(True, description="Has a fixed value set")
    enum_values: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("enum_values")
    @classmethod
    def validate_unique_values(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject duplicate enum values."""
        if len(set(v)) != len(v):
            raise ValueError("enum_values must not contain duplicates")
        return v

    @model_validator(mode="after")
    def validate_enumeration(self) -> "Dimension":
        """Enumerable dimensions need values; non-enumerable ones have none."""
        if self.id == DATE_DIMENSION and self.is_enumerable:
            raise ValueError(f"'{DATE_DIMENSION}' can never be enumerable")
        if self.is_enumerable and not self.enum_values:
            raise ValueError(f"Enumerable dimension '{self.id}' needs enum_values")
        if not self.is_enumerable and self.enum_values:
            raise ValueError(f"Dimension '{self.id}' is not enumerable")
        return self

    @property
    def is_date(self) -> bool:
        return self.id == DATE_DIMENSION

    model_config = {"frozen": True, "extra": "forbid"}
