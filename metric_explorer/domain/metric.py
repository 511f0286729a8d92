"""
Metric domain - named, aggregable quantities with declared compatibility.

Ratio metrics (aggregation CALC with numerator/denominator) are re-derived
after aggregation instead of being summed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from metric_explorer.domain.dimension import DATE_DIMENSION, TimeGranularity

# =============================================================================
# Types
# =============================================================================


class AggregationType(str, Enum):
    """How a metric rolls up across rows."""

    SUM = "SUM"
    AVG = "AVG"
    COUNT_DISTINCT = "COUNT_DISTINCT"
    CALC = "CALC"  # Calculated from other metrics


class MetricType(str, Enum):
    """Where a metric's values come from."""

    ATOMIC = "atomic"
    CALCULATED = "calculated"


class LabelColor(str, Enum):
    """Display color class for metric labels."""

    BLUE = "blue"
    GREEN = "green"
    ORANGE = "orange"
    PURPLE = "purple"
    RED = "red"
    CYAN = "cyan"
    PINK = "pink"
    GRAY = "gray"


class MetricLabel(BaseModel):
    """Colorful display label attached to a metric."""

    text: str
    color: LabelColor = LabelColor.GRAY

    model_config = {"frozen": True}


# =============================================================================
# Metric
# =============================================================================


class Metric(BaseModel):
    """
    A metric is a business-level quantity with semantic meaning.

    Compatibility is declared per metric: the dimensions it can be sliced by
    and the granularities it is published at. The date dimension is always
    compatible, whether or not it is listed.
    """

    id: str
    name: str
    group: str
    sub_group: str | None = None
    unit: str = ""
    aggregation: AggregationType

    compatible_dims: frozenset[str]
    compatible_granularities: frozenset[TimeGranularity]

    # Ratio metric params
    numerator: str | None = None
    denominator: str | None = None

    # Metadata
    description: str = ""
    owner: str = ""
    contact_person: str | None = None
    update_frequency: str = ""
    metric_type: MetricType = MetricType.ATOMIC

    # Display/organization
    is_starred: bool = False
    tags: frozenset[str] = Field(default_factory=frozenset)
    labels: tuple[MetricLabel, ...] = Field(default_factory=tuple)

    @field_validator("compatible_dims")
    @classmethod
    def include_date_dimension(cls, v: frozenset[str]) -> frozenset[str]:
        """The date dimension is implicitly compatible with every metric."""
        if not v:
            raise ValueError("compatible_dims must not be empty")
        return v | {DATE_DIMENSION}

    @field_validator("compatible_granularities")
    @classmethod
    def validate_granularities(
        cls, v: frozenset[TimeGranularity]
    ) -> frozenset[TimeGranularity]:
        if not v:
            raise ValueError("compatible_granularities must not be empty")
        return v

    @model_validator(mode="after")
    def validate_ratio(self) -> Metric:
        """Numerator and denominator come together, and only on CALC metrics."""
        if (self.numerator is None) != (self.denominator is None):
            raise ValueError("numerator and denominator must be set together")
        if self.numerator is not None and self.aggregation != AggregationType.CALC:
            raise ValueError("Only CALC metrics can be ratios")
        return self

    @property
    def is_ratio(self) -> bool:
        return self.numerator is not None

    @property
    def category_path(self) -> str:
        """Category path like '订单|订单漏斗'."""
        return f"{self.group}|{self.sub_group}" if self.sub_group else self.group

    def supports(self, dim_id: str) -> bool:
        return dim_id in self.compatible_dims

    model_config = {"frozen": True, "extra": "forbid"}
