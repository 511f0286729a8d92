"""
Volume and shape tables for the synthetic series.

Weights are applied multiplicatively to a base volume before random jitter:

    call_qty = floor(base_volume * hour_weight * city_multiplier * jitter)
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CITIES: dict[str, float] = {
    "北京市": 1.5,  # capital tier
    "广州市": 1.2,  # major city
    "宿迁市": 0.5,  # smaller city
}

DEFAULT_SERVICE_TYPES: tuple[str, ...] = ("普通出行", "接送机", "接送站")

# Jitter applied to the weighted base volume: uniform in [low, low + spread)
JITTER_LOW = 0.8
JITTER_SPREAD = 0.4

# Funnel stages: (metric, previous stage, min conversion, max conversion)
FUNNEL_STAGES: tuple[tuple[str, str, float, float], ...] = (
    ("resp_qty", "call_qty", 0.75, 0.90),
    ("pickup_qty", "resp_qty", 0.95, 1.00),
    ("board_qty", "pickup_qty", 0.98, 1.00),
    ("depart_qty", "board_qty", 0.99, 1.00),
    ("comp_qty", "depart_qty", 0.98, 1.00),
    ("pay_qty", "comp_qty", 0.99, 1.00),
)


class HourBand(BaseModel):
    """A weight applied to an inclusive band of hours."""

    start: int = Field(..., ge=0, le=23)
    end: int = Field(..., ge=0, le=23)
    weight: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_order(self) -> HourBand:
        if self.start > self.end:
            raise ValueError(f"Hour band {self.start}-{self.end} is reversed")
        return self

    model_config = {"frozen": True}


DEFAULT_HOUR_BANDS: tuple[HourBand, ...] = (
    HourBand(start=0, end=5, weight=0.2),  # night
    HourBand(start=7, end=9, weight=1.5),  # morning peak
    HourBand(start=17, end=19, weight=1.8),  # evening peak
    HourBand(start=22, end=23, weight=0.4),  # late night
)


class GeneratorShape(BaseModel):
    """
    Fixed volume/shape configuration of the synthetic generator.

    Hours outside every band keep a weight of 1.0. Cities iterate in
    declaration order.
    """

    base_volume: float = Field(10.0, ge=0)
    min_call_qty: int = Field(1, ge=0)
    cities: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_CITIES))
    service_types: tuple[str, ...] = DEFAULT_SERVICE_TYPES
    hour_bands: tuple[HourBand, ...] = DEFAULT_HOUR_BANDS

    @field_validator("cities")
    @classmethod
    def validate_cities(cls, v: dict[str, float]) -> dict[str, float]:
        if not v:
            raise ValueError("At least one city is required")
        negative = [city for city, m in v.items() if m < 0]
        if negative:
            raise ValueError(f"Negative city multipliers: {', '.join(negative)}")
        return v

    @field_validator("service_types")
    @classmethod
    def validate_service_types(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("At least one service type is required")
        if len(set(v)) != len(v):
            raise ValueError("service_types must not contain duplicates")
        return v

    @model_validator(mode="after")
    def validate_bands_disjoint(self) -> GeneratorShape:
        seen: set[int] = set()
        for band in self.hour_bands:
            hours = set(range(band.start, band.end + 1))
            if hours & seen:
                raise ValueError("Hour bands must not overlap")
            seen |= hours
        return self

    def hour_weight(self, hour: int) -> float:
        for band in self.hour_bands:
            if band.start <= hour <= band.end:
                return band.weight
        return 1.0

    def hourly_weights(self) -> tuple[float, ...]:
        """Weights for hours 0-23."""
        return tuple(self.hour_weight(h) for h in range(24))

    def city_multiplier(self, city: str) -> float:
        return self.cities.get(city, 1.0)

    model_config = {"frozen": True}
