"""Tests for the synthetic series generator and its shape tables."""

from datetime import date, timedelta

import numpy as np
import pytest
from pydantic import ValidationError

from metric_explorer.domain import Dimension
from metric_explorer.errors import CatalogError
from metric_explorer.generator import (
    GeneratorShape,
    HourBand,
    SeriesGenerator,
    check_shape_values,
    generate_series,
    unsupported_by_generator,
)
from metric_explorer.generator.series import (
    GENERATED_METRICS,
    RATE_METRICS,
    format_percent,
    ratio_percent,
)

FUNNEL = (
    "call_qty",
    "resp_qty",
    "pickup_qty",
    "board_qty",
    "depart_qty",
    "comp_qty",
    "pay_qty",
)

END = date(2024, 3, 31)


class TestGeneratorShape:
    """Tests for GeneratorShape."""

    def test_default_hour_curve(self) -> None:
        weights = GeneratorShape().hourly_weights()
        assert len(weights) == 24
        assert weights[0] == weights[5] == 0.2
        assert weights[6] == 1.0
        assert weights[8] == 1.5
        assert weights[18] == 1.8
        assert weights[23] == 0.4

    def test_city_multipliers(self) -> None:
        shape = GeneratorShape()
        assert shape.city_multiplier("北京市") == 1.5
        assert shape.city_multiplier("宿迁市") == 0.5
        assert shape.city_multiplier("上海市") == 1.0

    def test_overlapping_bands_rejected(self) -> None:
        with pytest.raises(ValidationError, match="overlap"):
            GeneratorShape(
                hour_bands=(
                    HourBand(start=0, end=5, weight=0.2),
                    HourBand(start=5, end=7, weight=1.5),
                )
            )

    def test_empty_cities_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GeneratorShape(cities={})

    def test_duplicate_service_types_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicates"):
            GeneratorShape(service_types=("接送机", "接送机"))


class TestSeriesGenerator:
    """Tests for SeriesGenerator."""

    def test_full_coverage(self) -> None:
        rows = generate_series(120, end_date=END, seed=1)
        assert len(rows) == 120 * 24 * 3 * 3

        keys = {(r.dt, r.hour, r["city"], r["service_type"]) for r in rows}
        assert len(keys) == len(rows)
        assert rows[0].dt == END - timedelta(days=119)
        assert rows[-1].dt == END

    def test_row_order(self) -> None:
        rows = generate_series(1, end_date=END, seed=1)
        assert [(r.hour, r["city"], r["service_type"]) for r in rows[:4]] == [
            (0, "北京市", "普通出行"),
            (0, "北京市", "接送机"),
            (0, "北京市", "接送站"),
            (0, "广州市", "普通出行"),
        ]

    def test_zero_days(self) -> None:
        assert generate_series(0, end_date=END) == []

    def test_negative_days_rejected(self) -> None:
        with pytest.raises(ValueError):
            generate_series(-1)

    def test_default_end_is_yesterday(self) -> None:
        rows = generate_series(1, seed=3)
        assert rows[0].dt == date.today() - timedelta(days=1)

    @pytest.mark.parametrize("seed", range(8))
    def test_funnel_and_rate_invariants(self, seed: int) -> None:
        for row in generate_series(3, end_date=END, seed=seed):
            values = [row[m] for m in FUNNEL]
            assert values == sorted(values, reverse=True)
            assert row["pay_qty"] >= 0
            assert row["call_qty"] >= 1
            assert row["cancel_qty"] == max(0, row["call_qty"] - row["comp_qty"])

            for metric, numerator, denominator in RATE_METRICS:
                if row[denominator] == 0:
                    assert row[metric] == "0.0"
                    continue
                expected = round(row[numerator] / row[denominator] * 100, 1)
                assert float(row[metric]) == pytest.approx(expected, abs=0.051)

    def test_zero_denominators_yield_zero_rates(self) -> None:
        shape = GeneratorShape(base_volume=0, min_call_qty=0)
        rows = generate_series(1, shape=shape, end_date=END, seed=5)
        for row in rows:
            assert row["call_qty"] == 0
            assert row["cancel_qty"] == 0
            for metric, _, _ in RATE_METRICS:
                assert row[metric] == "0.0"

    def test_no_negative_zero_text(self) -> None:
        for row in generate_series(2, end_date=END, seed=11):
            for value in row.values.values():
                assert value != "-0.0"

    def test_every_metric_generated_with_deltas(self) -> None:
        (row, *_) = generate_series(1, end_date=END, seed=2)
        for metric in GENERATED_METRICS:
            assert metric in row.values
            float(row[f"{metric}_mom"])
            float(row[f"{metric}_yoy"])

    def test_seed_is_reproducible(self) -> None:
        a = generate_series(2, end_date=END, seed=9)
        b = generate_series(2, end_date=END, seed=9)
        assert [r.to_dict() for r in a] == [r.to_dict() for r in b]

    def test_injected_rng(self) -> None:
        a = SeriesGenerator(rng=np.random.default_rng(4)).generate(1, end_date=END)
        b = SeriesGenerator(seed=4).generate(1, end_date=END)
        assert a == b

    def test_extra_dimensions_from_catalog(self, catalog) -> None:
        rows = SeriesGenerator.from_catalog(catalog, seed=6).generate(1, end_date=END)
        supplier_values = set(catalog.enum_values("supplier"))
        for row in rows:
            assert row["supplier"] in supplier_values
            assert "dt" not in row.dimensions
        assert {r["city"] for r in rows} == {"北京市", "广州市", "宿迁市"}

    def test_peak_hours_outweigh_night(self) -> None:
        rows = generate_series(30, end_date=END, seed=12)
        night = sum(r["call_qty"] for r in rows if r.hour == 3)
        peak = sum(r["call_qty"] for r in rows if r.hour == 18)
        assert peak > night * 4

    def test_to_dict(self) -> None:
        (row, *_) = generate_series(1, end_date=END, seed=2)
        record = row.to_dict()
        assert record["dt"] == "2024-03-31"
        assert record["hour"] == 0
        assert record["city"] == "北京市"

    def test_rows_are_read_only(self) -> None:
        (row, *_) = generate_series(1, end_date=END, seed=2)
        with pytest.raises(TypeError):
            row.values["call_qty"] = -5
        with pytest.raises(TypeError):
            row.dimensions["city"] = "上海市"
        with pytest.raises(ValidationError):
            row.hour = 3
        assert row.model_dump()["values"]["call_qty"] == row["call_qty"]


class TestCatalogAlignment:
    """Tests for checks between the generator and a catalog."""

    def test_default_shape_matches_catalog(self, catalog) -> None:
        check_shape_values(catalog, GeneratorShape())
        assert unsupported_by_generator(catalog) == ([], [])

    def test_unknown_city_rejected(self, catalog) -> None:
        shape = GeneratorShape(cities={"上海市": 1.0})
        with pytest.raises(CatalogError, match="上海市"):
            check_shape_values(catalog, shape)
        with pytest.raises(CatalogError):
            SeriesGenerator.from_catalog(catalog, shape=shape)

    def test_unknown_service_type_rejected(self, catalog) -> None:
        shape = GeneratorShape(service_types=("包车",))
        with pytest.raises(CatalogError, match="service_type"):
            check_shape_values(catalog, shape)

    def test_subset_of_catalog_values_allowed(self, catalog) -> None:
        shape = GeneratorShape(cities={"宿迁市": 1.0}, service_types=("接送机",))
        rows = generate_series(1, catalog=catalog, shape=shape, end_date=END, seed=1)
        assert {r["city"] for r in rows} == {"宿迁市"}

    def test_unsupported_metrics_and_dimensions(self, catalog) -> None:
        gmv = catalog.get_metric("call_qty").model_copy(update={"id": "gmv"})
        order_id = Dimension(
            id="order_id", name="订单号", group="订单", is_enumerable=False
        )
        extended = catalog.with_metric(gmv).with_dimension(order_id)
        assert unsupported_by_generator(extended) == (["gmv"], ["order_id"])


class TestPercentFormatting:
    """Tests for percentage text helpers."""

    def test_negative_zero_normalised(self) -> None:
        assert format_percent(-0.04) == "0.0"
        assert format_percent(-0.05) != "-0.0"

    def test_ratio(self) -> None:
        assert ratio_percent(1, 3) == "33.3"
        assert ratio_percent(5, 0) == "0.0"
