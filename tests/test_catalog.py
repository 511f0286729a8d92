"""Tests for the Catalog: lookups, consistency, discovery and administration."""

import pytest
from pydantic import ValidationError

from metric_explorer.domain import Catalog, Dimension, Metric
from metric_explorer.domain.catalog import OTHER_SUB_GROUP
from metric_explorer.errors import CatalogError, NotFound


def _dims() -> list[Dimension]:
    return [
        Dimension(id="dt", name="日期", group="时间", is_enumerable=False),
        Dimension(id="city", name="城市", group="地域", enum_values=("北京市",)),
    ]


def _metric(metric_id: str = "call_qty", **overrides) -> Metric:
    data = {
        "id": metric_id,
        "name": metric_id,
        "group": "订单",
        "aggregation": "SUM",
        "compatible_dims": ["city"],
        "compatible_granularities": ["day"],
    }
    data.update(overrides)
    return Metric.model_validate(data)


class TestCatalogLookup:
    """Tests for read-only catalog access."""

    def test_get_metric(self, catalog) -> None:
        metric = catalog.get_metric("call_qty")
        assert metric.name == "呼单量"

    def test_unknown_metric(self, catalog) -> None:
        with pytest.raises(NotFound) as exc_info:
            catalog.get_metric("nope")
        assert exc_info.value.kind == "metric"
        assert exc_info.value.item_id == "nope"

    def test_unknown_dimension(self, catalog) -> None:
        with pytest.raises(NotFound, match="Unknown dimension 'nope'"):
            catalog.get_dimension("nope")

    def test_list_metrics_in_declaration_order(self, catalog) -> None:
        ids = [m.id for m in catalog.list_metrics()]
        assert ids[:3] == ["call_qty", "resp_qty", "pickup_qty"]
        assert len(ids) == 19

    def test_list_dimensions_grouped(self, catalog) -> None:
        groups = catalog.list_dimensions()
        assert list(groups) == ["时间", "地域", "业务", "订单", "车辆"]
        assert [d.id for d in groups["时间"]] == ["dt"]
        assert "city" in [d.id for d in groups["地域"]]

    def test_enum_values(self, catalog) -> None:
        assert catalog.enum_values("city") == ("北京市", "广州市", "宿迁市")

    def test_date_presets(self, catalog) -> None:
        assert catalog.get_preset("last7").days == 7
        with pytest.raises(NotFound):
            catalog.get_preset("last365")

    def test_every_ratio_references_known_metrics(self, catalog) -> None:
        for metric in catalog.metrics:
            if metric.is_ratio:
                assert catalog.has_metric(metric.numerator)
                assert catalog.has_metric(metric.denominator)


class TestCatalogConsistency:
    """Tests for construction-time validation."""

    def test_groups_derived_when_missing(self) -> None:
        catalog = Catalog(metrics=(_metric(),), dimensions=tuple(_dims()))
        assert catalog.dimension_groups == ("时间", "地域")

    def test_duplicate_metric_ids(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate metric ids"):
            Catalog(metrics=(_metric(), _metric()), dimensions=tuple(_dims()))

    def test_unknown_dimension_reference(self) -> None:
        with pytest.raises(ValidationError, match="unknown dimensions: supplier"):
            Catalog(
                metrics=(_metric(compatible_dims=["supplier"]),),
                dimensions=tuple(_dims()),
            )

    def test_date_dimension_required(self) -> None:
        with pytest.raises(ValidationError, match="'dt'"):
            Catalog(dimensions=(_dims()[1],))

    def test_undeclared_group(self) -> None:
        with pytest.raises(ValidationError, match="undeclared group"):
            Catalog(dimensions=tuple(_dims()), dimension_groups=("时间",))


class TestCatalogDiscovery:
    """Tests for metric search and the category tree."""

    def test_search_by_text(self, catalog) -> None:
        ids = {m.id for m in catalog.search_metrics(text="完单")}
        assert {"comp_qty", "comp_user_cnt", "comp_rate"} <= ids
        assert "call_qty" not in ids

    def test_search_is_case_insensitive(self, catalog) -> None:
        ids = [m.id for m in catalog.search_metrics(text="RESP_RATE")]
        assert ids == ["resp_rate"]

    def test_search_by_group(self, catalog) -> None:
        found = catalog.search_metrics(group="车辆")
        assert [m.id for m in found] == ["vehicle_cnt", "vehicle_online_hours"]

    def test_search_by_sub_group(self, catalog) -> None:
        found = catalog.search_metrics(group="订单", sub_group="订单取消")
        assert [m.id for m in found] == ["cancel_qty"]

    def test_label_filters_or_within_group(self, catalog) -> None:
        found = catalog.search_metrics(label_filters={"priority": ["core", "secondary"]})
        assert len(found) == len(catalog.metrics)

    def test_label_filters_and_across_groups(self, catalog) -> None:
        found = catalog.search_metrics(
            label_filters={"priority": ["secondary"], "frequency": ["T+1"]}
        )
        assert [m.id for m in found] == [
            "extreme_good_rate",
            "vehicle_cnt",
            "vehicle_online_hours",
        ]

    def test_empty_label_selection_ignored(self, catalog) -> None:
        assert len(catalog.search_metrics(label_filters={"priority": []})) == 19

    def test_starred_only(self, catalog) -> None:
        found = catalog.search_metrics(starred_only=True)
        assert found
        assert all(m.is_starred for m in found)

    def test_metric_tree(self, catalog) -> None:
        tree = catalog.metric_tree()
        assert [n.name for n in tree] == ["订单", "用户", "效率", "时长", "车辆"]
        orders = tree[0]
        assert orders.count == 8
        assert orders.children[0].full_path == "订单|订单漏斗"
        assert sum(n.count for n in tree) == len(catalog.metrics)

    def test_metric_tree_other_sub_group(self) -> None:
        catalog = Catalog(metrics=(_metric(),), dimensions=tuple(_dims()))
        (node,) = catalog.metric_tree()
        assert node.children[0].name == OTHER_SUB_GROUP
        found = catalog.search_metrics(group="订单", sub_group=OTHER_SUB_GROUP)
        assert [m.id for m in found] == ["call_qty"]


class TestCatalogAdministration:
    """Tests for the snapshot-producing write path."""

    @pytest.fixture
    def small(self) -> Catalog:
        return Catalog(
            metrics=(_metric("a"), _metric("b")),
            dimensions=tuple(_dims()),
        )

    def test_with_metric_adds(self, small) -> None:
        updated = small.with_metric(_metric("c"))
        assert [m.id for m in updated.metrics] == ["a", "b", "c"]
        assert [m.id for m in small.metrics] == ["a", "b"]

    def test_with_metric_replaces_in_place(self, small) -> None:
        updated = small.with_metric(_metric("a", name="renamed"))
        assert [m.id for m in updated.metrics] == ["a", "b"]
        assert updated.get_metric("a").name == "renamed"
        assert small.get_metric("a").name == "a"

    def test_with_metric_unknown_dimension(self, small) -> None:
        with pytest.raises(CatalogError, match="unknown dimensions"):
            small.with_metric(_metric("c", compatible_dims=["supplier"]))

    def test_without_metric(self, small) -> None:
        updated = small.without_metric("a")
        assert not updated.has_metric("a")
        with pytest.raises(NotFound):
            small.without_metric("zzz")

    def test_with_dimension(self, small) -> None:
        dim = Dimension(id="supplier", name="供应商", group="地域", enum_values=("小马",))
        updated = small.with_dimension(dim)
        assert updated.get_dimension("supplier") == dim

    def test_with_dimension_unknown_group(self, small) -> None:
        dim = Dimension(id="supplier", name="供应商", group="业务", enum_values=("小马",))
        with pytest.raises(CatalogError, match="Unknown dimension group"):
            small.with_dimension(dim)

    def test_without_dimension_rejects_date(self, small) -> None:
        with pytest.raises(CatalogError, match="cannot be removed"):
            small.without_dimension("dt")

    def test_without_dimension_in_use(self, small) -> None:
        with pytest.raises(CatalogError, match="still used by: a, b"):
            small.without_dimension("city")

    def test_without_unused_dimension(self, small) -> None:
        dim = Dimension(id="supplier", name="供应商", group="地域", enum_values=("小马",))
        updated = small.with_dimension(dim).without_dimension("supplier")
        assert [d.id for d in updated.dimensions] == ["dt", "city"]

    def test_dimension_groups(self, small) -> None:
        updated = small.with_dimension_group(" 业务 ")
        assert updated.dimension_groups == ("时间", "地域", "业务")
        with pytest.raises(CatalogError, match="already exists"):
            updated.with_dimension_group("业务")
        with pytest.raises(CatalogError, match="blank"):
            small.with_dimension_group("  ")

    def test_rename_dimension_group_moves_dimensions(self, small) -> None:
        updated = small.rename_dimension_group("地域", "地区")
        assert updated.dimension_groups == ("时间", "地区")
        assert updated.get_dimension("city").group == "地区"
        assert small.get_dimension("city").group == "地域"

    def test_rename_unknown_group(self, small) -> None:
        with pytest.raises(NotFound):
            small.rename_dimension_group("nope", "x")

    def test_rename_to_existing_group(self, small) -> None:
        with pytest.raises(CatalogError, match="already exists"):
            small.rename_dimension_group("地域", "时间")

    def test_without_dimension_group(self, small) -> None:
        with pytest.raises(CatalogError, match="still has 1 dimensions"):
            small.without_dimension_group("地域")
        updated = small.with_dimension_group("空").without_dimension_group("空")
        assert updated.dimension_groups == small.dimension_groups
