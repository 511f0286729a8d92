"""Tests for YAML loading and catalog construction."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from metric_explorer.domain import AggregationType, MetricType
from metric_explorer.ingestion import CatalogBuilder, YamlLoader

DIMENSIONS_YAML = """\
dimension_groups: [时间, 地域]
dimensions:
  - id: dt
    name: 日期
    group: 时间
  - id: city
    name: 城市
    group: 地域
    enum_values: [北京市, 广州市]
"""

METRICS_YAML = """\
metrics:
  - id: call_qty
    name: 呼单量
    group: 订单
    aggregation: SUM
    compatible_dims: [city]
    compatible_granularities: [hour, day]
  - id: comp_qty
    name: 完单量
    group: 订单
    aggregation: SUM
    compatible_dims: [city]
    compatible_granularities: [day]
  - id: comp_rate
    name: 完单率
    group: 效率
    aggregation: CALC
    numerator: comp_qty
    denominator: call_qty
    compatible_dims: [city]
    compatible_granularities: [day]
"""


class TestYamlLoader:
    """Tests for YamlLoader."""

    def test_load_single_file(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.yml"
        path.write_text(DIMENSIONS_YAML, encoding="utf-8")

        docs = YamlLoader(path).load_all()

        assert len(docs) == 1
        assert docs[0]["_source_file"] == str(path)
        assert docs[0]["dimension_groups"] == ["时间", "地域"]

    def test_load_directory_sorted(self, tmp_path: Path) -> None:
        (tmp_path / "metrics").mkdir()
        (tmp_path / "dimensions.yml").write_text(DIMENSIONS_YAML, encoding="utf-8")
        (tmp_path / "metrics" / "orders.yaml").write_text(METRICS_YAML, encoding="utf-8")
        (tmp_path / "empty.yml").write_text("", encoding="utf-8")

        docs = YamlLoader(tmp_path).load_all()

        assert [Path(d["_source_file"]).name for d in docs] == [
            "dimensions.yml",
            "orders.yaml",
        ]

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            YamlLoader(tmp_path / "missing").load_all()

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Expected dict"):
            YamlLoader(tmp_path).load_file(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("metrics: [unclosed\n", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            YamlLoader(path).load_all()


class TestCatalogBuilder:
    """Tests for CatalogBuilder."""

    def test_from_path_merges_documents(self, tmp_path: Path) -> None:
        (tmp_path / "a_dimensions.yml").write_text(DIMENSIONS_YAML, encoding="utf-8")
        (tmp_path / "b_metrics.yml").write_text(METRICS_YAML, encoding="utf-8")

        catalog = CatalogBuilder.from_path(tmp_path)

        assert [m.id for m in catalog.metrics] == ["call_qty", "comp_qty", "comp_rate"]
        assert [d.id for d in catalog.dimensions] == ["dt", "city"]

    def test_date_dimension_defaults_to_non_enumerable(self) -> None:
        catalog = CatalogBuilder.from_dict(yaml.safe_load(DIMENSIONS_YAML))
        assert not catalog.get_dimension("dt").is_enumerable

    def test_metric_type_derived_from_aggregation(self, tmp_path: Path) -> None:
        data = {**yaml.safe_load(DIMENSIONS_YAML), **yaml.safe_load(METRICS_YAML)}
        catalog = CatalogBuilder.from_dict(data)

        rate = catalog.get_metric("comp_rate")
        assert rate.aggregation == AggregationType.CALC
        assert rate.metric_type == MetricType.CALCULATED
        assert rate.is_ratio
        assert catalog.get_metric("call_qty").metric_type == MetricType.ATOMIC

    def test_invalid_metric_rejected(self) -> None:
        data = yaml.safe_load(DIMENSIONS_YAML)
        data["metrics"] = [
            {
                "id": "x",
                "name": "x",
                "group": "g",
                "aggregation": "MEDIAN",
                "compatible_dims": ["city"],
                "compatible_granularities": ["day"],
            }
        ]
        with pytest.raises(ValidationError):
            CatalogBuilder.from_dict(data)

    def test_default_catalog(self) -> None:
        catalog = CatalogBuilder.default()
        assert len(catalog.metrics) == 19
        assert len(catalog.dimensions) == 10
        assert [p.id for p in catalog.date_presets] == [
            "last7",
            "last14",
            "last30",
            "last90",
        ]
        assert [g.id for g in catalog.label_groups] == ["priority", "source", "frequency"]
