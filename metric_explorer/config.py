"""Configuration schema for metric-explorer.

Defines the mx.yml configuration file format using Pydantic models.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from typing_extensions import Self

from metric_explorer.domain.dimension import TimeGranularity
from metric_explorer.generator.shapes import (
    DEFAULT_CITIES,
    DEFAULT_SERVICE_TYPES,
    GeneratorShape,
)


class GeneratorConfig(BaseModel):
    """Synthetic data configuration."""

    days: int = Field(120, gt=0)
    seed: int | None = None  # None draws a fresh series each run
    base_volume: float = Field(10.0, ge=0)
    min_call_qty: int = Field(1, ge=0)
    cities: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_CITIES))
    service_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SERVICE_TYPES)
    )

    model_config = {"frozen": True}

    @field_validator("cities")
    @classmethod
    def validate_cities(cls, v: dict[str, float]) -> dict[str, float]:
        if not v:
            raise ValueError("generator.cities must not be empty")
        return v

    @field_validator("service_types")
    @classmethod
    def validate_service_types(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("generator.service_types must not be empty")
        return v

    def to_shape(self) -> GeneratorShape:
        """Volume/shape tables for the series generator."""
        return GeneratorShape(
            base_volume=self.base_volume,
            min_call_qty=self.min_call_qty,
            cities=self.cities,
            service_types=tuple(self.service_types),
        )


class QueryConfig(BaseModel):
    """Query defaults."""

    granularity: TimeGranularity = TimeGranularity.DAY
    max_series: int = Field(20, gt=0)
    preset: str = "last7"  # Date preset id from the catalog

    model_config = {"frozen": True}

    @field_validator("granularity", mode="before")
    @classmethod
    def parse_granularity(cls, v: Any) -> TimeGranularity:
        """Parse granularity from string."""
        if isinstance(v, TimeGranularity):
            return v
        if isinstance(v, str):
            try:
                return TimeGranularity(v.lower())
            except ValueError:
                valid = [g.value for g in TimeGranularity]
                raise ValueError(f"Invalid granularity '{v}'. Valid: {valid}")
        return TimeGranularity(v)

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query.preset must not be blank")
        return v


class ExplorerConfig(BaseModel):
    """
    Root configuration from mx.yml.

    Example:
        catalog: ./my_catalog.yml

        generator:
          days: 120
          seed: 7
          cities: {北京市: 1.5, 广州市: 1.2, 宿迁市: 0.5}

        query:
          granularity: day
          max_series: 20
          preset: last7
    """

    catalog: str | None = None  # Packaged catalog when unset
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)

    # Directory of the config file; relative catalog paths resolve against it
    base_dir: Path | None = Field(default=None, exclude=True)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def catalog_path(self) -> Path | None:
        """Catalog path, resolved against the config file's directory."""
        if self.catalog is None:
            return None
        path = Path(self.catalog)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    @classmethod
    def from_yaml(cls, content: str, base_dir: Path | None = None) -> Self:
        """Parse config from YAML string. An empty document is all defaults."""
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("mx.yml must contain a mapping")
        return cls.model_validate({**data, "base_dir": base_dir})

    @classmethod
    def from_file(cls, path: Path | str) -> Self:
        """Load config from a YAML file."""
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        return cls.from_yaml(content, base_dir=path.resolve().parent)


# Config file discovery
CONFIG_FILENAMES = ["mx.yml", "mx.yaml", ".mx.yml", ".mx.yaml"]


def find_config(start_dir: Path | str | None = None) -> Path | None:
    """
    Find mx.yml config file.

    Searches start_dir (default: cwd) and then its parents up to root.

    Args:
        start_dir: Directory to start search from

    Returns:
        Path to config file, or None if not found
    """
    current = Path(start_dir or Path.cwd()).resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | str | None = None) -> ExplorerConfig:
    """
    Load configuration from file.

    Unlike a required project file, mx.yml is optional: without an explicit
    path and with nothing discovered, the defaults are returned.

    Args:
        path: Explicit path to config file

    Returns:
        Parsed ExplorerConfig

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If config is invalid
    """
    if path is None:
        path = find_config()
        if path is None:
            return ExplorerConfig()
    else:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")

    return ExplorerConfig.from_file(path)
