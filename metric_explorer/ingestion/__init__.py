"""Ingestion layer - YAML loading and catalog building."""

from metric_explorer.ingestion.builder import CatalogBuilder
from metric_explorer.ingestion.loader import YamlLoader

__all__ = ["CatalogBuilder", "YamlLoader"]
