"""YAML loader - loads catalog documents from a file or directory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class YamlLoader:
    """
    Load catalog YAML from a single file or a directory structure.

    Expected structure:
        catalog/
        ├── dimensions.yml        # dimension_groups + dimensions
        ├── metrics/
        │   ├── orders.yml
        │   └── vehicles.yml
        └── labels.yml            # label_groups + date_presets

    A single file holding every section works the same way.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)

    def load_all(self) -> list[dict[str, Any]]:
        """
        Load every YAML document under the base path.

        Returns list of parsed documents, empty files skipped.
        """
        if self.base_path.is_file():
            files = [self.base_path]
        else:
            files = self._find_yaml_files()

        documents = []
        for file_path in files:
            doc = self._load_file(file_path)
            if doc:
                doc["_source_file"] = str(file_path)
                documents.append(doc)
        return documents

    def load_file(self, file_path: str | Path) -> dict[str, Any]:
        """Load a single YAML file."""
        return self._load_file(Path(file_path))

    def _find_yaml_files(self) -> list[Path]:
        """Find all .yml and .yaml files recursively."""
        if not self.base_path.exists():
            raise FileNotFoundError(f"Catalog path not found: {self.base_path}")
        files = []
        for pattern in ["**/*.yml", "**/*.yaml"]:
            files.extend(self.base_path.glob(pattern))
        # Sort for deterministic ordering
        return sorted(set(files))

    def _load_file(self, file_path: Path) -> dict[str, Any]:
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        with open(file_path, encoding="utf-8") as f:
            content = yaml.safe_load(f)

        if content is None:
            return {}

        if not isinstance(content, dict):
            raise ValueError(f"Expected dict at root of {file_path}, got {type(content)}")

        return content
