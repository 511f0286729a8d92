"""
metric-explorer: headless query model for an operations metrics dashboard.

Architecture:
    YAML → Ingestion (CatalogBuilder) → Domain (Catalog) → Query → Rows

Layers:
    - domain/: Pure types (metrics, dimensions, filters, query specs, catalog)
    - ingestion/: YAML loading and catalog construction
    - query/: Compatibility, comparison periods, calendar shifts, execution
    - generator/: Synthetic series standing in for an analytical backend

Key Concepts:
    - The catalog is immutable; administration produces new snapshots
    - Comparison ranges are derived from the query spec, never stored
    - Generated rows keep funnel and rate invariants under any random draw
"""

__version__ = "0.1.0"
