"""
Map overlays derived from the location and census datasets.
"""

from .heatmap import aggregate_grid, aggregate_h3
from .population import build_population_overlay
from .surnames import build_surname_heatmaps, build_surname_summary, read_census_surnames

__all__ = [
    "aggregate_grid",
    "aggregate_h3",
    "build_population_overlay",
    "build_surname_heatmaps",
    "build_surname_summary",
    "read_census_surnames",
]
