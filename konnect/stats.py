"""Dataset statistics printed by the pipeline stages."""
from __future__ import annotations

import logging
from typing import Dict

import geopandas as gpd

from konnect.poi.conflate import is_present

LOGGER = logging.getLogger("konnect.stats")


def category_breakdown(gdf: gpd.GeoDataFrame) -> Dict[str, int]:
    """Feature count per category, largest first."""
    if gdf is None or gdf.empty:
        return {}
    counts = gdf["category"].fillna("unknown").astype(str).value_counts()
    return {str(k): int(v) for k, v in counts.items()}


def completeness_stats(gdf: gpd.GeoDataFrame) -> Dict[str, object]:
    if gdf is None or gdf.empty:
        return {"total": 0, "byCategory": {}, "withWebsite": 0, "withAddress": 0, "withPhone": 0}

    def _count(col: str) -> int:
        return int(gdf[col].apply(is_present).sum()) if col in gdf.columns else 0

    return {
        "total": int(len(gdf)),
        "byCategory": category_breakdown(gdf),
        "withWebsite": _count("website"),
        "withAddress": _count("address"),
        "withPhone": _count("phone"),
    }


def weight_totals(aggregated: gpd.GeoDataFrame) -> Dict[str, int]:
    """Sum of aggregate weights per category, largest first."""
    if aggregated is None or aggregated.empty:
        return {}
    totals = aggregated.groupby("category")["weight"].sum().sort_values(ascending=False)
    return {str(k): int(v) for k, v in totals.items()}


def pct(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def log_breakdown(title: str, counts: Dict[str, int]) -> None:
    LOGGER.info("%s", title)
    for cat, count in counts.items():
        LOGGER.info("  %s: %s", cat, count)
