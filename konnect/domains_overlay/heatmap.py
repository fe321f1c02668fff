"""
Heatmap aggregation.

Buckets location features into cells (a regular lat/lon grid or H3 hexes)
per category and emits one weighted point per cell at the mean position of
its members. The weight of each point is the number of establishments it
represents, so aggregate weights always sum to the input count.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

import numpy as np
import pandas as pd
import geopandas as gpd

from konnect import config

LOGGER = logging.getLogger("konnect.heatmap")

# H3 API compatibility layer - handles v3 and v4 naming
try:
    import h3  # type: ignore
    H3_LATLNG_TO_CELL = getattr(h3, "latlng_to_cell", None) or getattr(h3, "geo_to_h3", None)
except ImportError as exc:  # pragma: no cover - import guard
    raise RuntimeError("h3 library is required") from exc

_LABEL_SPLIT = re.compile(r"[-,]")
AGGREGATE_COLUMNS = ["category", "name", "weight", "geometry"]


def _empty_aggregate() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(columns=AGGREGATE_COLUMNS, geometry="geometry", crs="EPSG:4326")


def cell_label(names: pd.Series) -> Optional[str]:
    """
    Label a cell after its first named member.

    Uses the part of the name before the first '-' or ','. Returns None when
    no member has a real name or the label would be 30 characters or longer.
    """
    for name in names:
        if isinstance(name, str) and name and name != "Unknown":
            first_part = _LABEL_SPLIT.split(name)[0].strip()
            return first_part if len(first_part) < config.LABEL_MAX_LEN else None
    return None


def grid_keys(gdf: gpd.GeoDataFrame, grid_size: float) -> pd.Series:
    """Cell key per row: category plus the half-up rounded grid indices."""
    lat_idx = np.floor(gdf.geometry.y.astype("float64") / grid_size + 0.5).astype("int64")
    lon_idx = np.floor(gdf.geometry.x.astype("float64") / grid_size + 0.5).astype("int64")
    return gdf["category"].astype(str) + "|" + lat_idx.astype(str) + "|" + lon_idx.astype(str)


def h3_cells(gdf: gpd.GeoDataFrame, resolution: int) -> pd.Series:
    if not callable(H3_LATLNG_TO_CELL):  # pragma: no cover
        raise RuntimeError("No suitable H3 lat/lng conversion available.")
    return pd.Series(
        [H3_LATLNG_TO_CELL(lat, lon, resolution) for lat, lon in zip(gdf.geometry.y, gdf.geometry.x)],
        index=gdf.index,
        dtype=object,
    )


def _aggregate(gdf: gpd.GeoDataFrame, keys: pd.Series, extra: Optional[pd.Series] = None) -> gpd.GeoDataFrame:
    df = pd.DataFrame({
        "_cell": keys.values,
        "category": gdf["category"].astype(str).values,
        "name": gdf["name"].values,
        "lat": gdf.geometry.y.values,
        "lon": gdf.geometry.x.values,
    })
    if extra is not None:
        df["h3_id"] = extra.values

    agg_spec = dict(
        category=("category", "first"),
        lat=("lat", "mean"),
        lon=("lon", "mean"),
        weight=("lat", "size"),
        name=("name", cell_label),
    )
    if extra is not None:
        agg_spec["h3_id"] = ("h3_id", "first")

    # sort=False keeps cells in first-seen order
    agg = df.groupby("_cell", sort=False).agg(**agg_spec).reset_index(drop=True)
    agg["name"] = agg["name"].where(agg["name"].notna(), agg["category"])
    agg["weight"] = agg["weight"].astype(int)

    out = gpd.GeoDataFrame(
        agg.drop(columns=["lat", "lon"]),
        geometry=gpd.points_from_xy(agg["lon"], agg["lat"]),
        crs="EPSG:4326",
    )
    return out


def aggregate_grid(gdf: gpd.GeoDataFrame, grid_size: float = config.GRID_SIZE) -> gpd.GeoDataFrame:
    """
    Aggregate features into a regular degree grid per category.

    Args:
        gdf: Location features (one row per establishment)
        grid_size: Cell size in degrees

    Returns:
        GeoDataFrame of points with category, name (label) and weight
    """
    if grid_size <= 0:
        raise ValueError(f"grid_size must be positive, got {grid_size}")
    if gdf is None or gdf.empty:
        return _empty_aggregate()
    out = _aggregate(gdf, grid_keys(gdf, grid_size))
    LOGGER.info("[ok] Created %s aggregated points from %s features (grid %.2f deg)", len(out), len(gdf), grid_size)
    return out


def aggregate_h3(gdf: gpd.GeoDataFrame, resolution: int = config.H3_RES) -> gpd.GeoDataFrame:
    """
    Aggregate features into H3 cells per category.

    Output points sit at the mean member position, not the hex center, and
    carry the cell address as ``h3_id``.
    """
    if not 0 <= int(resolution) <= 15:
        raise ValueError(f"H3 resolution must be within 0-15, got {resolution}")
    if gdf is None or gdf.empty:
        return _empty_aggregate()
    cells = h3_cells(gdf, int(resolution))
    keys = gdf["category"].astype(str) + "|" + cells.astype(str)
    out = _aggregate(gdf, keys, extra=cells)
    LOGGER.info("[ok] Created %s aggregated points from %s features (H3 r%s)", len(out), len(gdf), resolution)
    return out
