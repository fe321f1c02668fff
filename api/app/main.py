#!/usr/bin/env python3
# api/app/main.py

import os
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import geopandas as gpd
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from konnect import config
from konnect.categories import get_category, list_categories
from konnect.domains_overlay.surnames import ALL_GROUP, HEATMAP_GROUPS
from konnect.io import load_json
from konnect.poi.schema import features_to_gdf, gdf_to_features, make_feature_collection

APP_NAME = "Kosher Konnect Data API"

LOGGER = logging.getLogger("konnect.api")


# ---------- Config ----------
def data_dir() -> str:
    return os.environ.get("KK_DATA_DIR", config.DATA_DIR)


# ---------- Helpers ----------
def parse_bbox(bbox: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    """'west,south,east,north' -> tuple, validated."""
    if not bbox:
        return None
    try:
        west, south, east, north = (float(v) for v in bbox.split(","))
    except ValueError:
        raise HTTPException(status_code=400, detail="bbox must be 'west,south,east,north'")
    if west > east or south > north:
        raise HTTPException(status_code=400, detail="bbox min values must not exceed max values")
    return west, south, east, north


# ---------- Data loading (cached) ----------
@lru_cache(maxsize=16)
def _load_cached(path: str, mtime: float) -> Any:
    return load_json(path)


def load_artifact(filename: str) -> Any:
    path = config.data_path(filename, data_dir())
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail=f"Data file not found: {filename}")
    data = _load_cached(path, os.path.getmtime(path))
    if data is None:
        LOGGER.error("[error] Failed to load %s", path)
        raise HTTPException(status_code=500, detail=f"Data file unreadable: {filename}")
    return data


def filter_collection(collection: Dict[str, Any], category: Optional[str], bbox: Optional[str]) -> Dict[str, Any]:
    features = collection.get("features") or []
    if category:
        try:
            get_category(category)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Category '{category}' not found.")
        features = [f for f in features if (f.get("properties") or {}).get("category") == category]

    box = parse_bbox(bbox)
    if box is not None and features:
        gdf: gpd.GeoDataFrame = features_to_gdf(features)
        west, south, east, north = box
        features = gdf_to_features(gdf.cx[west:east, south:north])

    return make_feature_collection(features, **(collection.get("metadata") or {}))


# ---------- FastAPI ----------
app = FastAPI(title=APP_NAME)

# Basic CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to your frontend's domain
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"ok": True, "app": APP_NAME}


@app.get("/api/categories")
def get_categories():
    """Category registry for the filter sidebar."""
    return [
        {"id": c.id, "slug": c.slug, "name": c.display_name, "color": c.color}
        for c in list_categories().values()
    ]


@app.get("/api/locations")
def get_locations(
    category: Optional[str] = Query(None, description="Category slug, e.g. 'synagogues'"),
    bbox: Optional[str] = Query(None, description="west,south,east,north"),
):
    """Merged, deduplicated establishments as a GeoJSON FeatureCollection."""
    return filter_collection(load_artifact(config.DETAILED_FILE), category, bbox)


@app.get("/api/heatmap")
def get_heatmap(
    category: Optional[str] = Query(None, description="Category slug, e.g. 'restaurants'"),
    bbox: Optional[str] = Query(None, description="west,south,east,north"),
):
    """Aggregated heatmap points (weight = establishments per cell)."""
    return filter_collection(load_artifact(config.POINTS_FILE), category, bbox)


@app.get("/api/population")
def get_population(level: str = Query("metro", description="'metro' or 'state'")):
    if level not in ("metro", "state"):
        raise HTTPException(status_code=400, detail="level must be 'metro' or 'state'")
    overlay = load_artifact(config.POPULATION_POINTS_FILE)
    return overlay.get("metros" if level == "metro" else "states") or make_feature_collection([])


@app.get("/api/surnames/{group}")
def get_surname_heatmap(group: str, level: str = Query("state", description="'state' or 'metro'")):
    """Estimated surname distribution for one surname group."""
    if group != ALL_GROUP and group not in HEATMAP_GROUPS:
        raise HTTPException(status_code=404, detail=f"Surname group '{group}' not found.")
    if level not in ("state", "metro"):
        raise HTTPException(status_code=400, detail="level must be 'state' or 'metro'")
    heatmaps = load_artifact(config.SURNAME_HEATMAPS_FILE)
    key = "stateHeatmaps" if level == "state" else "metroHeatmaps"
    collection = (heatmaps.get(key) or {}).get(group)
    if collection is None:
        raise HTTPException(status_code=404, detail=f"No {level} heatmap for '{group}'")
    return {
        "group": group,
        "info": (heatmaps.get("categories") or {}).get(group),
        "heatmap": collection,
    }


if __name__ == "__main__":
    # For local dev, allow overriding the port
    port = int(os.environ.get("PORT", 5174))  # Default to 5174 to avoid conflict with frontend
    print(f"Starting Kosher Konnect data server on http://0.0.0.0:{port}")
    print(f"Using data from KK_DATA_DIR={data_dir()}")
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True, app_dir="api/app")
