"""
Canonical Location Schema Definition

Defines the property set every location feature carries after normalization,
plus the conversions between GeoJSON features and GeoDataFrames.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry import Point

from konnect.categories import VALID_CATEGORIES

# Canonical property schema.
# Order here is the order properties are written back to GeoJSON.
CANONICAL_LOCATION_SCHEMA = {
    "category": "str",
    "name": "str",
    "address": "str",
    "website": "str",
    "phone": "str",
    "cuisine": "str",
    "osmId": "int",
    "osmType": "str",
    "weight": "float",
}

# Properties every feature must carry when written
REQUIRED_PROPERTIES = ("category", "name", "address", "website", "phone", "weight")


def validate_feature(feature: Any, valid_categories: Iterable[str] = VALID_CATEGORIES) -> List[str]:
    """
    Check a single feature against the location schema.

    Args:
        feature: Parsed GeoJSON feature (dict)
        valid_categories: Allowed category slugs

    Returns:
        List of error strings, empty when the feature is valid
    """
    errors: List[str] = []
    if not isinstance(feature, dict):
        return ["Missing or invalid type"]

    if feature.get("type") != "Feature":
        errors.append("Missing or invalid type")

    props = feature.get("properties") or {}
    category = props.get("category")
    if not category:
        errors.append("Missing category")
    elif category not in set(valid_categories):
        errors.append(f"Invalid category: {category}")

    if not props.get("name"):
        errors.append("Missing name")

    coords = (feature.get("geometry") or {}).get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        errors.append("Invalid coordinates")
    else:
        try:
            lon, lat = float(coords[0]), float(coords[1])
        except (TypeError, ValueError):
            errors.append("Invalid coordinates")
        else:
            if lon < -180 or lon > 180 or lat < -90 or lat > 90:
                errors.append("Coordinates out of range")

    return errors


def validate_features(features: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate a sequence of features and summarise the outcome."""
    valid, invalid = 0, 0
    problems = []
    for feature in features:
        errors = validate_feature(feature)
        if errors:
            invalid += 1
            name = ((feature or {}).get("properties") or {}).get("name") if isinstance(feature, dict) else None
            problems.append({"name": name or "unknown", "errors": errors})
        else:
            valid += 1
    return {"valid": valid, "invalid": invalid, "problems": problems}


def make_feature(lon: float, lat: float, **properties) -> Dict[str, Any]:
    """Build a point feature; unspecified canonical properties are left out."""
    return {
        "type": "Feature",
        "properties": dict(properties),
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
    }


def make_feature_collection(features: List[Dict[str, Any]], **metadata) -> Dict[str, Any]:
    """Wrap features in a FeatureCollection with a metadata block."""
    return {
        "type": "FeatureCollection",
        "metadata": dict(metadata),
        "features": list(features),
    }


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def create_empty_location_dataframe() -> gpd.GeoDataFrame:
    """Create an empty GeoDataFrame with the canonical location schema."""
    return gpd.GeoDataFrame(
        columns=list(CANONICAL_LOCATION_SCHEMA.keys()) + ["geometry"],
        geometry="geometry",
        crs="EPSG:4326",
    )


def features_to_gdf(features: Iterable[Dict[str, Any]]) -> gpd.GeoDataFrame:
    """
    Convert GeoJSON point features into a GeoDataFrame.

    Features without usable point coordinates are dropped. Extra properties
    are kept as columns so they round-trip back to GeoJSON.
    """
    rows = []
    for feature in features or []:
        coords = ((feature or {}).get("geometry") or {}).get("coordinates")
        if not isinstance(coords, (list, tuple)) or len(coords) != 2:
            continue
        try:
            lon, lat = float(coords[0]), float(coords[1])
        except (TypeError, ValueError):
            continue
        row = dict(feature.get("properties") or {})
        row["geometry"] = Point(lon, lat)
        rows.append(row)

    if not rows:
        return create_empty_location_dataframe()

    # object dtype keeps osmId/weight ints from turning into floats around nulls
    df = pd.DataFrame(rows, dtype=object)
    gdf = gpd.GeoDataFrame(df, geometry="geometry", crs="EPSG:4326")
    for col in CANONICAL_LOCATION_SCHEMA.keys():
        if col not in gdf.columns:
            gdf[col] = None
    return gdf


def _jsonable(value: Any) -> Optional[Any]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "item"):
        # numpy scalar
        value = value.item()
        if isinstance(value, float) and value != value:
            return None
    return value


def gdf_to_features(gdf: gpd.GeoDataFrame) -> List[Dict[str, Any]]:
    """
    Convert a GeoDataFrame back into GeoJSON point features.

    Required properties are always present (null when missing); optional ones
    are dropped when null to keep the files small.
    """
    if gdf is None or gdf.empty:
        return []

    prop_cols = [c for c in gdf.columns if c != "geometry" and not str(c).startswith("_")]
    features = []
    for geom, values in zip(gdf.geometry, gdf[prop_cols].itertuples(index=False, name=None)):
        props = {}
        for col, raw in zip(prop_cols, values):
            val = _jsonable(raw)
            if val is None and col not in REQUIRED_PROPERTIES:
                continue
            props[col] = val
        features.append(make_feature(float(geom.x), float(geom.y), **props))
    return features
