"""
Location Conflation and Deduplication

Removes duplicate establishments using a proximity key (category plus
rounded lat/lon) and merges fetched OSM data with curated records, keeping
the more complete record when two collide.
"""
import logging
import re
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
import geopandas as gpd

from konnect import config
from konnect.categories import is_valid_category
from .schema import CANONICAL_LOCATION_SCHEMA, create_empty_location_dataframe

LOGGER = logging.getLogger("konnect.conflate")

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_HELPER_COLS = ["_dupkey", "_namekey", "_realkey", "_score", "_order", "_slot", "_src_rank"]


def normalize_name(name) -> str:
    if not name or not isinstance(name, str):
        return ""
    return _NON_ALNUM.sub("", name.lower())


def similar_names(a, b) -> bool:
    """
    Case/punctuation-insensitive name equality; missing names never match.

    Public counterpart of the name key merge_sources groups on with ``match_names``.
    """
    if not a or not b:
        return False
    return normalize_name(a) == normalize_name(b)


def _round_half_up(values: pd.Series, factor: float) -> pd.Series:
    return np.floor(values.astype("float64") * factor + 0.5).astype("int64")


def proximity_keys(gdf: gpd.GeoDataFrame, precision: int) -> pd.Series:
    """
    Build the dedup key for every row: ``category-round(lat*10^p)-round(lon*10^p)``.

    Rounding is half-up so keys are stable for points sitting on a boundary.
    """
    if gdf.empty:
        return pd.Series([], dtype=object, index=gdf.index)
    factor = 10 ** precision
    lat = _round_half_up(gdf.geometry.y, factor).astype(str)
    lon = _round_half_up(gdf.geometry.x, factor).astype(str)
    return gdf["category"].astype(str) + "-" + lat + "-" + lon


def is_present(val) -> bool:
    if val is None:
        return False
    if isinstance(val, float) and np.isnan(val):
        return False
    return bool(str(val).strip())


def completeness_score(gdf: gpd.GeoDataFrame) -> pd.Series:
    """One point each for having a website and an address."""
    website = gdf["website"].apply(is_present) if "website" in gdf.columns else False
    address = gdf["address"].apply(is_present) if "address" in gdf.columns else False
    return (pd.Series(website, index=gdf.index).astype(int)
            + pd.Series(address, index=gdf.index).astype(int))


def _as_gdf(df) -> gpd.GeoDataFrame:
    gdf = gpd.GeoDataFrame(df, geometry="geometry", crs="EPSG:4326")
    for col in CANONICAL_LOCATION_SCHEMA.keys():
        if col not in gdf.columns:
            gdf[col] = None
    return gdf


def concat_locations(frames) -> gpd.GeoDataFrame:
    frames = [f for f in frames if f is not None and not f.empty]
    if not frames:
        return create_empty_location_dataframe()
    return _as_gdf(pd.concat(frames, ignore_index=True))


def filter_valid_locations(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Drop features with an unknown category or coordinates outside lon/lat range."""
    if gdf is None or gdf.empty:
        return create_empty_location_dataframe()
    known = gdf["category"].apply(is_valid_category).astype(bool)
    in_range = gdf.geometry.x.between(-180, 180) & gdf.geometry.y.between(-90, 90)
    if (~known).any():
        LOGGER.info("[info] Dropped %s features with unknown categories", int((~known).sum()))
    if (known & ~in_range).any():
        LOGGER.warning("[warn] Dropped %s features with out-of-range coordinates", int((known & ~in_range).sum()))
    return _as_gdf(gdf[known & in_range].reset_index(drop=True))


def deduplicate(gdf: gpd.GeoDataFrame, precision: int = config.FETCH_DEDUP_PRECISION) -> gpd.GeoDataFrame:
    """
    Keep the first feature for each proximity key, preserving input order.

    Args:
        gdf: Location features
        precision: Decimal places of lat/lon in the key

    Returns:
        Deduplicated GeoDataFrame (never larger than the input)
    """
    if gdf is None or gdf.empty:
        return create_empty_location_dataframe()
    keys = proximity_keys(gdf, precision)
    out = gdf[~keys.duplicated(keep="first")].reset_index(drop=True)
    LOGGER.debug("[ok] Deduplicated %s -> %s features (precision %s)", len(gdf), len(out), precision)
    return _as_gdf(out)


def merge_sources(
    primary: gpd.GeoDataFrame,
    curated: gpd.GeoDataFrame,
    precision: int = config.MERGE_DEDUP_PRECISION,
    match_names: bool = False,
) -> gpd.GeoDataFrame:
    """
    Merge fetched (primary) locations with curated ones.

    Primary features are deduplicated first-wins. Each curated feature then
    either replaces the feature holding its key, when its completeness score
    is strictly higher, or is appended when the key is new. A replacement
    keeps the position of the feature it replaces.

    With ``match_names`` a feature whose normalized name and category match
    an earlier feature in the same ~100 m cell is treated as the same place.
    The result is then collapsed by the precision key once more, so no two
    output features ever share a key.

    Args:
        primary: OSM features
        curated: Manually curated features
        precision: Decimal places of lat/lon in the key
        match_names: Also collapse same-named neighbours

    Returns:
        Merged GeoDataFrame
    """
    primary = deduplicate(filter_valid_locations(primary), precision)
    curated = filter_valid_locations(curated)
    LOGGER.info("[info] Merging %s primary + %s curated features", len(primary), len(curated))

    combined = concat_locations([
        primary.assign(_src_rank=0) if not primary.empty else None,
        curated.assign(_src_rank=1) if not curated.empty else None,
    ])
    if combined.empty:
        return create_empty_location_dataframe()

    combined["_order"] = np.arange(len(combined))
    combined["_dupkey"] = proximity_keys(combined, precision)

    if match_names:
        names = combined["name"].apply(normalize_name)
        named = (names != "") & (names != "unknown")
        coarse = proximity_keys(combined, config.FETCH_DEDUP_PRECISION)
        combined["_namekey"] = coarse + "|" + names
        first_key = combined[named].groupby("_namekey")["_dupkey"].transform("first")
        combined.loc[named, "_dupkey"] = first_key

    combined["_score"] = completeness_score(combined)
    combined["_slot"] = combined.groupby("_dupkey")["_order"].transform("min")

    # Highest score wins; ties go to whoever held the key first.
    ranked = combined.sort_values(["_dupkey", "_score", "_order"], ascending=[True, False, True], kind="mergesort")
    winners = ranked.drop_duplicates(subset=["_dupkey"], keep="first").sort_values("_slot")
    if match_names:
        # A name match frees the matched feature's own key; two winners may now share one.
        winners = winners.assign(_realkey=proximity_keys(winners, precision))
        winners = (
            winners.sort_values(["_realkey", "_score", "_slot"], ascending=[True, False, True], kind="mergesort")
            .drop_duplicates(subset=["_realkey"], keep="first")
            .sort_values("_slot", kind="mergesort")
        )
    merged = winners.drop(columns=[c for c in _HELPER_COLS if c in winners.columns]).reset_index(drop=True)

    replaced = int((winners["_src_rank"] == 1).sum())
    LOGGER.info("[ok] Merged: %s unique features (%s from curated data)", len(merged), replaced)
    return _as_gdf(merged)


def append_new(
    existing: gpd.GeoDataFrame,
    incoming: gpd.GeoDataFrame,
    precision: int = config.MERGE_DEDUP_PRECISION,
) -> Tuple[gpd.GeoDataFrame, Dict[str, int]]:
    """
    Append incoming features whose proximity key is not present yet.

    Returns:
        (combined GeoDataFrame, {category: number added})
    """
    if incoming is None or incoming.empty:
        base = existing if existing is not None and not existing.empty else create_empty_location_dataframe()
        return _as_gdf(base), {}
    if existing is None or existing.empty:
        existing = create_empty_location_dataframe()

    seen = set(proximity_keys(existing, precision))
    keys = proximity_keys(incoming, precision)
    mask = ~keys.isin(seen) & ~keys.duplicated(keep="first")
    added = incoming[mask]
    counts = {str(k): int(v) for k, v in added["category"].value_counts().items()}
    return concat_locations([existing, added]), counts


def replace_categories(
    existing: gpd.GeoDataFrame,
    incoming: gpd.GeoDataFrame,
    categories: Iterable[str],
    precision: int = config.FETCH_DEDUP_PRECISION,
) -> gpd.GeoDataFrame:
    """Swap out every existing feature in ``categories`` for the incoming ones."""
    categories = list(categories)
    kept: Optional[gpd.GeoDataFrame] = None
    if existing is not None and not existing.empty:
        kept = existing[~existing["category"].isin(categories)]
    return deduplicate(concat_locations([kept, incoming]), precision)
