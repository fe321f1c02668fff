"""
OSM Location Ingestion

Fetches establishments from the Overpass API: nationwide per category, split
by region for queries that time out, by metro area, and as a nationwide
kosher-food sweep. Every fetcher returns a GeoDataFrame in the canonical
location schema.
"""
import logging
import time
from typing import Dict, Iterable, Optional, Tuple

import geopandas as gpd
from tqdm import tqdm

from konnect import config
from konnect.categories import VALID_CATEGORIES
from .conflate import concat_locations, deduplicate
from .normalize import elements_to_features, is_food_establishment
from .overpass import KOSHER_SELECTORS, METRO_SELECTORS, build_query, category_query, fetch_overpass_json
from .schema import features_to_gdf

LOGGER = logging.getLogger("konnect.ingest_osm")

BBox = Tuple[float, float, float, float]


def _pause(delay_s: float, is_last: bool) -> None:
    if delay_s and not is_last:
        time.sleep(delay_s)


def fetch_category(category: str, bbox: Optional[BBox] = None, cache_dir: Optional[str] = None) -> gpd.GeoDataFrame:
    """Fetch one category, nationwide or within a bbox."""
    timeout = config.OVERPASS_TIMEOUT_S if bbox is None else 120
    data = fetch_overpass_json(category_query(category, bbox=bbox, timeout=timeout), cache_dir=cache_dir)
    gdf = features_to_gdf(elements_to_features(data.get("elements"), category))
    LOGGER.info("[ok] Found %s %s", len(gdf), category)
    return gdf


def fetch_all_categories(
    categories: Iterable[str] = VALID_CATEGORIES,
    delay_s: float = config.REQUEST_DELAY_S,
    cache_dir: Optional[str] = None,
    progress: bool = True,
) -> gpd.GeoDataFrame:
    """
    Fetch every category nationwide and deduplicate at ~100 m.

    Args:
        categories: Category slugs to fetch
        delay_s: Sleep between consecutive requests
        cache_dir: Optional raw-response cache
        progress: Show a tqdm progress bar

    Returns:
        GeoDataFrame of unique locations
    """
    categories = list(categories)
    frames = []
    for idx, category in enumerate(tqdm(categories, desc="[fetch] categories", unit="query", disable=not progress)):
        frames.append(fetch_category(category, cache_dir=cache_dir))
        _pause(delay_s, idx == len(categories) - 1)
    return deduplicate(concat_locations(frames), config.FETCH_DEDUP_PRECISION)


def fetch_by_regions(
    categories: Iterable[str] = ("restaurants", "chabad"),
    regions: Dict[str, BBox] = None,
    delay_s: float = config.REQUEST_DELAY_S,
    cache_dir: Optional[str] = None,
    progress: bool = True,
) -> gpd.GeoDataFrame:
    """Fetch categories one regional bbox at a time (for queries that time out nationwide)."""
    regions = regions or config.REGIONS
    jobs = [(cat, name, bbox) for cat in categories for name, bbox in regions.items()]
    frames = []
    for idx, (category, name, bbox) in enumerate(tqdm(jobs, desc="[fetch] regions", unit="query", disable=not progress)):
        LOGGER.info("[fetch] %s in %s", category, name)
        frames.append(fetch_category(category, bbox=bbox, cache_dir=cache_dir))
        _pause(delay_s, idx == len(jobs) - 1)
    return concat_locations(frames)


def fetch_by_metros(
    metros: Dict[str, BBox] = None,
    delay_s: float = config.METRO_DELAY_S,
    cache_dir: Optional[str] = None,
    progress: bool = True,
) -> gpd.GeoDataFrame:
    """Broad kosher sweep per metro; categories are inferred from tags."""
    metros = metros or config.METROS
    frames = []
    items = list(metros.items())
    for idx, (name, bbox) in enumerate(tqdm(items, desc="[fetch] metros", unit="metro", disable=not progress)):
        data = fetch_overpass_json(build_query(METRO_SELECTORS, bbox=bbox, timeout=60), cache_dir=cache_dir)
        gdf = features_to_gdf(elements_to_features(data.get("elements"), category=None, keep_cuisine=True))
        LOGGER.info("[ok] %s: %s found", name, len(gdf))
        frames.append(gdf)
        _pause(delay_s, idx == len(items) - 1)
    return concat_locations(frames)


def fetch_kosher_restaurants(cache_dir: Optional[str] = None) -> gpd.GeoDataFrame:
    """Nationwide kosher sweep, filtered to food establishments."""
    data = fetch_overpass_json(build_query(KOSHER_SELECTORS, timeout=300), cache_dir=cache_dir)
    elements = data.get("elements") or []
    food = [el for el in elements if isinstance(el, dict) and is_food_establishment(el.get("tags") or {})]
    LOGGER.info("[info] Found %s elements, %s food establishments", len(elements), len(food))
    return features_to_gdf(elements_to_features(food, "restaurants", keep_cuisine=True))
