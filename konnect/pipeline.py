"""
Pipeline stages.

Each stage reads its inputs from the data directory, runs the library
functions, writes its artifact(s) back, and returns what it produced so the
CLI (and tests) can report on it.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, Optional

import geopandas as gpd

from konnect import config
from konnect.categories import VALID_CATEGORIES
from konnect.domains_overlay.heatmap import aggregate_grid, aggregate_h3
from konnect.domains_overlay.population import build_population_overlay
from konnect.domains_overlay.surnames import (
    build_surname_heatmaps,
    build_surname_summary,
    read_census_surnames,
    top_features,
)
from konnect.io import load_feature_collection, load_json, write_json
from konnect.poi.conflate import append_new, merge_sources, replace_categories
from konnect.poi.ingest_osm import (
    fetch_all_categories,
    fetch_by_metros,
    fetch_by_regions,
    fetch_kosher_restaurants,
)
from konnect.poi.schema import (
    features_to_gdf,
    gdf_to_features,
    make_feature_collection,
    utc_now_iso,
    validate_features,
)
from konnect.stats import category_breakdown, completeness_stats, log_breakdown, pct, weight_totals

LOGGER = logging.getLogger("konnect.pipeline")


def _write_locations(path: str, gdf: gpd.GeoDataFrame, **metadata) -> str:
    write_json(path, make_feature_collection(gdf_to_features(gdf), **metadata))
    LOGGER.info("[ok] Wrote %s features to %s", len(gdf), path)
    return path


def _load_locations(path: str):
    collection = load_feature_collection(path)
    return collection, features_to_gdf(collection["features"])


def run_fetch(
    data_dir: Optional[str] = None,
    categories: Iterable[str] = VALID_CATEGORIES,
    delay_s: float = config.REQUEST_DELAY_S,
    cache_dir: Optional[str] = None,
) -> gpd.GeoDataFrame:
    """Fetch every category nationwide into osm-locations.json."""
    LOGGER.info("=== Fetching OSM data ===")
    gdf = fetch_all_categories(categories, delay_s=delay_s, cache_dir=cache_dir)
    log_breakdown(f"Total unique features: {len(gdf)}. By category:", category_breakdown(gdf))
    _write_locations(
        config.data_path(config.OSM_LOCATIONS_FILE, data_dir),
        gdf,
        source="OpenStreetMap via Overpass API",
        fetched=utc_now_iso(),
        license=config.DATA_LICENSE,
    )
    return gdf


def _update_osm_locations(data_dir: Optional[str], gdf: gpd.GeoDataFrame, metadata: Dict[str, Any]) -> None:
    metadata = dict(metadata)
    metadata.setdefault("source", "OpenStreetMap via Overpass API")
    metadata.setdefault("license", config.DATA_LICENSE)
    metadata["updated"] = utc_now_iso()
    _write_locations(config.data_path(config.OSM_LOCATIONS_FILE, data_dir), gdf, **metadata)


def run_fetch_regions(
    data_dir: Optional[str] = None,
    categories: Iterable[str] = ("restaurants", "chabad"),
    delay_s: float = config.REQUEST_DELAY_S,
    cache_dir: Optional[str] = None,
) -> gpd.GeoDataFrame:
    """Refetch categories region by region and replace them in osm-locations.json."""
    categories = list(categories)
    LOGGER.info("=== Fetching %s by region ===", ", ".join(categories))
    incoming = fetch_by_regions(categories, delay_s=delay_s, cache_dir=cache_dir)
    collection, existing = _load_locations(config.data_path(config.OSM_LOCATIONS_FILE, data_dir))
    merged = replace_categories(existing, incoming, categories)
    log_breakdown(f"Total: {len(merged)} features. By category:", category_breakdown(merged))
    _update_osm_locations(data_dir, merged, collection["metadata"])
    return merged


def run_fetch_metros(
    data_dir: Optional[str] = None,
    delay_s: float = config.METRO_DELAY_S,
    cache_dir: Optional[str] = None,
) -> Dict[str, int]:
    """Sweep metro areas and append features not yet in osm-locations.json."""
    LOGGER.info("=== Fetching by metro area ===")
    incoming = fetch_by_metros(delay_s=delay_s, cache_dir=cache_dir)
    LOGGER.info("[info] Total fetched: %s", len(incoming))
    collection, existing = _load_locations(config.data_path(config.OSM_LOCATIONS_FILE, data_dir))
    merged, added = append_new(existing, incoming)
    LOGGER.info("[ok] Added: %s", added)
    _update_osm_locations(data_dir, merged, collection["metadata"])
    return added


def run_fetch_restaurants(data_dir: Optional[str] = None, cache_dir: Optional[str] = None) -> int:
    """Nationwide kosher-food sweep; append new restaurants to osm-locations.json."""
    LOGGER.info("=== Fetching kosher restaurants ===")
    incoming = fetch_kosher_restaurants(cache_dir=cache_dir)
    collection, existing = _load_locations(config.data_path(config.OSM_LOCATIONS_FILE, data_dir))
    merged, added = append_new(existing, incoming)
    count = added.get("restaurants", 0)
    LOGGER.info("[ok] Added %s new restaurants", count)
    _update_osm_locations(data_dir, merged, collection["metadata"])
    return count


def run_merge(
    data_dir: Optional[str] = None,
    grid_size: float = config.GRID_SIZE,
    h3_res: Optional[int] = None,
    match_names: bool = False,
) -> Dict[str, gpd.GeoDataFrame]:
    """
    Merge OSM and curated locations, then build heatmap points.

    Writes locations-detailed.json (merged) and points.json (aggregated).
    With ``h3_res`` the heatmap is bucketed by H3 cell instead of the grid.
    """
    LOGGER.info("=== Merging data ===")
    detailed_path = config.data_path(config.DETAILED_FILE, data_dir)
    _, osm = _load_locations(config.data_path(config.OSM_LOCATIONS_FILE, data_dir))
    _, curated = _load_locations(detailed_path)
    LOGGER.info("[info] OSM data: %s features", len(osm))
    LOGGER.info("[info] Detailed data: %s features", len(curated))

    merged = merge_sources(osm, curated, match_names=match_names)
    log_breakdown(f"Merged: {len(merged)} unique features. By category:", category_breakdown(merged))
    _write_locations(
        detailed_path,
        merged,
        merged=utc_now_iso(),
        sources=["OpenStreetMap", "Manual additions"],
        license="Data from OpenStreetMap contributors (ODbL 1.0)",
    )

    if h3_res is not None:
        aggregated = aggregate_h3(merged, h3_res)
    else:
        aggregated = aggregate_grid(merged, grid_size)
    _write_locations(
        config.data_path(config.POINTS_FILE, data_dir),
        aggregated,
        generated=utc_now_iso(),
        purpose="Heat map visualization",
        note="Weight represents number of establishments in area",
    )
    totals = weight_totals(aggregated)
    log_breakdown("Aggregated totals by category:", totals)
    LOGGER.info("[ok] Total establishments represented: %s", sum(totals.values()))
    return {"merged": merged, "aggregated": aggregated}


def run_build(data_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Validate the detailed locations and write locations-combined.json.

    Raises:
        FileNotFoundError: when neither locations-detailed.json nor points.json exists
    """
    LOGGER.info("=== Data builder ===")
    detailed_path = config.data_path(config.DETAILED_FILE, data_dir)
    points_path = config.data_path(config.POINTS_FILE, data_dir)
    if not os.path.exists(detailed_path) and not os.path.exists(points_path):
        raise FileNotFoundError(f"No data files found in {data_dir or config.DATA_DIR}")

    detailed = load_feature_collection(detailed_path) if os.path.exists(detailed_path) else None
    points = load_feature_collection(points_path) if os.path.exists(points_path) else None

    report: Dict[str, Any] = {"validation": None, "stats": None}
    features = detailed["features"] if detailed else []
    if detailed:
        report["validation"] = validate_features(features)
        LOGGER.info(
            "[ok] Valid: %s, Invalid: %s",
            report["validation"]["valid"], report["validation"]["invalid"],
        )
        for problem in report["validation"]["problems"]:
            LOGGER.debug("  Invalid: %s - %s", problem["name"], ", ".join(problem["errors"]))

        stats = completeness_stats(features_to_gdf(features))
        report["stats"] = stats
        log_breakdown(f"Total locations: {stats['total']}. By category:", stats["byCategory"])
        LOGGER.info("  With website: %s (%s%%)", stats["withWebsite"], pct(stats["withWebsite"], stats["total"]))
        LOGGER.info("  With address: %s (%s%%)", stats["withAddress"], pct(stats["withAddress"], stats["total"]))

    output = make_feature_collection(
        features,
        generated=utc_now_iso(),
        detailedCount=len(features),
        pointsCount=len(points["features"]) if points else 0,
    )
    out_path = write_json(config.data_path(config.COMBINED_FILE, data_dir), output)
    LOGGER.info("[ok] Wrote %s features to %s", len(features), out_path)
    report["combined"] = output
    return report


def run_surnames(data_dir: Optional[str] = None, csv_path: Optional[str] = None) -> Dict[str, Any]:
    """Parse the census surname CSV into jewish-surnames.json."""
    csv_path = csv_path or config.data_path(config.SURNAME_CSV, data_dir)
    summary = build_surname_summary(read_census_surnames(csv_path))
    write_json(config.data_path(config.SURNAMES_FILE, data_dir), summary)
    LOGGER.info("[ok] Generated %s surnames, %s people", summary["meta"]["totalSurnames"], summary["meta"]["totalPeople"])
    for key, val in summary["categories"].items():
        LOGGER.info("  %s: %s (%s names)", key, val["count"], len(val["names"]))
    return summary


def run_surname_heatmap(data_dir: Optional[str] = None) -> Dict[str, Any]:
    """Combine jewish-surnames.json and jewish-population.json into surname-heatmaps.json."""
    surnames_path = config.data_path(config.SURNAMES_FILE, data_dir)
    population_path = config.data_path(config.POPULATION_FILE, data_dir)
    summary = load_json(surnames_path)
    population = load_json(population_path)
    if not isinstance(summary, dict):
        raise FileNotFoundError(f"Surname summary missing or unreadable: {surnames_path}")
    if not isinstance(population, dict):
        raise FileNotFoundError(f"Population data missing or unreadable: {population_path}")

    output = build_surname_heatmaps(summary, population)
    write_json(config.data_path(config.SURNAME_HEATMAPS_FILE, data_dir), output)

    for key, cat in output["categories"].items():
        LOGGER.info("  %s: %s people nationally", key, cat["nationalCount"])
    for i, f in enumerate(top_features(output["metroHeatmaps"].get("cohen", {})), start=1):
        LOGGER.info("  %s. %s: ~%s Cohens", i, f["properties"]["metro"], f["properties"]["estimatedCount"])
    return output


def run_population(data_dir: Optional[str] = None) -> Dict[str, Any]:
    """Build population-points.json from jewish-population.json."""
    population_path = config.data_path(config.POPULATION_FILE, data_dir)
    population = load_json(population_path)
    if not isinstance(population, dict):
        raise FileNotFoundError(f"Population data missing or unreadable: {population_path}")
    overlay = build_population_overlay(population)
    write_json(config.data_path(config.POPULATION_POINTS_FILE, data_dir), overlay)
    LOGGER.info(
        "[ok] Wrote %s metro and %s state population points",
        len(overlay["metros"]["features"]), len(overlay["states"]["features"]),
    )
    return overlay
