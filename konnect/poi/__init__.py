"""
konnect.poi - Location ingestion, normalization, and conflation logic.

This module provides the core functionality for fetching establishments from
the Overpass API and normalizing them into the canonical location schema.
"""

from .schema import CANONICAL_LOCATION_SCHEMA, validate_feature, validate_features
from .ingest_osm import fetch_all_categories, fetch_by_metros, fetch_by_regions, fetch_kosher_restaurants
from .normalize import osm_to_feature, elements_to_features
from .conflate import deduplicate, merge_sources, append_new, replace_categories, similar_names, filter_valid_locations

__all__ = [
    "CANONICAL_LOCATION_SCHEMA",
    "validate_feature",
    "validate_features",
    "fetch_all_categories",
    "fetch_by_metros",
    "fetch_by_regions",
    "fetch_kosher_restaurants",
    "osm_to_feature",
    "elements_to_features",
    "deduplicate",
    "merge_sources",
    "append_new",
    "replace_categories",
    "similar_names",
    "filter_valid_locations",
]
