"""
Overpass API client.

Builds Overpass QL queries for each establishment category and posts them
to the configured endpoints with retry/backoff. Fetching is best-effort: a
query that fails at every endpoint yields an empty element list.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from konnect import config

LOGGER = logging.getLogger("konnect.overpass")

BBox = Tuple[float, float, float, float]  # south, west, north, east

US_AREA = 'area["ISO3166-1"="US"]->.usa;'

# Selector lines per category; the area/bbox filter is applied by build_query.
CATEGORY_SELECTORS: Dict[str, List[str]] = {
    "synagogues": [
        'node["amenity"="place_of_worship"]["religion"="jewish"]',
        'way["amenity"="place_of_worship"]["religion"="jewish"]',
        'node["building"="synagogue"]',
        'way["building"="synagogue"]',
    ],
    "restaurants": [
        'node["amenity"="restaurant"]["cuisine"~"kosher",i]',
        'node["amenity"="restaurant"]["diet:kosher"="yes"]',
        'node["amenity"="restaurant"]["kosher"="yes"]',
        'node["amenity"="fast_food"]["cuisine"~"kosher",i]',
        'node["amenity"="fast_food"]["diet:kosher"="yes"]',
        'node["amenity"="cafe"]["diet:kosher"="yes"]',
        'way["amenity"="restaurant"]["cuisine"~"kosher",i]',
        'way["amenity"="restaurant"]["diet:kosher"="yes"]',
    ],
    "groceries": [
        'node["shop"="supermarket"]["diet:kosher"="yes"]',
        'node["shop"="supermarket"]["kosher"="yes"]',
        'node["shop"="kosher"]',
        'node["shop"="butcher"]["diet:kosher"="yes"]',
        'node["shop"="deli"]["diet:kosher"="yes"]',
        'way["shop"="supermarket"]["diet:kosher"="yes"]',
        'way["shop"="kosher"]',
    ],
    "chabad": [
        'node["amenity"="place_of_worship"]["name"~"Chabad",i]',
        'way["amenity"="place_of_worship"]["name"~"Chabad",i]',
        'node["name"~"Chabad",i]["amenity"]',
    ],
    "mikvahs": [
        'node["amenity"="mikveh"]',
        'node["amenity"="mikvah"]',
        'node["building"="mikveh"]',
        'node["name"~"mikvah|mikveh|mikva",i]',
        'way["amenity"="mikveh"]',
        'way["amenity"="mikvah"]',
    ],
    "schools": [
        'node["amenity"="school"]["religion"="jewish"]',
        'node["amenity"="school"]["name"~"Jewish|Hebrew|Yeshiva|Torah",i]',
        'way["amenity"="school"]["religion"="jewish"]',
        'way["amenity"="school"]["name"~"Jewish|Hebrew|Yeshiva|Torah",i]',
        'node["amenity"="college"]["religion"="jewish"]',
        'node["amenity"="university"]["name"~"Yeshiva",i]',
    ],
    "jcc": [
        'node["name"~"Jewish Community Center|JCC",i]',
        'way["name"~"Jewish Community Center|JCC",i]',
        'node["amenity"="community_centre"]["name"~"Jewish|JCC",i]',
    ],
    "judaica": [
        'node["shop"="judaica"]',
        'node["shop"~"books|gift"]["name"~"judaica|jewish",i]',
        'way["shop"="judaica"]',
    ],
}

# Broad kosher sweep used for metro areas; categories are inferred per element.
METRO_SELECTORS = [
    'nwr["diet:kosher"="yes"]',
    'nwr["kosher"="yes"]',
    'nwr["cuisine"~"kosher",i]',
    'nwr["name"~"Chabad",i]["amenity"]',
]

# Nationwide kosher sweep; callers keep food establishments only.
KOSHER_SELECTORS = [
    'nwr["diet:kosher"="yes"]',
    'nwr["kosher"="yes"]',
    'nwr["cuisine"~"kosher",i]',
]


def format_bbox(bbox: BBox) -> str:
    south, west, north, east = bbox
    return f"{south},{west},{north},{east}"


def build_query(selectors: Sequence[str], bbox: Optional[BBox] = None, timeout: int = config.OVERPASS_TIMEOUT_S) -> str:
    """
    Render an Overpass QL union query.

    Without a bbox the selectors are scoped to the US area; with one, the
    bbox is set globally for the whole query. Ways and relations return
    their center point.
    """
    if bbox is None:
        header = f"[out:json][timeout:{timeout}];\n{US_AREA}"
        body = "\n".join(f"  {sel}(area.usa);" for sel in selectors)
    else:
        header = f"[out:json][timeout:{timeout}][bbox:{format_bbox(bbox)}];"
        body = "\n".join(f"  {sel};" for sel in selectors)
    return f"{header}\n(\n{body}\n);\nout center;\n"


def category_query(category: str, bbox: Optional[BBox] = None, timeout: int = config.OVERPASS_TIMEOUT_S) -> str:
    if category not in CATEGORY_SELECTORS:
        raise ValueError(f"No Overpass selectors for category '{category}'")
    return build_query(CATEGORY_SELECTORS[category], bbox=bbox, timeout=timeout)


def _http_post_with_backoff(url: str, data: Dict[str, Any], max_attempts: int) -> Optional[requests.Response]:
    wait = config.BACKOFF_START_S
    for attempt in range(1, max_attempts + 1):
        try:
            resp = requests.post(
                url,
                data=data,
                headers={"User-Agent": config.USER_AGENT},
                timeout=config.HTTP_TIMEOUT_S,
            )
            if resp.status_code == 200:
                return resp
            if resp.status_code in config.RETRY_STATUS:
                LOGGER.info(
                    "[overpass] %s returned %s; retrying in %.1fs (attempt %s/%s)",
                    url, resp.status_code, wait, attempt, max_attempts,
                )
            else:
                LOGGER.warning("[overpass] %s error %s: %s", url, resp.status_code, resp.text[:120])
                return None
        except requests.RequestException as exc:
            LOGGER.info(
                "[overpass] request error: %s; retrying in %.1fs (attempt %s/%s)",
                exc, wait, attempt, max_attempts,
            )
        if attempt < max_attempts:
            time.sleep(wait)
            wait = min(wait * config.BACKOFF_FACTOR, config.BACKOFF_CAP_S)
    return None


def _cache_path(cache_dir: str, query: str) -> str:
    digest = hashlib.sha1(query.encode("utf-8")).hexdigest()[:16]
    return os.path.join(cache_dir, f"overpass_{digest}.json")


def fetch_overpass_json(
    query: str,
    urls: Optional[Iterable[str]] = None,
    max_attempts: Optional[int] = None,
    cache_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run a query against the Overpass endpoints.

    Args:
        query: Overpass QL text
        urls: Endpoints to try in order (defaults to config.OVERPASS_URLS)
        max_attempts: Attempts per endpoint (defaults to config.MAX_ATTEMPTS)
        cache_dir: When set, raw responses are cached here by query hash

    Returns:
        Parsed response; ``{"elements": []}`` when every endpoint failed
    """
    cache_path = _cache_path(cache_dir, query) if cache_dir else None
    if cache_path and os.path.exists(cache_path):
        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data.get("elements"), list):
                LOGGER.debug("[overpass] cache hit %s", cache_path)
                return data
        except (OSError, json.JSONDecodeError, AttributeError) as exc:
            LOGGER.warning("[overpass] Failed to read cache %s: %s; re-fetching", cache_path, exc)

    attempts = max_attempts or config.MAX_ATTEMPTS
    for url in (urls or config.OVERPASS_URLS):
        resp = _http_post_with_backoff(url, data={"data": query}, max_attempts=attempts)
        if resp is None:
            continue
        try:
            data = resp.json()
        except ValueError as exc:
            LOGGER.warning("[overpass] %s returned invalid JSON: %s", url, exc)
            continue
        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            LOGGER.warning("[overpass] %s returned no element list", url)
            continue
        if cache_path:
            os.makedirs(cache_dir, exist_ok=True)
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        return data

    LOGGER.warning("[warn] Overpass request failed at all endpoints; continuing with no results")
    return {"elements": []}
