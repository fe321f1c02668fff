"""
Location Normalization

Normalizes raw Overpass elements into canonical location features.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

from .schema import make_feature

ADDRESS_KEYS = ("addr:housenumber", "addr:street", "addr:city", "addr:state", "addr:postcode")
FOOD_AMENITIES = {"restaurant", "fast_food", "cafe"}
FOOD_SHOPS = {"bakery", "deli"}
GROCERY_SHOPS = {"supermarket", "grocery", "kosher"}

_CHABAD_RE = re.compile(r"chabad", re.IGNORECASE)


def element_coordinates(element: Dict[str, Any]) -> Optional[tuple]:
    """Return (lon, lat) for a node, or the center of a way/relation."""
    center = element.get("center")
    if isinstance(center, dict):
        lon, lat = center.get("lon"), center.get("lat")
    else:
        lon, lat = element.get("lon"), element.get("lat")
    if lon is None or lat is None:
        return None
    try:
        return float(lon), float(lat)
    except (TypeError, ValueError):
        return None


def format_address(tags: Dict[str, Any]) -> Optional[str]:
    parts = [str(tags[k]).strip() for k in ADDRESS_KEYS if tags.get(k)]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else None


def _first(tags: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        val = tags.get(key)
        if val:
            return val
    return None


def osm_to_feature(element: Dict[str, Any], category: str, keep_cuisine: bool = False) -> Optional[Dict[str, Any]]:
    """
    Convert one Overpass element into a location feature.

    Args:
        element: Raw element from the Overpass ``elements`` list
        category: Category slug to assign
        keep_cuisine: Carry the ``cuisine`` tag into properties

    Returns:
        GeoJSON feature, or None when the element has no coordinates
    """
    coords = element_coordinates(element)
    if coords is None:
        return None
    lon, lat = coords
    tags = element.get("tags") or {}

    props = {
        "category": category,
        "name": _first(tags, "name", "name:en") or "Unknown",
        "address": format_address(tags),
        "website": _first(tags, "website", "url", "contact:website"),
        "phone": _first(tags, "phone", "contact:phone"),
    }
    if keep_cuisine:
        props["cuisine"] = tags.get("cuisine") or None
    props["osmId"] = element.get("id")
    props["osmType"] = element.get("type")
    props["weight"] = 1
    return make_feature(lon, lat, **props)


def infer_metro_category(tags: Dict[str, Any]) -> str:
    """Pick a category for an element from the broad metro kosher sweep."""
    name = tags.get("name")
    if name and _CHABAD_RE.search(str(name)):
        return "chabad"
    if tags.get("shop") in GROCERY_SHOPS:
        return "groceries"
    return "restaurants"


def is_food_establishment(tags: Dict[str, Any]) -> bool:
    return tags.get("amenity") in FOOD_AMENITIES or tags.get("shop") in FOOD_SHOPS


def elements_to_features(
    elements: Iterable[Dict[str, Any]],
    category: Optional[str] = None,
    keep_cuisine: bool = False,
) -> List[Dict[str, Any]]:
    """
    Convert a batch of elements, dropping those without coordinates.

    When ``category`` is None each element's category is inferred with
    infer_metro_category.
    """
    features = []
    for el in elements or []:
        if not isinstance(el, dict):
            continue
        cat = category or infer_metro_category(el.get("tags") or {})
        feature = osm_to_feature(el, cat, keep_cuisine=keep_cuisine)
        if feature is not None:
            features.append(feature)
    return features
