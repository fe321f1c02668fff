#!/usr/bin/env python3
"""
Kosher Konnect establishment categories: maps slugs to category objects.

Each category has:
- id: stable integer used by the map front end
- slug: string identifier stored in feature properties
- display_name: label shown in the filter sidebar
- color: hex colour for markers and heatmap ramps
"""

from dataclasses import dataclass
from typing import Dict

@dataclass(frozen=True)
class Category:
    id: int
    slug: str
    display_name: str
    color: str

# Category registry
CATEGORIES: Dict[str, Category] = {
    "synagogues": Category(id=1, slug="synagogues", display_name="Synagogues", color="#4ea8de"),
    "restaurants": Category(id=2, slug="restaurants", display_name="Kosher Restaurants", color="#48bb78"),
    "groceries": Category(id=3, slug="groceries", display_name="Kosher Groceries", color="#68d391"),
    "chabad": Category(id=4, slug="chabad", display_name="Chabad Houses", color="#f6ad55"),
    "mikvahs": Category(id=5, slug="mikvahs", display_name="Mikvahs", color="#4fd1c5"),
    "schools": Category(id=6, slug="schools", display_name="Day Schools", color="#9f7aea"),
    "jcc": Category(id=7, slug="jcc", display_name="JCCs", color="#ed64a6"),
    "judaica": Category(id=8, slug="judaica", display_name="Judaica Shops", color="#fc8181"),
}

VALID_CATEGORIES = tuple(CATEGORIES.keys())

def get_category(slug: str) -> Category:
    """Get category by slug, raise if not found."""
    if slug not in CATEGORIES:
        raise ValueError(f"Unknown category slug: {slug}. Available: {list(CATEGORIES.keys())}")
    return CATEGORIES[slug]

def is_valid_category(slug) -> bool:
    return isinstance(slug, str) and slug in CATEGORIES

def list_categories() -> Dict[str, Category]:
    """Return all available categories."""
    return CATEGORIES.copy()
