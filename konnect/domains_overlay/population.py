"""
Population density overlay built from jewish-population.json.

Expected input shape:
    {"states": {"NY": {"population": 1772000, "density": 9.1}, ...},
     "metros": [{"name": "New York", "population": 1600000,
                 "coordinates": [-73.94, 40.67]}, ...]}
"""
from __future__ import annotations

from typing import Any, Dict, List

from konnect import config
from konnect.poi.schema import make_feature, make_feature_collection, utc_now_iso


def metro_population_points(population: Dict[str, Any], scale: int = config.POPULATION_WEIGHT_SCALE) -> List[Dict[str, Any]]:
    """Metro points; weight saturates at 1 once population reaches ``scale``."""
    points = []
    for metro in population.get("metros") or []:
        coords = metro.get("coordinates")
        if not isinstance(coords, (list, tuple)) or len(coords) != 2:
            continue
        pop = int(metro.get("population") or 0)
        points.append(make_feature(
            coords[0], coords[1],
            name=metro.get("name"),
            population=pop,
            weight=min(pop / scale, 1),
        ))
    return points


def state_population_points(population: Dict[str, Any]) -> List[Dict[str, Any]]:
    points = []
    for state, data in (population.get("states") or {}).items():
        coords = config.STATE_CENTROIDS.get(state)
        if not coords:
            continue
        points.append(make_feature(
            coords[0], coords[1],
            state=state,
            population=int(data.get("population") or 0),
            density=data.get("density"),
        ))
    return points


def build_population_overlay(population: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "metros": make_feature_collection(
            metro_population_points(population),
            generated=utc_now_iso(),
            purpose="Population density heatmap",
        ),
        "states": make_feature_collection(state_population_points(population), generated=utc_now_iso()),
    }
