"""
Surname distribution overlay.

Parses the Census 2010 surname table for common Jewish surnames, groups the
names into families, and spreads national counts across states and metros in
proportion to their Jewish population to produce heatmap points.

Usage:

    konnect surnames --csv data/census/jewish_surnames.csv
    konnect surname-heatmap

Counts are estimates: the Census publishes surname totals nationally only.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from konnect import config
from konnect.poi.schema import make_feature, utc_now_iso

LOGGER = logging.getLogger("konnect.surnames")

CENSUS_COLUMNS = [
    "name", "rank", "count", "prop100k", "cum_prop100k",
    "pctwhite", "pctblack", "pctapi", "pctaian", "pct2prace", "pcthispanic",
]
SUPPRESSED = "(S)"

DEMOGRAPHIC_COLUMNS = {
    "white": "pctwhite",
    "black": "pctblack",
    "asian": "pctapi",
    "native": "pctaian",
    "multiracial": "pct2prace",
    "hispanic": "pcthispanic",
}

# Regex families summarised in jewish-surnames.json
SURNAME_GROUPS = {
    "cohen_tribe": r"^(COHEN|KOHN|COHN)$",
    "levy_tribe": r"^(LEVY|LEVI|LEVIN|LEVINE|LEVINSON|LEVITT)$",
    "gold_family": r"^GOLD",
    "silver_family": r"^SILVER",
    "berg_suffix": r"BERG$",
    "stein_suffix": r"STEIN$",
    "man_suffix": r"MAN$",
    "witz_suffix": r"WITZ$",
    "professions": r"^(SCHNEIDER|SNYDER|KAUFMAN|KAUFFMAN|ZIMMERMAN|FLEISCHMAN|FLEISCHER|BECKER|FISCHER|FISHER|CANTOR|KANTOR|SINGER|KRAMER|SCHREIBER)$",
    "geographic": r"^(BERLINER|FRANKFURTER|HOLLANDER|DEUTSCH|POLLACK|POLLOCK|WIENER|WARSHAUER)$",
}

# Explicit name lists used for heatmap layers
HEATMAP_GROUPS: Dict[str, Dict[str, Any]] = {
    "cohen": {
        "names": ["COHEN", "KOHN", "COHN"],
        "color": "#FFD700",
        "description": "Priestly lineage (Kohanim)",
    },
    "levy": {
        "names": ["LEVY", "LEVI", "LEVIN", "LEVINE", "LEVINSON", "LEVITT"],
        "color": "#C0C0C0",
        "description": "Levite lineage",
    },
    "gold": {
        "names": ["GOLDSTEIN", "GOLDBERG", "GOLDMAN", "GOLD", "GOLDEN", "GOLDFARB", "GOLDSMITH"],
        "color": "#FFD700",
        "description": "Gold family surnames",
    },
    "silver": {
        "names": ["SILVER", "SILVERMAN", "SILVERSTEIN"],
        "color": "#C0C0C0",
        "description": "Silver family surnames",
    },
    "schwartz_weiss": {
        "names": ["SCHWARTZ", "SCHWARZ", "WEISS", "WEIS"],
        "color": "#808080",
        "description": "Black vs White (the eternal rivalry)",
    },
    "witz": {
        "names": ["HOROWITZ", "MOSKOWITZ", "BERKOWITZ", "RABINOWITZ", "MARKOWITZ", "LEFKOWITZ", "LEIBOWITZ", "ABRAMOWITZ"],
        "color": "#9370DB",
        "description": "Eastern European -witz suffix",
    },
    "berg": {
        "names": ["GOLDBERG", "GREENBERG", "ROSENBERG", "WEINBERG", "STEINBERG", "FRIEDBERG"],
        "color": "#228B22",
        "description": "Mountain/hill surnames",
    },
    "stein": {
        "names": ["GOLDSTEIN", "BERNSTEIN", "WEINSTEIN", "EPSTEIN", "FINKELSTEIN", "RUBINSTEIN"],
        "color": "#4169E1",
        "description": "Stone surnames",
    },
}
ALL_GROUP = "all"
TOP_N = 50


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def read_census_surnames(path: str) -> pd.DataFrame:
    """
    Read the census surname CSV.

    Suppressed demographic cells marked ``(S)`` become NaN. A header row, if
    present, is dropped. Rows keep file order.
    """
    df = pd.read_csv(
        path,
        header=None,
        names=CENSUS_COLUMNS,
        na_values=[SUPPRESSED],
        keep_default_na=False,
        dtype=str,
    )
    df["name"] = df["name"].astype(str).str.strip()
    df = df[df["name"] != ""]
    for col in CENSUS_COLUMNS[1:]:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    # A header line has no numeric rank
    df = df[df["rank"].notna() & df["count"].notna()].reset_index(drop=True)
    df["rank"] = df["rank"].astype(int)
    df["count"] = df["count"].astype(int)
    LOGGER.info("[ok] Read %s surnames from %s", len(df), path)
    return df


def _nullable(val) -> Optional[float]:
    return None if pd.isna(val) else float(val)


def surname_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    records = []
    for row in df.to_dict("records"):
        records.append({
            "name": row["name"],
            "rank": int(row["rank"]),
            "count": int(row["count"]),
            "per100k": _nullable(row["prop100k"]),
            "demographics": {k: _nullable(row[col]) for k, col in DEMOGRAPHIC_COLUMNS.items()},
        })
    return records


def group_surnames(df: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """Sum counts for every regex family in SURNAME_GROUPS."""
    out = {}
    for key, pattern in SURNAME_GROUPS.items():
        members = df[df["name"].str.contains(pattern, case=False, regex=True)]
        out[key] = {"count": int(members["count"].sum()), "names": members["name"].tolist()}
    return out


def build_surname_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """Assemble the jewish-surnames.json payload."""
    top = df.head(TOP_N)
    return {
        "meta": {
            "source": "US Census Bureau 2010",
            "totalSurnames": int(len(df)),
            "totalPeople": int(df["count"].sum()),
            "generatedAt": utc_now_iso(),
        },
        "surnames": surname_records(df),
        "categories": group_surnames(df),
        "top50": [
            {"name": r["name"], "count": int(r["count"]), "rank": int(r["rank"])}
            for r in top.to_dict("records")
        ],
    }


def surname_counts(summary: Dict[str, Any]) -> Dict[str, int]:
    return {s["name"]: int(s.get("count") or 0) for s in summary.get("surnames", [])}


def national_count(counts: Dict[str, int], names: Iterable[str]) -> int:
    wanted = set(names)
    return sum(c for n, c in counts.items() if n in wanted)


def total_state_population(population: Dict[str, Any]) -> int:
    return sum(int(s.get("population") or 0) for s in (population.get("states") or {}).values())


def state_heatmap_points(national: int, population: Dict[str, Any], group: str) -> List[Dict[str, Any]]:
    """
    Spread a national surname count across states by Jewish-population share.

    States without a centroid or with a zero estimate are left out.
    """
    total = total_state_population(population)
    if total <= 0:
        return []
    points = []
    for state, data in (population.get("states") or {}).items():
        coords = config.STATE_CENTROIDS.get(state)
        if not coords:
            continue
        pop = int(data.get("population") or 0)
        estimated = _round_half_up(national * pop / total)
        if estimated <= 0:
            continue
        points.append(make_feature(
            coords[0], coords[1],
            state=state,
            category=group,
            estimatedCount=estimated,
            jewishPopulation=pop,
            density=data.get("density"),
            weight=math.log10(estimated + 1),
        ))
    return points


def metro_heatmap_points(national: int, population: Dict[str, Any], group: str) -> List[Dict[str, Any]]:
    """Same as state_heatmap_points, placed at metro coordinates."""
    total = total_state_population(population)
    if total <= 0:
        return []
    points = []
    for metro in population.get("metros") or []:
        coords = metro.get("coordinates")
        if not isinstance(coords, (list, tuple)) or len(coords) != 2:
            continue
        pop = int(metro.get("population") or 0)
        estimated = _round_half_up(national * pop / total)
        if estimated <= 0:
            continue
        points.append(make_feature(
            coords[0], coords[1],
            metro=metro.get("name"),
            category=group,
            estimatedCount=estimated,
            jewishPopulation=pop,
            weight=math.log10(estimated + 1),
        ))
    return points


def build_surname_heatmaps(summary: Dict[str, Any], population: Dict[str, Any]) -> Dict[str, Any]:
    """Assemble the surname-heatmaps.json payload for every heatmap group plus ``all``."""
    counts = surname_counts(summary)
    output = {
        "meta": {
            "source": "US Census Bureau 2010 (surnames) + American Jewish Year Book 2020 (population)",
            "description": "Estimated Jewish surname distribution by geography",
            "note": "Counts are estimates based on proportional distribution of national surname data",
            "generatedAt": utc_now_iso(),
        },
        "categories": {},
        "stateHeatmaps": {},
        "metroHeatmaps": {},
    }

    groups = {key: spec["names"] for key, spec in HEATMAP_GROUPS.items()}
    groups[ALL_GROUP] = [s["name"] for s in summary.get("top50", [])]

    for key, names in groups.items():
        national = national_count(counts, names)
        if key in HEATMAP_GROUPS:
            spec = HEATMAP_GROUPS[key]
            output["categories"][key] = {
                "names": list(names),
                "nationalCount": national,
                "color": spec["color"],
                "description": spec["description"],
            }
        output["stateHeatmaps"][key] = {
            "type": "FeatureCollection",
            "features": state_heatmap_points(national, population, key),
        }
        output["metroHeatmaps"][key] = {
            "type": "FeatureCollection",
            "features": metro_heatmap_points(national, population, key),
        }
    return output


def top_features(collection: Dict[str, Any], n: int = 10) -> List[Dict[str, Any]]:
    feats = list(collection.get("features") or [])
    feats.sort(key=lambda f: f["properties"].get("estimatedCount", 0), reverse=True)
    return feats[:n]
