"""
JSON artifact I/O.

Every pipeline stage reads and writes pretty-printed JSON under the data
directory. Missing or unparseable inputs load as empty collections.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict

LOGGER = logging.getLogger("konnect.io")


def empty_collection() -> Dict[str, Any]:
    return {"type": "FeatureCollection", "metadata": {}, "features": []}


def load_json(path: str, default: Any = None) -> Any:
    """Read a JSON file, returning ``default`` when it is missing or malformed."""
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("[warn] Failed to parse %s: %s", path, exc)
        return default


def load_feature_collection(path: str) -> Dict[str, Any]:
    """
    Load a GeoJSON FeatureCollection.

    Args:
        path: Path to the JSON file

    Returns:
        The parsed collection, always with ``features`` and ``metadata`` keys
    """
    data = load_json(path)
    if not isinstance(data, dict):
        return empty_collection()
    features = data.get("features")
    data["features"] = features if isinstance(features, list) else []
    if not isinstance(data.get("metadata"), dict):
        data["metadata"] = {}
    data.setdefault("type", "FeatureCollection")
    return data


def write_json(path: str, payload: Any) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path
