import json

import pytest

from konnect.poi.schema import make_feature


def location(category, lon, lat, name="Test Place", **props):
    base = {"category": category, "name": name, "address": None, "website": None, "phone": None, "weight": 1}
    base.update(props)
    return make_feature(lon, lat, **base)


@pytest.fixture
def make_location():
    return location


@pytest.fixture
def write_collection():
    def _write(path, features, **metadata):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"type": "FeatureCollection", "metadata": metadata, "features": features}))
        return path
    return _write


@pytest.fixture
def population_data():
    return {
        "states": {
            "NY": {"population": 750, "density": 9.1},
            "NJ": {"population": 250, "density": 5.8},
        },
        "metros": [
            {"name": "New York", "population": 500, "coordinates": [-73.94, 40.67]},
            {"name": "Tiny Town", "population": 0, "coordinates": [-80.0, 35.0]},
        ],
    }
