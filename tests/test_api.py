"""
Test Data API

Endpoints served from a temporary KK_DATA_DIR.
"""
import json

import pytest
from fastapi.testclient import TestClient

from api.app import main as api_main
from konnect import config


@pytest.fixture
def client(tmp_path, monkeypatch, write_collection, make_location, population_data):
    monkeypatch.setenv("KK_DATA_DIR", str(tmp_path))
    api_main._load_cached.cache_clear()
    write_collection(tmp_path / config.DETAILED_FILE, [
        make_location("synagogues", -73.98, 40.75, name="Central Synagogue"),
        make_location("restaurants", -73.99, 40.76, name="Kosher Grill"),
        make_location("restaurants", -118.40, 34.06, name="Pico Deli"),
    ])
    (tmp_path / config.POPULATION_POINTS_FILE).write_text(json.dumps({
        "metros": {"type": "FeatureCollection", "features": [{"type": "Feature", "properties": {"name": "NYC"},
                                                              "geometry": {"type": "Point", "coordinates": [-74, 40.7]}}]},
        "states": {"type": "FeatureCollection", "features": []},
    }))
    (tmp_path / config.SURNAME_HEATMAPS_FILE).write_text(json.dumps({
        "categories": {"cohen": {"nationalCount": 1000}},
        "stateHeatmaps": {"cohen": {"type": "FeatureCollection", "features": []}},
        "metroHeatmaps": {},
    }))
    return TestClient(api_main.app)


class TestApi:
    """Test suite for the data API."""

    def test_health(self, client):
        assert client.get("/health").json()["ok"] is True

    def test_categories(self, client):
        cats = client.get("/api/categories").json()
        assert [c["slug"] for c in cats][:2] == ["synagogues", "restaurants"]
        assert len(cats) == 8

    def test_locations_filtered_by_category(self, client):
        body = client.get("/api/locations", params={"category": "restaurants"}).json()
        assert {f["properties"]["name"] for f in body["features"]} == {"Kosher Grill", "Pico Deli"}

    def test_locations_filtered_by_bbox(self, client):
        body = client.get("/api/locations", params={"bbox": "-75,40,-73,41"}).json()
        assert len(body["features"]) == 2

    def test_bad_bbox(self, client):
        assert client.get("/api/locations", params={"bbox": "1,2,3"}).status_code == 400
        assert client.get("/api/locations", params={"bbox": "5,2,3,4"}).status_code == 400

    def test_unknown_category(self, client):
        assert client.get("/api/locations", params={"category": "vaults"}).status_code == 404

    def test_missing_artifact(self, client):
        assert client.get("/api/heatmap").status_code == 404

    def test_unreadable_artifact(self, client, tmp_path):
        (tmp_path / config.POINTS_FILE).write_text("{not json")
        assert client.get("/api/heatmap").status_code == 500

    def test_population_levels(self, client):
        assert len(client.get("/api/population").json()["features"]) == 1
        assert client.get("/api/population", params={"level": "state"}).json()["features"] == []
        assert client.get("/api/population", params={"level": "county"}).status_code == 400

    def test_surnames(self, client):
        body = client.get("/api/surnames/cohen").json()
        assert body["group"] == "cohen"
        assert body["info"]["nationalCount"] == 1000
        assert client.get("/api/surnames/cohen", params={"level": "metro"}).status_code == 404
        assert client.get("/api/surnames/smith").status_code == 404
