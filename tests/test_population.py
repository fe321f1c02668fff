"""
Test Population Overlay
"""
import pytest

from konnect.domains_overlay.population import (
    build_population_overlay,
    metro_population_points,
    state_population_points,
)


class TestPopulationOverlay:
    """Test suite for population density points."""

    def test_metro_weight_scaled_and_capped(self):
        points = metro_population_points({"metros": [
            {"name": "Big", "population": 1_600_000, "coordinates": [-73.94, 40.67]},
            {"name": "Small", "population": 25_000, "coordinates": [-84.39, 33.75]},
            {"name": "Broken", "population": 10, "coordinates": [1.0]},
        ]})
        assert [p["properties"]["name"] for p in points] == ["Big", "Small"]
        assert points[0]["properties"]["weight"] == 1
        assert points[1]["properties"]["weight"] == pytest.approx(0.25)

    def test_state_points_use_centroids(self, population_data):
        population_data["states"]["XX"] = {"population": 5}
        points = state_population_points(population_data)
        assert [p["properties"]["state"] for p in points] == ["NY", "NJ"]
        assert points[0]["properties"]["density"] == pytest.approx(9.1)

    def test_overlay_shape(self, population_data):
        overlay = build_population_overlay(population_data)
        assert overlay["metros"]["type"] == "FeatureCollection"
        assert len(overlay["metros"]["features"]) == 2
        assert len(overlay["states"]["features"]) == 2
