"""
Test Location Conflation

Dedup keys, first-wins deduplication and the completeness-based merge of
OSM and curated locations.
"""
import pytest

from konnect.poi.conflate import (
    append_new,
    completeness_score,
    deduplicate,
    filter_valid_locations,
    merge_sources,
    normalize_name,
    proximity_keys,
    replace_categories,
    similar_names,
)
from konnect.poi.schema import features_to_gdf


def names(gdf):
    return list(gdf["name"])


class TestKeys:
    """Test suite for proximity keys and name helpers."""

    def test_key_format(self, make_location):
        gdf = features_to_gdf([make_location("synagogues", -73.98764, 40.12346)])
        assert proximity_keys(gdf, 3).iloc[0] == "synagogues-40123-73988"
        assert proximity_keys(gdf, 4).iloc[0] == "synagogues-401235-739876"

    def test_category_is_part_of_key(self, make_location):
        gdf = features_to_gdf([
            make_location("synagogues", -74.0, 40.0),
            make_location("schools", -74.0, 40.0),
        ])
        keys = proximity_keys(gdf, 3)
        assert keys.iloc[0] != keys.iloc[1]

    def test_names(self):
        assert normalize_name("Chabad of So-Ho!") == "chabadofsoho"
        assert similar_names("Beth  El", "beth-el")
        assert not similar_names(None, "Beth El")

    def test_completeness_score(self, make_location):
        gdf = features_to_gdf([
            make_location("jcc", -74.0, 40.0, website="https://x", address="1 Main"),
            make_location("jcc", -74.0, 40.0, website="  "),
            make_location("jcc", -74.0, 40.0, address="2 Main"),
        ])
        assert list(completeness_score(gdf)) == [2, 0, 1]


class TestDeduplicate:
    """Test suite for first-wins deduplication."""

    def test_first_wins_and_order_kept(self, make_location):
        gdf = features_to_gdf([
            make_location("restaurants", -74.0001, 40.0001, name="First"),
            make_location("restaurants", -118.0, 34.0, name="Other"),
            make_location("restaurants", -74.0002, 40.0002, name="Second"),
        ])
        out = deduplicate(gdf, 3)
        assert names(out) == ["First", "Other"]

    def test_never_grows(self, make_location):
        gdf = features_to_gdf([make_location("jcc", -70.0 - i * 0.01, 40.0) for i in range(5)])
        assert len(deduplicate(gdf, 3)) <= len(gdf)
        assert len(deduplicate(gdf, 3)) == 5

    def test_empty(self):
        assert deduplicate(features_to_gdf([])).empty


class TestMergeSources:
    """Test suite for merging OSM and curated locations."""

    @pytest.fixture
    def primary(self, make_location):
        return features_to_gdf([
            make_location("synagogues", -74.0, 40.0, name="Beth A"),
            make_location("synagogues", -74.0, 40.0, name="Beth A duplicate"),
            make_location("restaurants", -75.0, 41.0, name="Deli B", address="1 Main St"),
            make_location("vaults", -76.0, 42.0, name="Not a category"),
        ])

    def test_more_complete_curated_replaces_in_place(self, primary, make_location):
        curated = features_to_gdf([
            make_location("synagogues", -74.0, 40.0, name="Beth A Updated", website="https://a.org"),
        ])
        merged = merge_sources(primary, curated)
        assert names(merged) == ["Beth A Updated", "Deli B"]
        assert merged.iloc[0]["website"] == "https://a.org"

    def test_equal_score_keeps_existing(self, primary, make_location):
        curated = features_to_gdf([
            make_location("restaurants", -75.0, 41.0, name="Deli B curated", website="https://b.com"),
        ])
        assert names(merge_sources(primary, curated)) == ["Beth A", "Deli B"]

    def test_new_curated_features_are_appended(self, primary, make_location):
        curated = features_to_gdf([
            make_location("schools", -77.0, 39.0, name="Yeshiva C"),
            make_location("schools", -77.0, 39.0, name="Yeshiva C full", website="https://c.edu"),
        ])
        merged = merge_sources(primary, curated)
        assert names(merged) == ["Beth A", "Deli B", "Yeshiva C full"]

    def test_unknown_categories_dropped(self, primary):
        merged = merge_sources(primary, features_to_gdf([]))
        assert "vaults" not in set(merged["category"])

    def test_both_empty(self):
        assert merge_sources(features_to_gdf([]), features_to_gdf([])).empty

    def test_match_names_collapses_neighbours(self, make_location):
        primary = features_to_gdf([make_location("chabad", -74.0001, 40.7231, name="Chabad of SoHo")])
        curated = features_to_gdf([
            make_location("chabad", -74.0002, 40.7233, name="chabad of soho", website="https://soho.example"),
        ])
        assert len(merge_sources(primary, curated)) == 2
        merged = merge_sources(primary, curated, match_names=True)
        assert len(merged) == 1
        assert merged.iloc[0]["website"] == "https://soho.example"

    def test_match_names_never_leaves_shared_keys(self, make_location):
        primary = features_to_gdf([make_location("chabad", -74.0000, 40.7230, name="Chabad X")])
        curated = features_to_gdf([
            make_location("chabad", -74.0003, 40.7233, name="chabad x", website="https://x.org", address="1 Broadway"),
            make_location("chabad", -74.0003, 40.7233, name="Other Shul"),
        ])
        merged = merge_sources(primary, curated, match_names=True)
        keys = proximity_keys(merged, 4)
        assert len(set(keys)) == len(keys)
        assert names(merged) == ["chabad x"]

    def test_out_of_range_coordinates_dropped(self, make_location):
        curated = features_to_gdf([
            make_location("jcc", -74.0, 95.0, name="Off the globe"),
            make_location("jcc", 190.0, 40.0, name="Past the antimeridian"),
            make_location("jcc", -74.0, 40.0, name="JCC Manhattan"),
        ])
        merged = merge_sources(features_to_gdf([]), curated)
        assert names(merged) == ["JCC Manhattan"]
        assert merged.geometry.x.between(-180, 180).all()
        assert merged.geometry.y.between(-90, 90).all()


class TestAppendAndReplace:
    """Test suite for the incremental fetch helpers."""

    def test_append_new_counts_only_new(self, make_location):
        existing = features_to_gdf([make_location("restaurants", -74.0, 40.0, name="Old")])
        incoming = features_to_gdf([
            make_location("restaurants", -74.0, 40.0, name="Same place"),
            make_location("restaurants", -74.5, 40.5, name="New one"),
            make_location("restaurants", -74.5, 40.5, name="New one again"),
            make_location("groceries", -74.0, 40.0, name="Grocer"),
        ])
        merged, counts = append_new(existing, incoming)
        assert names(merged) == ["Old", "New one", "Grocer"]
        assert counts == {"restaurants": 1, "groceries": 1}

    def test_append_nothing(self, make_location):
        existing = features_to_gdf([make_location("jcc", -74.0, 40.0)])
        merged, counts = append_new(existing, features_to_gdf([]))
        assert len(merged) == 1
        assert counts == {}

    def test_append_to_empty(self, make_location):
        merged, counts = append_new(features_to_gdf([]), features_to_gdf([make_location("jcc", -74.0, 40.0)]))
        assert len(merged) == 1
        assert counts == {"jcc": 1}

    def test_replace_categories(self, make_location):
        existing = features_to_gdf([
            make_location("restaurants", -74.0, 40.0, name="Stale"),
            make_location("synagogues", -74.0, 40.0, name="Shul"),
        ])
        incoming = features_to_gdf([
            make_location("restaurants", -75.0, 41.0, name="Fresh"),
            make_location("restaurants", -75.0, 41.0, name="Fresh dup"),
        ])
        out = replace_categories(existing, incoming, ["restaurants"])
        assert names(out) == ["Shul", "Fresh"]


class TestFilterValidLocations:
    """Test suite for the pre-merge location filter."""

    def test_drops_unknown_categories_and_bad_coordinates(self, make_location):
        gdf = features_to_gdf([
            make_location("vaults", -74.0, 40.0, name="Vault"),
            make_location("mikvahs", -74.0, -91.0, name="Too far south"),
            make_location("mikvahs", -74.0, 40.0, name="Mikvah Israel"),
        ])
        assert names(filter_valid_locations(gdf)) == ["Mikvah Israel"]

    def test_empty(self):
        assert filter_valid_locations(None).empty
