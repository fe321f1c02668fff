"""
Test Surname Overlay

Census CSV parsing, surname family summaries and the proportional
state/metro heatmap estimates.
"""
import math

import pytest

from konnect.domains_overlay.surnames import (
    ALL_GROUP,
    HEATMAP_GROUPS,
    build_surname_heatmaps,
    build_surname_summary,
    read_census_surnames,
    top_features,
)

CENSUS_CSV = """name,rank,count,prop100k,cum_prop100k,pctwhite,pctblack,pctapi,pctaian,pct2prace,pcthispanic
COHEN,300,1000,33.9,50000.1,95.1,0.5,(S),(S),0.9,2.5
LEVY,400,500,20.1,50100.2,90.2,3.1,1.2,(S),1.1,4.0
GOLDBERG,500,300,10.5,50200.3,97.0,0.4,0.6,0.1,0.7,1.2
KAUFMAN,600,200,8.0,50300.4,96.3,1.1,0.5,0.2,0.8,1.1
"""


@pytest.fixture
def census_csv(tmp_path):
    path = tmp_path / "jewish_surnames.csv"
    path.write_text(CENSUS_CSV)
    return str(path)


@pytest.fixture
def summary(census_csv):
    return build_surname_summary(read_census_surnames(census_csv))


class TestCensusParsing:
    """Test suite for reading the census table."""

    def test_header_skipped_and_order_kept(self, census_csv):
        df = read_census_surnames(census_csv)
        assert list(df["name"]) == ["COHEN", "LEVY", "GOLDBERG", "KAUFMAN"]
        assert df["count"].tolist() == [1000, 500, 300, 200]

    def test_suppressed_values_become_null(self, summary):
        cohen = summary["surnames"][0]
        assert cohen["demographics"]["asian"] is None
        assert cohen["demographics"]["native"] is None
        assert cohen["demographics"]["white"] == pytest.approx(95.1)
        assert cohen["per100k"] == pytest.approx(33.9)


class TestSummary:
    """Test suite for jewish-surnames.json assembly."""

    def test_meta(self, summary):
        assert summary["meta"]["totalSurnames"] == 4
        assert summary["meta"]["totalPeople"] == 2000

    def test_groups(self, summary):
        cats = summary["categories"]
        assert cats["cohen_tribe"] == {"count": 1000, "names": ["COHEN"]}
        assert cats["gold_family"]["names"] == ["GOLDBERG"]
        assert cats["berg_suffix"]["count"] == 300
        assert cats["man_suffix"]["names"] == ["KAUFMAN"]
        assert cats["professions"]["names"] == ["KAUFMAN"]
        assert cats["witz_suffix"] == {"count": 0, "names": []}

    def test_top50(self, summary):
        assert [t["name"] for t in summary["top50"]] == ["COHEN", "LEVY", "GOLDBERG", "KAUFMAN"]


class TestSurnameHeatmaps:
    """Test suite for proportional distribution."""

    def test_state_estimates(self, summary, population_data):
        out = build_surname_heatmaps(summary, population_data)
        by_state = {f["properties"]["state"]: f["properties"] for f in out["stateHeatmaps"]["cohen"]["features"]}
        assert by_state["NY"]["estimatedCount"] == 750
        assert by_state["NJ"]["estimatedCount"] == 250
        assert by_state["NY"]["weight"] == pytest.approx(math.log10(751))
        assert by_state["NY"]["jewishPopulation"] == 750

    def test_metro_estimates_skip_zero(self, summary, population_data):
        out = build_surname_heatmaps(summary, population_data)
        metros = out["metroHeatmaps"]["levy"]["features"]
        assert [f["properties"]["metro"] for f in metros] == ["New York"]
        assert metros[0]["properties"]["estimatedCount"] == 250

    def test_groups_and_all(self, summary, population_data):
        out = build_surname_heatmaps(summary, population_data)
        assert set(out["categories"]) == set(HEATMAP_GROUPS)
        assert ALL_GROUP in out["stateHeatmaps"]
        assert out["categories"]["cohen"]["nationalCount"] == 1000
        assert out["categories"]["gold"]["nationalCount"] == 300
        assert out["stateHeatmaps"]["silver"]["features"] == []
        ny_all = [f for f in out["stateHeatmaps"][ALL_GROUP]["features"] if f["properties"]["state"] == "NY"]
        assert ny_all[0]["properties"]["estimatedCount"] == 1500

    def test_no_population(self, summary):
        out = build_surname_heatmaps(summary, {"states": {}, "metros": []})
        assert out["stateHeatmaps"]["cohen"]["features"] == []

    def test_top_features(self, summary, population_data):
        out = build_surname_heatmaps(summary, population_data)
        top = top_features(out["stateHeatmaps"]["cohen"], n=1)
        assert top[0]["properties"]["state"] == "NY"
