"""
Test Overpass Client

Query rendering plus the retry/backoff and endpoint failover behaviour,
with HTTP mocked out.
"""
import pytest
import requests

from konnect import config
from konnect.categories import VALID_CATEGORIES
from konnect.poi import overpass
from konnect.poi.overpass import build_query, category_query, fetch_overpass_json


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(overpass.time, "sleep", lambda s: calls.append(s))
    return calls


def install_responses(monkeypatch, responses):
    """Serve ``responses`` in order; an Exception instance is raised instead."""
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append(url)
        item = responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(overpass.requests, "post", fake_post)
    return calls


class TestBuildQuery:
    """Test suite for Overpass QL rendering."""

    def test_nationwide_query_uses_us_area(self):
        q = build_query(['node["shop"="kosher"]'], timeout=90)
        assert q.startswith("[out:json][timeout:90];")
        assert 'area["ISO3166-1"="US"]->.usa;' in q
        assert 'node["shop"="kosher"](area.usa);' in q
        assert q.rstrip().endswith("out center;")

    def test_bbox_query(self):
        q = build_query(['nwr["kosher"="yes"]'], bbox=(40.5, -74.3, 41.0, -73.7), timeout=60)
        assert "[bbox:40.5,-74.3,41.0,-73.7]" in q
        assert "area.usa" not in q
        assert 'nwr["kosher"="yes"];' in q

    def test_every_category_has_selectors(self):
        for slug in VALID_CATEGORIES:
            assert "out center;" in category_query(slug)

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            category_query("vaults")


class TestFetch:
    """Test suite for retry, failover and caching."""

    def test_retries_then_succeeds(self, monkeypatch, sleeps):
        calls = install_responses(monkeypatch, [
            FakeResponse(503),
            FakeResponse(200, {"elements": [{"id": 1}]}),
        ])
        data = fetch_overpass_json("q", urls=["http://a"], max_attempts=3)
        assert data == {"elements": [{"id": 1}]}
        assert calls == ["http://a", "http://a"]
        assert sleeps == [config.BACKOFF_START_S]

    def test_backoff_grows_and_is_capped(self, monkeypatch, sleeps):
        install_responses(monkeypatch, [FakeResponse(429)] * 6)
        fetch_overpass_json("q", urls=["http://a"], max_attempts=6)
        assert len(sleeps) == 5
        assert sleeps[1] == pytest.approx(config.BACKOFF_START_S * config.BACKOFF_FACTOR)
        assert max(sleeps) <= config.BACKOFF_CAP_S
        assert sleeps == sorted(sleeps)

    def test_non_retry_status_moves_to_next_endpoint(self, monkeypatch, sleeps):
        calls = install_responses(monkeypatch, [
            FakeResponse(400, text="bad query"),
            FakeResponse(200, {"elements": []}),
        ])
        assert fetch_overpass_json("q", urls=["http://a", "http://b"], max_attempts=3) == {"elements": []}
        assert calls == ["http://a", "http://b"]
        assert sleeps == []

    def test_all_endpoints_fail_returns_empty(self, monkeypatch, sleeps):
        calls = install_responses(monkeypatch, [requests.ConnectionError("down")] * 4)
        data = fetch_overpass_json("q", urls=["http://a", "http://b"], max_attempts=2)
        assert data == {"elements": []}
        assert len(calls) == 4

    def test_invalid_json_falls_through(self, monkeypatch, sleeps):
        install_responses(monkeypatch, [
            FakeResponse(200, None),
            FakeResponse(200, {"elements": [{"id": 7}]}),
        ])
        data = fetch_overpass_json("q", urls=["http://a", "http://b"], max_attempts=1)
        assert data["elements"] == [{"id": 7}]

    def test_cache_hit_skips_http(self, monkeypatch, sleeps, tmp_path):
        install_responses(monkeypatch, [FakeResponse(200, {"elements": [{"id": 9}]})])
        first = fetch_overpass_json("cached query", urls=["http://a"], cache_dir=str(tmp_path))
        # No responses left: a second HTTP call would fail the test
        second = fetch_overpass_json("cached query", urls=["http://a"], cache_dir=str(tmp_path))
        assert first == second == {"elements": [{"id": 9}]}
