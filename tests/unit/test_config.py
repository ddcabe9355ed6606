from __future__ import annotations

from office_discovery.config import DEFAULT_PARKED_MARKERS, load_config


def test_defaults(monkeypatch):
    for key in ("DATABASE_URL", "SEARCH_DELAY_MS", "PARKED_MARKERS", "ROBOTS_CACHE_TTL_SECONDS", "VERIFICATION_THRESHOLD"):
        monkeypatch.delenv(key, raising=False)

    config = load_config()

    assert config.database_url is None
    assert config.search_delay_ms == 1000
    assert config.robots_cache_ttl_seconds is None
    assert config.verification_threshold == 0.6
    assert config.parked_markers == DEFAULT_PARKED_MARKERS


def test_search_delay_never_drops_below_one_second(monkeypatch):
    monkeypatch.setenv("SEARCH_DELAY_MS", "200")
    assert load_config().search_delay_ms == 1000


def test_marker_lists_and_ttl_come_from_env(monkeypatch):
    monkeypatch.setenv("PARKED_MARKERS", "Parked by Sedo, hugedomains.com ,")
    monkeypatch.setenv("UNRELATED_PLATFORMS", "facebook.com")
    monkeypatch.setenv("ROBOTS_CACHE_TTL_SECONDS", "3600")
    monkeypatch.setenv("RENDER_HEADLESS", "no")

    config = load_config()

    assert config.parked_markers == ("parked by sedo", "hugedomains.com")
    assert config.unrelated_platforms == ("facebook.com",)
    assert config.robots_cache_ttl_seconds == 3600.0
    assert config.render_headless is False
