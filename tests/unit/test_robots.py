from __future__ import annotations

from unittest.mock import Mock

import requests as http_requests

from office_discovery.robots import PolitenessGuard, RobotsCache, RobotsDecision

ROBOTS_TXT = """
User-agent: *
Disallow: /private
Crawl-delay: 5

Sitemap: https://acme.com/sitemap.xml
"""


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _guard(session, cache=None) -> PolitenessGuard:
    return PolitenessGuard(session=session, user_agent="FlexOfficeBot", timeout=10.0, cache=cache)


def test_cache_without_ttl_never_expires():
    clock = FakeClock()
    cache = RobotsCache(clock=clock)
    cache.set("acme.com", RobotsDecision(allowed=False))
    clock.now += 10 ** 9
    assert cache.get("acme.com") == RobotsDecision(allowed=False)


def test_cache_entries_expire_after_ttl():
    clock = FakeClock()
    cache = RobotsCache(ttl_seconds=60, clock=clock)
    cache.set("acme.com", RobotsDecision(allowed=True))

    clock.now += 59
    assert cache.get("acme.com") is not None
    clock.now += 1
    assert cache.get("acme.com") is None
    assert len(cache) == 0


def test_disallowed_path_is_refused_with_delay_and_sitemaps(make_response):
    session = Mock()
    session.get.return_value = make_response(text=ROBOTS_TXT)

    decision = _guard(session).check("https://www.acme.com/private/room")

    assert decision.allowed is False
    assert decision.crawl_delay == 5.0
    assert decision.sitemaps == ["https://acme.com/sitemap.xml"]
    session.get.assert_called_once()
    assert session.get.call_args.args[0] == "https://acme.com/robots.txt"
    assert session.get.call_args.kwargs["timeout"] == 10.0


def test_decision_is_cached_per_registrable_domain(make_response):
    session = Mock()
    session.get.return_value = make_response(text=ROBOTS_TXT)
    guard = _guard(session)

    first = guard.check("https://acme.com/")
    second = guard.check("https://spaces.acme.com/locations")

    assert first.allowed is True
    assert second is first
    assert session.get.call_count == 1


def test_missing_robots_file_fails_open_and_is_cached(make_response):
    session = Mock()
    session.get.return_value = make_response(status_code=404)
    guard = _guard(session)

    assert guard.check("https://acme.com/private").allowed is True
    assert guard.check("https://acme.com/other").allowed is True
    assert session.get.call_count == 1


def test_transport_error_fails_open():
    session = Mock()
    session.get.side_effect = http_requests.ConnectTimeout("timed out")

    decision = _guard(session).check("https://acme.com/")

    assert decision == RobotsDecision(allowed=True)


def test_unparseable_url_is_refused_without_fetching():
    session = Mock()

    decision = _guard(session).check("not a url")

    assert decision.allowed is False
    session.get.assert_not_called()


def test_expired_decision_is_fetched_again(make_response):
    clock = FakeClock()
    session = Mock()
    session.get.return_value = make_response(text=ROBOTS_TXT)
    guard = _guard(session, cache=RobotsCache(ttl_seconds=30, clock=clock))

    guard.check("https://acme.com/")
    clock.now += 31
    guard.check("https://acme.com/")

    assert session.get.call_count == 2
