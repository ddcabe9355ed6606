from __future__ import annotations

import hashlib
from unittest.mock import Mock

import pytest
import requests as http_requests

from office_discovery.errors import FetchError, FetchUnreachable, RobotsBlocked
from office_discovery.fetcher import (
    BrowserPool,
    FetchAttempt,
    FetchEngine,
    Fetcher,
    FetchState,
    LightweightEngine,
    RenderedEngine,
    content_hash,
    should_fallback,
)
from office_discovery.robots import RobotsDecision


def _guard(allowed: bool = True) -> Mock:
    guard = Mock()
    guard.check.return_value = RobotsDecision(allowed=allowed)
    return guard


def test_should_fallback_decisions():
    assert should_fallback(http_requests.ConnectionError("refused"), force_rendered=False) is True
    assert should_fallback(http_requests.ConnectionError("refused"), force_rendered=True) is False
    assert should_fallback(RobotsBlocked("https://acme.com"), force_rendered=False) is False


def test_fetch_attempt_rejects_illegal_transitions():
    attempt = FetchAttempt(url="https://acme.com")
    attempt.transition(FetchState.SUCCEEDED)
    with pytest.raises(ValueError):
        attempt.transition(FetchState.RENDERED_ATTEMPTED)


def test_content_hash_is_sha256_of_body():
    assert content_hash("hello") == hashlib.sha256(b"hello").hexdigest()


def test_lightweight_engine_waits_then_normalizes(make_response, sleeps):
    session = Mock()
    session.get.return_value = make_response(text="<html>hi</html>", url="https://acme.com:443/home/#top")
    engine = LightweightEngine(session=session, timeout=30, max_redirects=5, delay_seconds=2.0, sleep=sleeps.append)

    result = engine.fetch("https://acme.com/home")

    assert sleeps == [2.0]
    assert result.url == "https://acme.com/home"
    assert result.http_status == 200
    assert result.engine is FetchEngine.LIGHTWEIGHT
    assert result.content_hash == content_hash("<html>hi</html>")
    assert session.max_redirects == 5
    assert session.get.call_args.kwargs["timeout"] == 30
    assert "User-Agent" in session.get.call_args.kwargs["headers"]


def test_lightweight_engine_raises_on_http_error(make_response, sleeps):
    session = Mock()
    session.get.return_value = make_response(status_code=503, error=http_requests.HTTPError("503 Server Error"))
    engine = LightweightEngine(session=session, sleep=sleeps.append)

    with pytest.raises(http_requests.HTTPError):
        engine.fetch("https://acme.com")


def test_robots_refusal_stops_before_any_engine(make_fetch_result):
    lightweight = Mock()
    rendered = Mock()
    fetcher = Fetcher(guard=_guard(allowed=False), lightweight=lightweight, rendered=rendered)

    with pytest.raises(RobotsBlocked):
        fetcher.fetch("https://acme.com/private")

    lightweight.fetch.assert_not_called()
    rendered.fetch.assert_not_called()


def test_lightweight_success_never_renders(make_fetch_result):
    lightweight = Mock()
    lightweight.fetch.return_value = make_fetch_result("<html></html>")
    rendered = Mock()
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=rendered)

    attempt = fetcher.run_attempt("https://acme.com")

    assert attempt.state is FetchState.SUCCEEDED
    assert attempt.result.engine is FetchEngine.LIGHTWEIGHT
    rendered.fetch.assert_not_called()


def test_lightweight_failure_falls_back_to_rendering(make_fetch_result):
    lightweight = Mock()
    lightweight.fetch.side_effect = http_requests.ConnectionError("reset by peer")
    rendered = Mock()
    rendered.fetch.return_value = make_fetch_result("<html></html>", engine=FetchEngine.RENDERED)
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=rendered)

    attempt = fetcher.run_attempt("https://acme.com", wait_for_selector="main")

    assert attempt.state is FetchState.SUCCEEDED
    assert attempt.result.engine is FetchEngine.RENDERED
    assert "reset by peer" in attempt.errors[FetchEngine.LIGHTWEIGHT]
    rendered.fetch.assert_called_once_with("https://acme.com", wait_for_selector="main")


def test_both_engines_failing_raises_unreachable_with_partial_result():
    lightweight = Mock()
    lightweight.fetch.side_effect = http_requests.ConnectionError("refused")
    rendered = Mock()
    rendered.fetch.side_effect = FetchError("Failed to load page", engine="rendered")
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=rendered)

    with pytest.raises(FetchUnreachable) as excinfo:
        fetcher.fetch("https://acme.com")

    assert excinfo.value.engine == FetchEngine.RENDERED.value
    partial = excinfo.value.partial_result
    assert partial.http_status == 0
    assert partial.body == ""
    assert partial.error == "Failed to load page"


def test_force_rendered_skips_lightweight(make_fetch_result):
    lightweight = Mock()
    rendered = Mock()
    rendered.fetch.return_value = make_fetch_result("<html></html>", engine=FetchEngine.RENDERED)
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=rendered)

    result = fetcher.fetch("http://acme.com", force_rendered=True)

    assert result.engine is FetchEngine.RENDERED
    lightweight.fetch.assert_not_called()


def test_fetch_document_parses_body(make_fetch_result):
    lightweight = Mock()
    lightweight.fetch.return_value = make_fetch_result("<html><title>Acme</title></html>")
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=Mock())

    result, soup = fetcher.fetch_document("https://acme.com")

    assert soup.title.get_text() == "Acme"
    assert result.http_status == 200


def _pool_with_page(page) -> Mock:
    pool = Mock()
    pool.context.return_value.new_page.return_value = page
    return pool


def test_rendered_engine_waits_for_selector_and_closes_page():
    response = Mock(status=200, headers={"content-type": "text/html"})
    page = Mock()
    page.goto.return_value = response
    page.content.return_value = "<html><body>rendered</body></html>"
    page.url = "https://www.acme.com/"
    pool = _pool_with_page(page)
    engine = RenderedEngine(pool=pool, navigation_timeout_ms=30000, selector_timeout_ms=10000)

    result = engine.fetch("https://www.acme.com", wait_for_selector="#app")

    pool.context.assert_called_once_with("acme.com")
    page.goto.assert_called_once_with("https://www.acme.com", wait_until="networkidle", timeout=30000)
    page.wait_for_selector.assert_called_once_with("#app", timeout=10000)
    page.close.assert_called_once()
    assert result.url == "https://www.acme.com"
    assert result.engine is FetchEngine.RENDERED
    assert result.http_status == 200


def test_rendered_engine_without_response_raises_and_closes_page():
    page = Mock()
    page.goto.return_value = None
    engine = RenderedEngine(pool=_pool_with_page(page))

    with pytest.raises(FetchError):
        engine.fetch("https://acme.com")

    page.close.assert_called_once()


def test_fetcher_context_manager_closes_browser():
    rendered = Mock()
    with Fetcher(guard=_guard(), lightweight=Mock(), rendered=rendered):
        pass
    rendered.close.assert_called_once()


def test_malformed_url_fails_without_rendering():
    lightweight = Mock()
    lightweight.fetch.side_effect = http_requests.exceptions.InvalidURL("Invalid URL 'https://'")
    rendered = Mock()
    fetcher = Fetcher(guard=_guard(), lightweight=lightweight, rendered=rendered)

    with pytest.raises(FetchUnreachable) as excinfo:
        fetcher.fetch("https://")

    assert excinfo.value.engine == FetchEngine.LIGHTWEIGHT.value
    assert excinfo.value.partial_result.engine is FetchEngine.LIGHTWEIGHT
    rendered.fetch.assert_not_called()


def test_lightweight_hash_covers_raw_bytes(make_response, sleeps):
    raw = "café coworking".encode("latin-1")
    session = Mock()
    session.get.return_value = make_response(text="café coworking", content=raw)
    engine = LightweightEngine(session=session, sleep=sleeps.append)

    result = engine.fetch("https://acme.com")

    assert result.content_hash == hashlib.sha256(raw).hexdigest()
    assert result.body == "café coworking"


def _fake_playwright():
    browsers = []

    def launch(**kwargs):
        browser = Mock()
        browser.is_connected.return_value = True
        browser.new_context.side_effect = lambda **kw: Mock()
        browsers.append(browser)
        return browser

    playwright = Mock()
    playwright.chromium.launch.side_effect = launch
    factory = Mock()
    factory.return_value.start.return_value = playwright
    return factory, playwright, browsers


def test_browser_pool_reuses_one_context_per_domain():
    factory, playwright, browsers = _fake_playwright()
    pool = BrowserPool(playwright_factory=factory)

    first = pool.context("acme.com")
    again = pool.context("acme.com")
    other = pool.context("workhub.io")

    assert first is again
    assert other is not first
    assert len(pool) == 2
    assert len(browsers) == 1
    factory.return_value.start.assert_called_once()


def test_browser_pool_relaunches_after_disconnect():
    factory, playwright, browsers = _fake_playwright()
    pool = BrowserPool(playwright_factory=factory)

    first = pool.context("acme.com")
    browsers[0].is_connected.return_value = False
    again = pool.context("acme.com")

    assert again is not first
    assert len(browsers) == 2
    assert len(pool) == 1
    factory.return_value.start.assert_called_once()


def test_browser_pool_closes_least_recently_used_context():
    factory, playwright, browsers = _fake_playwright()
    pool = BrowserPool(max_contexts=2, playwright_factory=factory)

    acme = pool.context("acme.com")
    workhub = pool.context("workhub.io")
    pool.context("acme.com")
    pool.context("spaces.co.uk")

    workhub.close.assert_called_once()
    acme.close.assert_not_called()
    assert len(pool) == 2
    assert pool.context("acme.com") is acme


def test_browser_pool_close_stops_browser_and_playwright():
    factory, playwright, browsers = _fake_playwright()
    pool = BrowserPool(playwright_factory=factory)
    pool.context("acme.com")

    pool.close()

    browsers[0].close.assert_called_once()
    playwright.stop.assert_called_once()
    assert len(pool) == 0
