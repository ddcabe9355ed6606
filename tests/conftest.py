from __future__ import annotations

from unittest.mock import Mock

import pytest

from office_discovery.fetcher import FetchEngine, FetchResult, FetchTiming, content_hash

FILLER = "lorem ipsum dolor sit amet " * 50


@pytest.fixture
def make_fetch_result():
    def _make(body: str, url: str = "https://acme.com", status: int = 200, engine=FetchEngine.LIGHTWEIGHT):
        return FetchResult(
            url=url,
            http_status=status,
            headers={"Content-Type": "text/html"},
            body=body,
            content_hash=content_hash(body),
            timing=FetchTiming(started=0.0, completed=0.25),
            engine=engine,
        )

    return _make


@pytest.fixture
def make_response():
    """A ``requests.Response`` stand-in; ``raise_for_status`` raises when given an exception."""

    def _make(text: str = "", status_code: int = 200, url: str = "https://acme.com/", error=None, content=None):
        resp = Mock()
        resp.text = text
        resp.content = text.encode("utf-8") if content is None else content
        resp.status_code = status_code
        resp.url = url
        resp.headers = {"Content-Type": "text/html"}
        resp.raise_for_status = Mock(side_effect=error)
        return resp

    return _make


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def filler() -> str:
    """Over 1000 characters of text that trips none of the verification signals."""
    return FILLER
