from __future__ import annotations

import pytest

from office_discovery.domain_utils import (
    extract_hostname,
    host_matches,
    normalize_domain,
    normalize_url,
    registrable_domain,
)
from office_discovery.errors import ParsingFailure


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://Example.com:443/path/#team", "https://example.com/path"),
        ("http://example.com:80/", "http://example.com"),
        ("http://example.com:8080/", "http://example.com:8080"),
        ("https://example.com/search?q=desk#top", "https://example.com/search?q=desk"),
        ("https://example.com", "https://example.com"),
    ],
)
def test_normalize_url_strips_fragment_default_port_and_trailing_slash(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["https://Example.com:443/path/#team", "http://acme.co.uk:8443/a/b/", "https://acme.com/?x=1"],
)
def test_normalize_url_is_idempotent(raw):
    once = normalize_url(raw)
    assert normalize_url(once) == once


def test_normalize_url_returns_unparseable_input_unchanged():
    assert normalize_url("not a url") == "not a url"


def test_normalize_domain_handles_urls_emails_and_bare_hosts():
    assert normalize_domain("https://www.Acme.com:8080/about") == "acme.com"
    assert normalize_domain("hello@acme.io") == "acme.io"
    assert normalize_domain("spaces.acme.co.uk/locations") == "spaces.acme.co.uk"
    assert normalize_domain("localhost") is None
    assert normalize_domain("") is None


def test_extract_hostname_strips_www():
    assert extract_hostname("https://www.acme.com/about") == "acme.com"
    assert extract_hostname("https://spaces.acme.com") == "spaces.acme.com"


def test_extract_hostname_falls_back_to_permissive_parsing():
    assert extract_hostname("acme.com/locations") == "acme.com"


def test_extract_hostname_raises_parsing_failure():
    with pytest.raises(ParsingFailure):
        extract_hostname("definitely not a domain")


def test_registrable_domain_uses_public_suffix_list():
    assert registrable_domain("https://spaces.acme.co.uk/x") == "acme.co.uk"
    assert registrable_domain("https://www.acme.com") == "acme.com"
    assert registrable_domain("nonsense") is None


def test_host_matches_exact_and_subdomains_only():
    assert host_matches("facebook.com", "facebook.com")
    assert host_matches("m.Facebook.com", "facebook.com")
    assert not host_matches("notfacebook.com", "facebook.com")
