from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import tldextract

from .errors import ParsingFailure

DEFAULT_PORTS = {"http": 80, "https": 443}

# Bundled Public Suffix List snapshot only, no network fetch at runtime.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def normalize_domain(raw: str) -> Optional[str]:
    """Lowercase host of a URL, bare domain or e-mail address, without ``www.`` and port."""
    if not raw:
        return None

    value = raw.strip().lower()
    if not value:
        return None

    if "@" in value and "://" not in value:
        value = value.split("@", 1)[1]

    if "://" in value:
        host = urlsplit(value).netloc
    else:
        host = value.split("/")[0]

    host = host.split("@")[-1].strip().rstrip(".")
    if host.startswith("www."):
        host = host[4:]

    if ":" in host:
        host = host.split(":", 1)[0]

    if "." not in host:
        return None
    if any(ch.isspace() for ch in host):
        return None

    return host or None


def normalize_url(url: str) -> str:
    """Drop the fragment, the default port and any trailing slash.

    Idempotent. Values that do not parse as absolute URLs are returned unchanged.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return url

    if not parts.scheme or not parts.hostname:
        return url

    scheme = parts.scheme.lower()
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"

    return urlunsplit((scheme, netloc, parts.path, parts.query, "")).rstrip("/")


def extract_hostname(url: str) -> str:
    """Hostname of ``url`` without ``www.``.

    Strict URL parsing first, then the permissive :func:`normalize_domain`
    for scheme-less or sloppy input. Raises :class:`ParsingFailure` when
    neither yields a host.
    """
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        host = None

    if host and "." in host:
        host = host.rstrip(".")
        return host[4:] if host.startswith("www.") else host

    fallback = normalize_domain(url)
    if fallback:
        return fallback
    raise ParsingFailure(f"Cannot extract a domain from {url!r}")


def registrable_domain(url: str) -> Optional[str]:
    """eTLD+1 of ``url`` (``https://a.b.example.co.uk/x`` -> ``example.co.uk``)."""
    try:
        host = extract_hostname(url)
    except ParsingFailure:
        return None

    ext = _tld_extract(host)
    if not ext.domain or not ext.suffix:
        return None
    return f"{ext.domain}.{ext.suffix}"


def host_matches(host: str, domain: str) -> bool:
    """True when ``host`` is ``domain`` or one of its subdomains."""
    host = host.lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)
