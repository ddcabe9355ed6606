"""Domain candidate generation for an operator name.

Two strategies always run and their results are unioned:

1. Search scraping. A fixed set of queries is sent to Google and Bing and
   the organic result links become candidates (base confidence 0.7). Social
   networks, search engines, wikis and code hosts are dropped.
2. Name guessing. The operator name is squashed to a lowercase alphanumeric
   token, combined with office/space words and a fixed TLD list, and every
   guess that answers a HEAD request below HTTP 500 becomes a candidate
   (base confidence 0.3).

Network calls are strictly sequential, separated by ``search_delay`` and
``probe_delay``. A failing engine or query is logged and skipped.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import httpx
import requests as http_requests
from bs4 import BeautifulSoup

from .config import Config, load_config
from .domain_utils import extract_hostname
from .errors import ParsingFailure
from .fetcher import random_user_agent
from .scoring import CandidateSource, DomainCandidate, deduplicate_candidates

logger = logging.getLogger(__name__)

SEARCH_BASE_CONFIDENCE = 0.7
GUESS_BASE_CONFIDENCE = 0.3
MAX_RESULTS_PER_ENGINE = 10

# Hostname substrings that are never an operator's own website.
SEARCH_BLOCKLIST = (
    "facebook.com", "twitter.com", "linkedin.com", "instagram.com",
    "youtube.com", "tiktok.com", "pinterest.com", "reddit.com",
    "google.com", "bing.com", "yahoo.com", "duckduckgo.com",
    "wikipedia.org", "wiki.", "github.com", "gitlab.com",
)

GUESS_SUFFIXES = ("space", "spaces", "coworking", "office", "offices", "work", "workspace")
GUESS_TLDS = (".com", ".co", ".io", ".co.uk", ".org")
# Longest alternatives first so "spaces" is removed whole rather than leaving an "s".
_OFFICE_WORDS_RE = re.compile(r"spaces|space|coworking|offices|office")

_SEARCH_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


def build_search_queries(operator_name: str) -> list[str]:
    name = operator_name.strip()
    return [
        f'"{name}" coworking space',
        f'"{name}" flexible office',
        f'"{name}" workspace',
        f'"{name}" shared office',
        f"{name} site:*.com",
        f"{name} locations offices",
        # Unquoted variants for broader matches
        f"{name} coworking",
        f"{name} office space",
        f"{name} meeting rooms",
    ]


def normalize_operator_name(operator_name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (operator_name or "").lower())


def generate_name_variations(operator_name: str) -> list[str]:
    """Domain labels to try for ``operator_name``, shortest-first duplicates removed.

    "WorkHub Spaces" -> workhubspaces, workhub, workhubspacesspace, ...
    """
    clean = normalize_operator_name(operator_name)
    variations = [clean, _OFFICE_WORDS_RE.sub("", clean)]
    variations.extend(clean + suffix for suffix in GUESS_SUFFIXES)
    return list(dict.fromkeys(v for v in variations if len(v) >= 3))


def generate_domain_guesses(operator_name: str, tlds: tuple[str, ...] = GUESS_TLDS) -> list[DomainCandidate]:
    candidates = []
    for variation in generate_name_variations(operator_name):
        for tld in tlds:
            domain = variation + tld
            candidates.append(
                DomainCandidate(
                    domain=domain,
                    url=f"https://{domain}",
                    source=CandidateSource.DOMAIN_GUESS,
                    confidence=GUESS_BASE_CONFIDENCE,
                )
            )
    return candidates


def is_valid_website_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    hostname = parsed.hostname.lower()
    return not any(blocked in hostname for blocked in SEARCH_BLOCKLIST)


def _result_candidate(
    url: str,
    source: CandidateSource,
    title: str,
    description: Optional[str] = None,
) -> Optional[DomainCandidate]:
    if not is_valid_website_url(url):
        return None
    try:
        domain = extract_hostname(url)
    except ParsingFailure:
        logger.debug("Skipping search result with unparseable URL %s", url)
        return None
    return DomainCandidate(
        domain=domain,
        url=url,
        source=source,
        confidence=SEARCH_BASE_CONFIDENCE,
        title=title or None,
        description=description or None,
    )


def parse_google_results(html: str, max_results: int = MAX_RESULTS_PER_ENGINE) -> list[DomainCandidate]:
    """Result links from a Google results page.

    Google wraps organic links as ``/url?q=<target>``; pages served without
    the wrapper carry direct links inside ``div.g`` blocks.
    """
    soup = BeautifulSoup(html, "html.parser")
    candidates: list[DomainCandidate] = []

    for link in soup.find_all("a", href=True):
        href = link["href"]
        if not href.startswith("/url?q="):
            continue
        target = parse_qs(urlparse(href).query).get("q", [""])[0]
        candidate = _result_candidate(target, CandidateSource.GOOGLE, link.get_text(" ", strip=True))
        if candidate:
            candidates.append(candidate)

    if not candidates:
        for div in soup.find_all("div", class_="g"):
            link = div.find("a", href=True)
            if not link or not link["href"].startswith("http"):
                continue
            title_el = div.find("h3")
            snippet_el = div.find("div", class_="VwiC3b")
            candidate = _result_candidate(
                link["href"],
                CandidateSource.GOOGLE,
                title_el.get_text(strip=True) if title_el else link.get_text(" ", strip=True),
                snippet_el.get_text(" ", strip=True) if snippet_el else None,
            )
            if candidate:
                candidates.append(candidate)

    return candidates[:max_results]


def parse_bing_results(html: str, max_results: int = MAX_RESULTS_PER_ENGINE) -> list[DomainCandidate]:
    soup = BeautifulSoup(html, "html.parser")
    candidates: list[DomainCandidate] = []

    for link in soup.select(".b_algo h2 a, .b_title a"):
        href = link.get("href")
        if not href:
            continue
        block = link.find_parent(class_="b_algo")
        snippet_el = block.find("p") if block else None
        candidate = _result_candidate(
            href,
            CandidateSource.BING,
            link.get_text(" ", strip=True),
            snippet_el.get_text(" ", strip=True) if snippet_el else None,
        )
        if candidate:
            candidates.append(candidate)

    return candidates[:max_results]


SEARCH_ENGINES: dict[CandidateSource, tuple[str, str, Callable[[str], list[DomainCandidate]]]] = {
    CandidateSource.GOOGLE: ("https://www.google.com/search", "num", parse_google_results),
    CandidateSource.BING: ("https://www.bing.com/search", "count", parse_bing_results),
}


class CandidateGenerator:
    def __init__(
        self,
        session: Optional[http_requests.Session] = None,
        probe_client: Optional[httpx.Client] = None,
        search_timeout: float = 10.0,
        probe_timeout: float = 5.0,
        max_redirects: int = 5,
        search_delay: float = 1.0,
        probe_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or http_requests.Session()
        self.probe_client = probe_client or httpx.Client(
            follow_redirects=True,
            max_redirects=max_redirects,
            timeout=probe_timeout,
            verify=False,
            headers={"User-Agent": random_user_agent()},
        )
        self.search_timeout = search_timeout
        self.search_delay = search_delay
        self.probe_delay = probe_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> CandidateGenerator:
        config = config or load_config()
        return cls(
            probe_timeout=config.probe_timeout,
            max_redirects=config.max_redirects,
            search_delay=config.search_delay_ms / 1000.0,
            probe_delay=config.probe_delay_ms / 1000.0,
        )

    def discover(self, operator_name: str) -> list[DomainCandidate]:
        candidates: list[DomainCandidate] = []

        queries = build_search_queries(operator_name)
        for index, query in enumerate(queries):
            candidates.extend(self.search_for_domains(query))
            if index < len(queries) - 1:
                self._sleep(self.search_delay)

        guesses = generate_domain_guesses(operator_name)
        live = 0
        for guess in guesses:
            if self.check_domain_liveness(guess.domain):
                candidates.append(guess)
                live += 1
            self._sleep(self.probe_delay)

        unique = deduplicate_candidates(candidates)
        logger.info(
            "Discovered %d candidates for %r (%d search hits, %d/%d live guesses)",
            len(unique), operator_name, len(candidates) - live, live, len(guesses),
        )
        return unique

    def search_for_domains(self, query: str) -> list[DomainCandidate]:
        candidates: list[DomainCandidate] = []
        for source in SEARCH_ENGINES:
            try:
                found = self.search_engine(source, query)
            except http_requests.RequestException as exc:
                logger.warning("%s search failed for '%s': %s", source.value, query, exc)
                continue
            logger.debug("%s search for '%s' returned %d candidates", source.value, query, len(found))
            candidates.extend(found)
        return candidates

    def search_engine(self, source: CandidateSource, query: str) -> list[DomainCandidate]:
        endpoint, count_param, parse = SEARCH_ENGINES[source]
        headers = dict(_SEARCH_HEADERS)
        headers["User-Agent"] = random_user_agent()

        resp = self.session.get(
            endpoint,
            params={"q": query, count_param: str(MAX_RESULTS_PER_ENGINE)},
            headers=headers,
            timeout=self.search_timeout,
        )
        resp.raise_for_status()
        return parse(resp.text)

    def check_domain_liveness(self, domain: str) -> bool:
        """HEAD over HTTPS, then HTTP. Any status below 500 counts as live."""
        for scheme in ("https", "http"):
            try:
                resp = self.probe_client.head(f"{scheme}://{domain}")
            except httpx.HTTPError:
                continue
            if resp.status_code < 500:
                return True
        return False

    def close(self) -> None:
        self.probe_client.close()
