"""Verification of a candidate domain against its operator.

The page is fetched (HTTPS, then HTTP through the rendering engine), run
through a short list of rejection pre-checks and, if it survives them,
reduced to three groups of boolean signals. Each signal contributes a fixed
weight from ``BRAND_WEIGHTS``, ``BUSINESS_WEIGHTS`` and ``OFFICE_WEIGHTS``;
brand signals carry 0.40 of the scale, business and office-space signals
0.30 each. A domain is verified when the clamped sum reaches the threshold.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field, fields
from typing import Iterable, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .config import DEFAULT_PARKED_MARKERS, DEFAULT_UNRELATED_PLATFORMS, Config, load_config
from .domain_utils import host_matches
from .errors import FetchError, RobotsBlocked
from .fetcher import Fetcher, FetchResult
from .scoring import clamp

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6
MIN_CONTENT_LENGTH = 1000

BRAND_WEIGHTS: dict[str, float] = {
    "title_match": 0.15,
    "content_match": 0.10,
    "meta_match": 0.05,
    "domain_match": 0.10,
}

BUSINESS_WEIGHTS: dict[str, float] = {
    "has_contact_info": 0.08,
    "has_location_info": 0.08,
    "has_business_hours": 0.07,
    "has_about_section": 0.07,
}

OFFICE_WEIGHTS: dict[str, float] = {
    "mentions_coworking": 0.10,
    "mentions_office_space": 0.08,
    "mentions_flexible": 0.06,
    "has_location_pages": 0.03,
    "has_pricing": 0.03,
}

REASONS: dict[str, str] = {
    "title_match": "Brand name appears in page title",
    "domain_match": "Brand name matches domain",
    "content_match": "Brand name found in page content",
    "meta_match": "Brand name found in meta description",
    "has_contact_info": "Contains contact information",
    "has_location_info": "Contains location/address information",
    "has_business_hours": "Lists business hours",
    "has_about_section": "Has an about section",
    "mentions_coworking": "Mentions coworking or shared office",
    "mentions_office_space": "Mentions office space or workspace",
    "mentions_flexible": "Mentions flexible or serviced offices",
    "has_location_pages": "Has location or spaces pages",
    "has_pricing": "Contains pricing information",
}

CONTACT_RE = re.compile(r"contact|phone|email|call|reach|get in touch|enquir", re.I)
CONTACT_LINK_RE = re.compile(r"contact|about", re.I)
LOCATION_RE = re.compile(r"location|address|find us|visit|directions|map", re.I)
STREET_ADDRESS_RE = re.compile(
    r"\b\d{1,5}\s+(?:[a-z0-9'.-]+\s+){0,4}(?:street|st|avenue|ave|road|rd|lane|ln|drive|dr|way|place|pl)\b",
    re.I,
)
HOURS_RE = re.compile(
    r"open|hours|monday|tuesday|wednesday|thursday|friday|saturday|sunday|24/7|24 hours", re.I
)
TIME_OF_DAY_RE = re.compile(r"\b\d{1,2}(?::\d{2})?\s?(?:am|pm)\b|\b\d{1,2}:\d{2}\b", re.I)
ABOUT_RE = re.compile(r"about us|about|our story|company|who we are", re.I)
ABOUT_LINK_RE = re.compile(r"about", re.I)

COWORKING_RE = re.compile(r"coworking|co-working|shared office|shared workspace", re.I)
OFFICE_SPACE_RE = re.compile(
    r"office space|workspace|work space|meeting room|conference room|desk|private office", re.I
)
FLEXIBLE_RE = re.compile(
    r"flexible|serviced|virtual|hot desk|hot-desk|dedicated desk|business cent(?:er|re)", re.I
)
LOCATION_LINK_RE = re.compile(r"location|office|space|center|centre|building", re.I)
LOCATION_PAGES_RE = re.compile(r"our locations|find a location|all locations|spaces|offices", re.I)
PRICING_RE = re.compile(r"pricing|price|cost|rate|membership|plan|booking|reserve|book now", re.I)
PRICING_LINK_RE = re.compile(r"pricing|price|book|reserve", re.I)
CURRENCY_RE = re.compile(r"[$£€]\s?\d+|per month|per day|per hour", re.I)


@dataclass(frozen=True)
class BrandMatches:
    title_match: bool = False
    content_match: bool = False
    meta_match: bool = False
    domain_match: bool = False


@dataclass(frozen=True)
class BusinessSignals:
    has_contact_info: bool = False
    has_location_info: bool = False
    has_business_hours: bool = False
    has_about_section: bool = False


@dataclass(frozen=True)
class OfficeSpaceSignals:
    mentions_coworking: bool = False
    mentions_office_space: bool = False
    mentions_flexible: bool = False
    has_location_pages: bool = False
    has_pricing: bool = False


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    confidence: float
    reasons: list[str] = field(default_factory=list)
    rejection_reason: Optional[str] = None
    canonical_url: Optional[str] = None
    content_hash: Optional[str] = None
    brand_matches: BrandMatches = field(default_factory=BrandMatches)
    business_signals: BusinessSignals = field(default_factory=BusinessSignals)
    office_space_signals: OfficeSpaceSignals = field(default_factory=OfficeSpaceSignals)

    @classmethod
    def rejected(cls, reason: str) -> VerificationResult:
        return cls(verified=False, confidence=0.0, rejection_reason=reason)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PageText:
    title: str
    h1: str
    meta_description: str
    body: str
    links: list[str]

    @classmethod
    def from_html(cls, html: str) -> PageText:
        soup = BeautifulSoup(html, "html.parser")
        meta = soup.find("meta", attrs={"name": "description"})
        body = soup.body or soup
        return cls(
            title=soup.title.get_text(" ", strip=True).lower() if soup.title else "",
            h1=" ".join(h.get_text(" ", strip=True) for h in soup.find_all("h1")).lower(),
            meta_description=(meta.get("content") or "").lower() if meta else "",
            body=body.get_text(" ", strip=True).lower(),
            links=[a.get("href") or "" for a in soup.find_all("a")],
        )


def check_rejection(
    result: FetchResult,
    parked_markers: Iterable[str] = DEFAULT_PARKED_MARKERS,
    unrelated_platforms: Iterable[str] = DEFAULT_UNRELATED_PLATFORMS,
) -> Optional[str]:
    """First rejection reason that applies to ``result``, or None.

    Order matters: parked markers, unrelated platform, HTTP error, then
    content length.
    """
    content = result.body.lower()
    for marker in parked_markers:
        if marker in content:
            return f'Parked or placeholder domain: contains "{marker}"'

    host = (urlsplit(result.url).hostname or "").lower()
    for platform in unrelated_platforms:
        if host and host_matches(host, platform):
            return f"Redirects to unrelated platform: {platform}"

    if result.http_status >= 400:
        return f"HTTP error: {result.http_status}"

    if len(content) < MIN_CONTENT_LENGTH:
        return "Insufficient content (likely placeholder or error page)"

    return None


def _any_link(links: list[str], pattern: re.Pattern) -> bool:
    return any(pattern.search(link) for link in links)


def extract_brand_matches(page: PageText, brand_tokens: Iterable[str], domain: str) -> BrandMatches:
    tokens = [token.lower() for token in brand_tokens if token]
    domain = domain.lower()
    return BrandMatches(
        title_match=any(t in page.title or t in page.h1 for t in tokens),
        content_match=any(t in page.body for t in tokens),
        meta_match=any(t in page.meta_description for t in tokens),
        domain_match=any(t in domain for t in tokens),
    )


def extract_business_signals(page: PageText) -> BusinessSignals:
    text = page.body
    return BusinessSignals(
        has_contact_info=bool(CONTACT_RE.search(text)) or _any_link(page.links, CONTACT_LINK_RE),
        has_location_info=bool(LOCATION_RE.search(text) or STREET_ADDRESS_RE.search(text)),
        has_business_hours=bool(HOURS_RE.search(text) or TIME_OF_DAY_RE.search(text)),
        has_about_section=bool(ABOUT_RE.search(text)) or _any_link(page.links, ABOUT_LINK_RE),
    )


def extract_office_signals(page: PageText) -> OfficeSpaceSignals:
    text = page.body
    return OfficeSpaceSignals(
        mentions_coworking=bool(COWORKING_RE.search(text)),
        mentions_office_space=bool(OFFICE_SPACE_RE.search(text)),
        mentions_flexible=bool(FLEXIBLE_RE.search(text)),
        has_location_pages=_any_link(page.links, LOCATION_LINK_RE) or bool(LOCATION_PAGES_RE.search(text)),
        has_pricing=(
            bool(PRICING_RE.search(text))
            or _any_link(page.links, PRICING_LINK_RE)
            or bool(CURRENCY_RE.search(text))
        ),
    )


def _weighted(signals, weights: dict[str, float]) -> float:
    return sum(weights[f.name] for f in fields(signals) if getattr(signals, f.name))


def compute_confidence(
    brand: BrandMatches,
    business: BusinessSignals,
    office: OfficeSpaceSignals,
) -> float:
    score = (
        _weighted(brand, BRAND_WEIGHTS)
        + _weighted(business, BUSINESS_WEIGHTS)
        + _weighted(office, OFFICE_WEIGHTS)
    )
    return clamp(round(score, 4))


def build_reasons(
    brand: BrandMatches,
    business: BusinessSignals,
    office: OfficeSpaceSignals,
) -> list[str]:
    reasons = []
    for signals, order in (
        (brand, ("title_match", "domain_match", "content_match", "meta_match")),
        (business, tuple(BUSINESS_WEIGHTS)),
        (office, tuple(OFFICE_WEIGHTS)),
    ):
        reasons.extend(REASONS[name] for name in order if getattr(signals, name))
    return reasons


def analyze_page(
    result: FetchResult,
    domain: str,
    brand_tokens: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
    parked_markers: Iterable[str] = DEFAULT_PARKED_MARKERS,
    unrelated_platforms: Iterable[str] = DEFAULT_UNRELATED_PLATFORMS,
) -> VerificationResult:
    """Pre-checks, signal extraction and decision for an already fetched page."""
    rejection = check_rejection(result, parked_markers, unrelated_platforms)
    if rejection:
        return VerificationResult.rejected(rejection)

    page = PageText.from_html(result.body)
    brand = extract_brand_matches(page, brand_tokens, domain)
    business = extract_business_signals(page)
    office = extract_office_signals(page)
    confidence = compute_confidence(brand, business, office)

    return VerificationResult(
        verified=confidence >= threshold,
        confidence=confidence,
        reasons=build_reasons(brand, business, office),
        canonical_url=result.url,
        content_hash=result.content_hash,
        brand_matches=brand,
        business_signals=business,
        office_space_signals=office,
    )


class VerificationEngine:
    def __init__(
        self,
        fetcher: Fetcher,
        threshold: float = DEFAULT_THRESHOLD,
        parked_markers: Iterable[str] = DEFAULT_PARKED_MARKERS,
        unrelated_platforms: Iterable[str] = DEFAULT_UNRELATED_PLATFORMS,
    ):
        self.fetcher = fetcher
        self.threshold = threshold
        self.parked_markers = tuple(parked_markers)
        self.unrelated_platforms = tuple(unrelated_platforms)

    @classmethod
    def from_config(cls, config: Optional[Config] = None, fetcher: Optional[Fetcher] = None) -> VerificationEngine:
        config = config or load_config()
        return cls(
            fetcher=fetcher or Fetcher.from_config(config),
            threshold=config.verification_threshold,
            parked_markers=config.parked_markers,
            unrelated_platforms=config.unrelated_platforms,
        )

    def verify(self, domain: str, brand_tokens: Iterable[str]) -> VerificationResult:
        brand_tokens = list(brand_tokens)
        try:
            result = self._fetch(domain)
        except (RobotsBlocked, FetchError) as exc:
            logger.warning("Domain unreachable %s: %s", domain, exc)
            return VerificationResult.rejected(f"Domain unreachable: {exc}")

        verification = analyze_page(
            result,
            domain,
            brand_tokens,
            threshold=self.threshold,
            parked_markers=self.parked_markers,
            unrelated_platforms=self.unrelated_platforms,
        )
        if verification.rejection_reason:
            logger.info("Rejected %s: %s", domain, verification.rejection_reason)
        else:
            logger.info(
                "Verified %s: verified=%s confidence=%.2f reasons=%d",
                domain, verification.verified, verification.confidence, len(verification.reasons),
            )
        return verification

    def _fetch(self, domain: str) -> FetchResult:
        https_url = domain if domain.startswith("http") else f"https://{domain}"
        try:
            return self.fetcher.fetch(https_url)
        except RobotsBlocked:
            raise
        except FetchError as exc:
            logger.info("HTTPS fetch failed for %s, retrying over HTTP with rendering: %s", domain, exc)

        http_url = https_url.replace("https:", "http:", 1) if domain.startswith("http") else f"http://{domain}"
        return self.fetcher.fetch(http_url, force_rendered=True)
