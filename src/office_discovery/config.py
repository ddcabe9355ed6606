from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

DEFAULT_PARKED_MARKERS = (
    "this domain is for sale",
    "domain parking",
    "buy this domain",
    "parked domain",
    "coming soon",
    "under construction",
    "godaddy.com",
    "domain.com",
    "sedo.com",
)

DEFAULT_UNRELATED_PLATFORMS = (
    "facebook.com",
    "twitter.com",
    "linkedin.com",
    "instagram.com",
    "youtube.com",
    "google.com",
    "wordpress.com",
    "blogspot.com",
    "wix.com",
    "squarespace.com",
)


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Config:
    database_url: Optional[str]
    batch_size: int

    request_delay_ms: int
    search_delay_ms: int
    probe_delay_ms: int
    http_timeout: int
    max_redirects: int
    probe_timeout: int

    robots_timeout: int
    robots_user_agent: str
    robots_cache_ttl_seconds: Optional[float]

    render_headless: bool
    render_navigation_timeout_ms: int
    render_selector_timeout_ms: int
    render_max_contexts: int

    verification_threshold: float
    verify_min_confidence: float
    parked_markers: tuple[str, ...]
    unrelated_platforms: tuple[str, ...]


def load_config() -> Config:
    ttl_raw = (os.getenv("ROBOTS_CACHE_TTL_SECONDS") or "").strip()

    return Config(
        database_url=(os.getenv("DATABASE_URL") or "").strip() or None,
        batch_size=int(os.getenv("BATCH_SIZE", "10")),
        request_delay_ms=int(os.getenv("REQUEST_DELAY_MS", "2000")),
        search_delay_ms=max(int(os.getenv("SEARCH_DELAY_MS", "1000")), 1000),
        probe_delay_ms=int(os.getenv("PROBE_DELAY_MS", "500")),
        http_timeout=int(os.getenv("HTTP_TIMEOUT", "30")),
        max_redirects=int(os.getenv("MAX_REDIRECTS", "5")),
        probe_timeout=int(os.getenv("PROBE_TIMEOUT", "5")),
        robots_timeout=int(os.getenv("ROBOTS_TIMEOUT", "10")),
        robots_user_agent=os.getenv("ROBOTS_USER_AGENT", "FlexOfficeBot"),
        robots_cache_ttl_seconds=float(ttl_raw) if ttl_raw else None,
        render_headless=_env_bool("RENDER_HEADLESS", "true"),
        render_navigation_timeout_ms=int(os.getenv("RENDER_NAVIGATION_TIMEOUT_MS", "30000")),
        render_selector_timeout_ms=int(os.getenv("RENDER_SELECTOR_TIMEOUT_MS", "10000")),
        render_max_contexts=int(os.getenv("RENDER_MAX_CONTEXTS", "50")),
        verification_threshold=float(os.getenv("VERIFICATION_THRESHOLD", "0.6")),
        verify_min_confidence=float(os.getenv("VERIFY_MIN_CONFIDENCE", "0.3")),
        parked_markers=_env_list("PARKED_MARKERS", DEFAULT_PARKED_MARKERS),
        unrelated_platforms=_env_list("UNRELATED_PLATFORMS", DEFAULT_UNRELATED_PLATFORMS),
    )
