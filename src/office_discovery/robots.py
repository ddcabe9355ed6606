"""robots.txt politeness guard.

Decisions are cached per registrable domain (``www.acme.co.uk`` and
``spaces.acme.co.uk`` share the ``acme.co.uk`` entry). A robots file that
cannot be fetched within the timeout, or answers anything but 200, is
treated as permissive and that decision is cached as well.

The cache never expires unless a TTL is configured, so a long-running worker
keeps serving the decision it saw first. Set ``ROBOTS_CACHE_TTL_SECONDS`` for
daemons.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.robotparser import RobotFileParser

import requests as http_requests

from .config import Config, load_config
from .domain_utils import registrable_domain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RobotsDecision:
    allowed: bool
    crawl_delay: Optional[float] = None
    sitemaps: list[str] = field(default_factory=list)


class RobotsCache:
    """Registrable domain -> RobotsDecision, with an optional TTL.

    Concurrent inserts for the same key are harmless: the last write wins.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, RobotsDecision]] = {}

    def get(self, key: str) -> Optional[RobotsDecision]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, decision = entry
        if self.ttl_seconds is not None and self._clock() - stored_at >= self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return decision

    def set(self, key: str, decision: RobotsDecision) -> None:
        self._entries[key] = (self._clock(), decision)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class PolitenessGuard:
    def __init__(
        self,
        session: Optional[http_requests.Session] = None,
        user_agent: str = "FlexOfficeBot",
        timeout: float = 10.0,
        cache: Optional[RobotsCache] = None,
    ):
        self.session = session or http_requests.Session()
        self.user_agent = user_agent
        self.timeout = timeout
        self.cache = cache if cache is not None else RobotsCache()

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> PolitenessGuard:
        config = config or load_config()
        return cls(
            user_agent=config.robots_user_agent,
            timeout=config.robots_timeout,
            cache=RobotsCache(ttl_seconds=config.robots_cache_ttl_seconds),
        )

    def check(self, url: str) -> RobotsDecision:
        domain = registrable_domain(url)
        if not domain:
            logger.warning("Cannot determine registrable domain for %s, refusing", url)
            return RobotsDecision(allowed=False)

        cached = self.cache.get(domain)
        if cached is not None:
            return cached

        decision = self._fetch_decision(domain, url)
        self.cache.set(domain, decision)
        return decision

    def _fetch_decision(self, domain: str, url: str) -> RobotsDecision:
        robots_url = f"https://{domain}/robots.txt"
        try:
            resp = self.session.get(
                robots_url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except http_requests.RequestException as exc:
            logger.warning("Failed to fetch robots.txt for %s, assuming allowed: %s", domain, exc)
            return RobotsDecision(allowed=True)

        if resp.status_code != 200:
            logger.warning(
                "robots.txt for %s returned status %d, assuming allowed", domain, resp.status_code
            )
            return RobotsDecision(allowed=True)

        parser = RobotFileParser(robots_url)
        parser.parse(resp.text.splitlines())
        delay = parser.crawl_delay(self.user_agent)

        decision = RobotsDecision(
            allowed=parser.can_fetch(self.user_agent, url),
            crawl_delay=float(delay) if delay is not None else None,
            sitemaps=list(parser.site_maps() or []),
        )
        logger.debug(
            "robots.txt for %s: allowed=%s crawl_delay=%s sitemaps=%d",
            domain, decision.allowed, decision.crawl_delay, len(decision.sitemaps),
        )
        return decision
