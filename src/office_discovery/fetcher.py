"""Resilient fetch layer.

Every retrieval goes through :class:`Fetcher`, which asks the politeness
guard first and then runs a small two-engine state machine:

    NOT_TRIED -> SUCCEEDED                                 (lightweight ok)
    NOT_TRIED -> LIGHTWEIGHT_FAILED -> RENDERED_ATTEMPTED -> SUCCEEDED | FAILED
    NOT_TRIED -> LIGHTWEIGHT_FAILED -> FAILED              (malformed URL)
    NOT_TRIED -> RENDERED_ATTEMPTED -> SUCCEEDED | FAILED  (force_rendered)

The lightweight engine is a plain ``requests`` session throttled by a fixed
delay before each request. The rendering engine drives headless Chromium
through Playwright, one browser context per registrable domain, all backed by
a single browser process.
"""
from __future__ import annotations

import hashlib
import logging
import random
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

import requests as http_requests
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .config import Config, load_config
from .domain_utils import normalize_url, registrable_domain
from .errors import FetchError, FetchUnreachable, RobotsBlocked
from .robots import PolitenessGuard

logger = logging.getLogger(__name__)

USER_AGENTS = [
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
    ),
]

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
]


class FetchEngine(str, Enum):
    LIGHTWEIGHT = "lightweight"
    RENDERED = "rendered"


class FetchState(str, Enum):
    NOT_TRIED = "not_tried"
    LIGHTWEIGHT_FAILED = "lightweight_failed"
    RENDERED_ATTEMPTED = "rendered_attempted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[FetchState, frozenset[FetchState]] = {
    FetchState.NOT_TRIED: frozenset(
        {FetchState.SUCCEEDED, FetchState.LIGHTWEIGHT_FAILED, FetchState.RENDERED_ATTEMPTED}
    ),
    FetchState.LIGHTWEIGHT_FAILED: frozenset({FetchState.RENDERED_ATTEMPTED, FetchState.FAILED}),
    FetchState.RENDERED_ATTEMPTED: frozenset({FetchState.SUCCEEDED, FetchState.FAILED}),
    FetchState.SUCCEEDED: frozenset(),
    FetchState.FAILED: frozenset(),
}


MALFORMED_URL_ERRORS = (
    http_requests.exceptions.MissingSchema,
    http_requests.exceptions.InvalidSchema,
    http_requests.exceptions.InvalidURL,
)


def should_fallback(error: BaseException, force_rendered: bool) -> bool:
    """Whether a lightweight failure may be retried with the rendering engine.

    A browser cannot help with a robots refusal or a URL that does not parse.
    """
    if force_rendered:
        return False
    if isinstance(error, (RobotsBlocked,) + MALFORMED_URL_ERRORS):
        return False
    return True


def content_hash(body: Union[str, bytes]) -> str:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hashlib.sha256(body).hexdigest()


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


@dataclass(frozen=True)
class FetchTiming:
    started: float
    completed: float

    @property
    def duration(self) -> float:
        return self.completed - self.started


@dataclass(frozen=True)
class FetchResult:
    url: str
    http_status: int
    headers: dict[str, str]
    body: str
    content_hash: str
    timing: FetchTiming
    engine: FetchEngine
    error: Optional[str] = None


def failed_result(url: str, engine: FetchEngine, started: float, error: BaseException) -> FetchResult:
    return FetchResult(
        url=url,
        http_status=0,
        headers={},
        body="",
        content_hash="",
        timing=FetchTiming(started=started, completed=time.time()),
        engine=engine,
        error=str(error),
    )


@dataclass
class FetchAttempt:
    url: str
    force_rendered: bool = False
    state: FetchState = FetchState.NOT_TRIED
    result: Optional[FetchResult] = None
    errors: dict[FetchEngine, str] = field(default_factory=dict)

    def transition(self, new_state: FetchState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Illegal fetch transition {self.state.value} -> {new_state.value}")
        self.state = new_state


class LightweightEngine:
    engine = FetchEngine.LIGHTWEIGHT

    def __init__(
        self,
        session: Optional[http_requests.Session] = None,
        timeout: float = 30.0,
        max_redirects: int = 5,
        delay_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or http_requests.Session()
        self.session.max_redirects = max_redirects
        self.timeout = timeout
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def fetch(self, url: str) -> FetchResult:
        """GET ``url``. Transport errors and HTTP status >= 400 raise ``requests`` exceptions."""
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

        headers = dict(BROWSER_HEADERS)
        headers["User-Agent"] = random_user_agent()

        started = time.time()
        logger.debug("Making HTTP request to %s", url)
        resp = self.session.get(url, headers=headers, timeout=self.timeout, allow_redirects=True)
        resp.raise_for_status()
        completed = time.time()

        return FetchResult(
            url=normalize_url(resp.url or url),
            http_status=resp.status_code,
            headers=dict(resp.headers),
            body=resp.text,
            content_hash=content_hash(resp.content),
            timing=FetchTiming(started=started, completed=completed),
            engine=self.engine,
        )


class BrowserPool:
    """One shared Chromium process with a reusable context per domain key.

    At most ``max_contexts`` contexts stay open; the least recently used one
    is closed when a new domain would exceed the cap. A disconnected browser
    is relaunched on the next lookup and every cached context is dropped.
    """

    def __init__(
        self,
        headless: bool = True,
        max_contexts: int = 50,
        playwright_factory: Callable = sync_playwright,
    ):
        self.headless = headless
        self.max_contexts = max(max_contexts, 1)
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser = None
        self._contexts: OrderedDict = OrderedDict()

    def browser(self):
        if self._browser is None or not self._browser.is_connected():
            if self._playwright is None:
                self._playwright = self._playwright_factory().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            self._contexts.clear()
            logger.info("Browser launched")
        return self._browser

    def context(self, key: str):
        browser = self.browser()
        context = self._contexts.get(key)
        if context is not None:
            self._contexts.move_to_end(key)
            return context

        context = browser.new_context(
            user_agent=random_user_agent(),
            viewport={"width": 1920, "height": 1080},
            ignore_https_errors=True,
        )
        self._contexts[key] = context
        while len(self._contexts) > self.max_contexts:
            evicted_key, evicted = self._contexts.popitem(last=False)
            self._close_context(evicted_key, evicted)
        return context

    @staticmethod
    def _close_context(key: str, context) -> None:
        try:
            context.close()
        except PlaywrightError as exc:
            logger.warning("Failed to close browser context for %s: %s", key, exc)

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
            self._contexts.clear()
            logger.info("Browser closed")
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __len__(self) -> int:
        return len(self._contexts)


class RenderedEngine:
    engine = FetchEngine.RENDERED

    def __init__(
        self,
        pool: Optional[BrowserPool] = None,
        navigation_timeout_ms: int = 30000,
        selector_timeout_ms: int = 10000,
    ):
        self.pool = pool or BrowserPool()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms

    def fetch(self, url: str, wait_for_selector: Optional[str] = None) -> FetchResult:
        started = time.time()
        context = self.pool.context(registrable_domain(url) or "default")
        page = context.new_page()
        try:
            response = page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
            if response is None:
                raise FetchError("Failed to load page", engine=self.engine.value)

            if wait_for_selector:
                page.wait_for_selector(wait_for_selector, timeout=self.selector_timeout_ms)

            body = page.content()
            final_url = page.url
            status = response.status
            headers = dict(response.headers)
        finally:
            page.close()

        return FetchResult(
            url=normalize_url(final_url or url),
            http_status=status,
            headers=headers,
            body=body,
            content_hash=content_hash(body),
            timing=FetchTiming(started=started, completed=time.time()),
            engine=self.engine,
        )

    def close(self) -> None:
        self.pool.close()


class Fetcher:
    def __init__(
        self,
        guard: PolitenessGuard,
        lightweight: LightweightEngine,
        rendered: RenderedEngine,
    ):
        self.guard = guard
        self.lightweight = lightweight
        self.rendered = rendered

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> Fetcher:
        config = config or load_config()
        return cls(
            guard=PolitenessGuard.from_config(config),
            lightweight=LightweightEngine(
                timeout=config.http_timeout,
                max_redirects=config.max_redirects,
                delay_seconds=config.request_delay_ms / 1000.0,
            ),
            rendered=RenderedEngine(
                pool=BrowserPool(headless=config.render_headless, max_contexts=config.render_max_contexts),
                navigation_timeout_ms=config.render_navigation_timeout_ms,
                selector_timeout_ms=config.render_selector_timeout_ms,
            ),
        )

    def fetch(self, url: str, force_rendered: bool = False, wait_for_selector: Optional[str] = None) -> FetchResult:
        attempt = self.run_attempt(url, force_rendered=force_rendered, wait_for_selector=wait_for_selector)
        return attempt.result

    def fetch_document(self, url: str, force_rendered: bool = False) -> tuple[FetchResult, BeautifulSoup]:
        result = self.fetch(url, force_rendered=force_rendered)
        return result, BeautifulSoup(result.body, "html.parser")

    def run_attempt(
        self,
        url: str,
        force_rendered: bool = False,
        wait_for_selector: Optional[str] = None,
    ) -> FetchAttempt:
        """Drive one fetch through the engine state machine.

        Returns the finished attempt on success. Raises ``RobotsBlocked``
        before any engine runs when robots.txt disallows ``url`` and
        ``FetchUnreachable`` when every permitted engine failed.
        """
        decision = self.guard.check(url)
        if not decision.allowed:
            logger.warning("Blocked by robots.txt: %s", url)
            raise RobotsBlocked(url)

        attempt = FetchAttempt(url=url, force_rendered=force_rendered)

        if not force_rendered:
            started = time.time()
            try:
                attempt.result = self.lightweight.fetch(url)
            except http_requests.RequestException as exc:
                attempt.errors[FetchEngine.LIGHTWEIGHT] = str(exc)
                attempt.transition(FetchState.LIGHTWEIGHT_FAILED)
                if not should_fallback(exc, force_rendered):
                    attempt.transition(FetchState.FAILED)
                    logger.error("Lightweight fetch failed for %s with no fallback: %s", url, exc)
                    raise FetchUnreachable(
                        str(exc),
                        engine=FetchEngine.LIGHTWEIGHT.value,
                        partial_result=failed_result(url, FetchEngine.LIGHTWEIGHT, started, exc),
                    ) from exc
                logger.warning("Lightweight fetch failed for %s, falling back to rendering: %s", url, exc)
            else:
                attempt.transition(FetchState.SUCCEEDED)
                self._log_success(attempt.result)
                return attempt

        attempt.transition(FetchState.RENDERED_ATTEMPTED)
        started = time.time()
        try:
            attempt.result = self.rendered.fetch(url, wait_for_selector=wait_for_selector)
        except (PlaywrightError, FetchError) as exc:
            attempt.errors[FetchEngine.RENDERED] = str(exc)
            attempt.transition(FetchState.FAILED)
            logger.error(
                "All fetch engines failed for %s: lightweight=%s rendered=%s",
                url,
                attempt.errors.get(FetchEngine.LIGHTWEIGHT, "skipped"),
                exc,
            )
            raise FetchUnreachable(
                str(exc),
                engine=FetchEngine.RENDERED.value,
                partial_result=failed_result(url, FetchEngine.RENDERED, started, exc),
            ) from exc

        attempt.transition(FetchState.SUCCEEDED)
        self._log_success(attempt.result)
        return attempt

    @staticmethod
    def _log_success(result: FetchResult) -> None:
        logger.info(
            "Fetched %s via %s: status=%d length=%d duration=%.2fs",
            result.url,
            result.engine.value,
            result.http_status,
            len(result.body),
            result.timing.duration,
        )

    def close(self) -> None:
        self.rendered.close()

    def __enter__(self) -> Fetcher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
