from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .fetcher import FetchResult


class OfficeDiscoveryError(Exception):
    """Base class for every error raised by the discovery/verification core."""


class RobotsBlocked(OfficeDiscoveryError):
    """robots.txt disallows the URL. Final for that URL, never retried here."""

    def __init__(self, url: str):
        super().__init__(f"Blocked by robots.txt: {url}")
        self.url = url


class FetchError(OfficeDiscoveryError):
    def __init__(self, message: str, engine: Optional[str] = None, partial_result: Optional[FetchResult] = None):
        super().__init__(message)
        self.engine = engine
        self.partial_result = partial_result


class FetchUnreachable(FetchError):
    """Every engine that was allowed to run failed."""


class ParsingFailure(OfficeDiscoveryError):
    pass


class ValidationFailure(OfficeDiscoveryError):
    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []
