"""Candidate scoring and deduplication.

Scores start from the source's base confidence (0.7 for search hits, 0.3 for
live name guesses) and are adjusted by the weights in ``CANDIDATE_WEIGHTS``:

- every brand token found in the domain adds ``domain_token``; tokens are
  not capped, so "acme" and "coworking" both count for acmecoworking.com
- every brand token found in the result title adds ``title_token``
- every relevant keyword found in the domain or title adds ``keyword``
- a low-trust hosting marker in the domain applies ``low_trust_penalty`` once

The final value is clamped to [0, 1].
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

CANDIDATE_WEIGHTS: dict[str, float] = {
    "domain_token": 0.3,
    "title_token": 0.2,
    "keyword": 0.1,
    "low_trust_penalty": -0.3,
}

RELEVANT_KEYWORDS = ("coworking", "workspace", "office", "flexible", "shared", "space")
LOW_TRUST_MARKERS = ("wordpress", "blogspot", "wix")


class CandidateSource(str, Enum):
    GOOGLE = "google"
    BING = "bing"
    DOMAIN_GUESS = "domain_guess"
    MANUAL = "manual"
    REFERRAL = "referral"


@dataclass(frozen=True)
class DomainCandidate:
    domain: str
    url: str
    source: CandidateSource
    confidence: float
    title: Optional[str] = None
    description: Optional[str] = None
    brand_match: Optional[bool] = None

    @property
    def key(self) -> str:
        return self.domain.lower()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def generate_brand_tokens(operator_name: str) -> list[str]:
    """Full name, every word of 3+ chars, and the acronym of those words.

    "Acme Coworking" -> ["Acme Coworking", "acme", "coworking", "ac"]
    """
    name = (operator_name or "").strip()
    if not name:
        return []

    tokens = [name]
    words = [word for word in re.split(r"\s+", name.lower()) if len(word) > 2]
    tokens.extend(words)

    if len(words) > 1:
        acronym = "".join(word[0] for word in words)
        if len(acronym) >= 2:
            tokens.append(acronym)

    return list(dict.fromkeys(tokens))


def score_candidate(
    candidate: DomainCandidate,
    brand_tokens: Iterable[str],
    weights: Optional[dict[str, float]] = None,
) -> DomainCandidate:
    weights = weights or CANDIDATE_WEIGHTS
    domain = candidate.domain.lower()
    title = (candidate.title or "").lower()
    score = candidate.confidence
    brand_hit = False

    for token in brand_tokens:
        token = token.lower()
        if not token:
            continue
        if token in domain:
            score += weights["domain_token"]
            brand_hit = True
        if title and token in title:
            score += weights["title_token"]
            brand_hit = True

    for keyword in RELEVANT_KEYWORDS:
        if keyword in domain or keyword in title:
            score += weights["keyword"]

    if any(marker in domain for marker in LOW_TRUST_MARKERS):
        score += weights["low_trust_penalty"]

    return replace(candidate, confidence=clamp(score), brand_match=brand_hit)


def score_candidates(candidates: Iterable[DomainCandidate], operator_name: str) -> list[DomainCandidate]:
    """Score every candidate and sort by confidence, highest first.

    ``sorted`` is stable, so equal scores keep their discovery order.
    """
    brand_tokens = generate_brand_tokens(operator_name)
    scored = [score_candidate(candidate, brand_tokens) for candidate in candidates]
    return sorted(scored, key=lambda c: c.confidence, reverse=True)


def deduplicate_candidates(candidates: Iterable[DomainCandidate]) -> list[DomainCandidate]:
    """One candidate per lowercase domain; on collision the higher confidence wins."""
    seen: dict[str, DomainCandidate] = {}
    for candidate in candidates:
        existing = seen.get(candidate.key)
        if existing is None or candidate.confidence > existing.confidence:
            seen[candidate.key] = candidate
    return list(seen.values())
