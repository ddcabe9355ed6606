from __future__ import annotations

import pytest

from office_discovery.scoring import (
    CANDIDATE_WEIGHTS,
    CandidateSource,
    DomainCandidate,
    deduplicate_candidates,
    generate_brand_tokens,
    score_candidate,
    score_candidates,
)


def _candidate(domain, confidence=0.7, title=None, source=CandidateSource.GOOGLE):
    return DomainCandidate(
        domain=domain,
        url=f"https://{domain}",
        source=source,
        confidence=confidence,
        title=title,
    )


def test_brand_tokens_for_two_word_name():
    assert generate_brand_tokens("Acme Coworking") == ["Acme Coworking", "acme", "coworking", "ac"]


def test_brand_tokens_skip_short_words_and_single_word_acronym():
    assert generate_brand_tokens("The Hub") == ["The Hub", "the", "hub", "th"]
    assert generate_brand_tokens("Regus") == ["Regus", "regus"]
    assert generate_brand_tokens("WeWork at 5") == ["WeWork at 5", "wework"]
    assert generate_brand_tokens("   ") == []


def test_strong_match_is_clamped_to_one():
    tokens = generate_brand_tokens("Acme Coworking")
    candidate = _candidate("acmecoworking.com", title="Acme Coworking | Flexible Offices")

    scored = score_candidate(candidate, tokens)

    assert scored.confidence == 1.0
    assert scored.brand_match is True


def test_domain_tokens_are_additive():
    tokens = generate_brand_tokens("Acme Coworking")
    scored = score_candidate(_candidate("acme.io", confidence=0.3, source=CandidateSource.DOMAIN_GUESS), tokens)

    # "acme" and the acronym "ac" both appear in the domain
    assert scored.confidence == pytest.approx(0.3 + 2 * CANDIDATE_WEIGHTS["domain_token"])


def test_unrelated_candidate_keeps_base_confidence():
    scored = score_candidate(_candidate("zzz.com"), generate_brand_tokens("Acme Coworking"))
    assert scored.confidence == pytest.approx(0.7)
    assert scored.brand_match is False


def test_low_trust_penalty_is_clamped_at_zero():
    scored = score_candidate(_candidate("mywixsite.com", confidence=0.1), ["zzz"])
    assert scored.confidence == 0.0


def test_keyword_in_title_counts_once_per_keyword():
    scored = score_candidate(_candidate("zzz.com", confidence=0.2, title="Shared office, shared desks"), ["qqq"])
    # "shared" and "office" match; repeated words do not add more
    assert scored.confidence == pytest.approx(0.4)


def test_score_candidates_sorts_descending_and_keeps_ties_stable():
    candidates = [
        _candidate("first.com", confidence=0.5),
        _candidate("acme.com", confidence=0.3),
        _candidate("second.com", confidence=0.5),
    ]

    scored = score_candidates(candidates, "Acme")

    assert [c.domain for c in scored] == ["acme.com", "first.com", "second.com"]


def test_deduplicate_keeps_highest_confidence_case_insensitive():
    candidates = [
        _candidate("Acme.com", confidence=0.3, source=CandidateSource.DOMAIN_GUESS),
        _candidate("acme.com", confidence=0.7),
        _candidate("other.com", confidence=0.4),
    ]

    unique = deduplicate_candidates(candidates)

    assert len(unique) == 2
    acme = next(c for c in unique if c.key == "acme.com")
    assert acme.confidence == 0.7
    assert acme.source is CandidateSource.GOOGLE


def test_deduplicate_is_idempotent():
    candidates = [
        _candidate("acme.com", confidence=0.3),
        _candidate("ACME.com", confidence=0.9),
        _candidate("b.com", confidence=0.1),
        _candidate("b.com", confidence=0.1),
    ]

    once = deduplicate_candidates(candidates)
    assert deduplicate_candidates(once) == once
