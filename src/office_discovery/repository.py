"""Persistence for candidates, verification outcomes and websites.

All writes are ``INSERT ... ON CONFLICT`` upserts keyed by
``(operator_id, domain)`` so a job retried by the queue converges on the
same rows.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from .models import DomainCandidate, Operator, Website
from .scoring import DomainCandidate as ScoredCandidate
from .verification import VerificationResult


def get_operator(session: Session, operator_id: uuid.UUID) -> Optional[Operator]:
    return session.get(Operator, operator_id)


def upsert_operators(session: Session, brand_names: Iterable[str], source: Optional[str] = None) -> int:
    values = [{"brand_name": name, "source": source} for name in dict.fromkeys(brand_names)]
    if not values:
        return 0
    stmt = insert(Operator).values(values).on_conflict_do_nothing(index_elements=["brand_name"])
    result = session.execute(stmt)
    return result.rowcount or 0


def upsert_candidates(
    session: Session,
    operator_id: uuid.UUID,
    candidates: Iterable[ScoredCandidate],
) -> int:
    values = [
        {
            "operator_id": operator_id,
            "domain": candidate.domain.lower(),
            "url": candidate.url,
            "source": candidate.source.value,
            "confidence": candidate.confidence,
            "title": candidate.title,
            "description": candidate.description,
            "brand_match": candidate.brand_match,
        }
        for candidate in candidates
    ]
    if not values:
        return 0

    stmt = insert(DomainCandidate).values(values)
    stmt = stmt.on_conflict_do_update(
        constraint="domain_candidates_operator_domain_uidx",
        set_={
            "url": stmt.excluded.url,
            "source": stmt.excluded.source,
            "confidence": stmt.excluded.confidence,
            "title": stmt.excluded.title,
            "description": stmt.excluded.description,
            "brand_match": stmt.excluded.brand_match,
            "updated_at": func.now(),
        },
    )
    result = session.execute(stmt)
    return result.rowcount or 0


def mark_candidate(
    session: Session,
    operator_id: uuid.UUID,
    domain: str,
    result: VerificationResult,
) -> int:
    """Stamp ``verified_at`` or ``rejected_at`` and keep the result snapshot."""
    now = datetime.now(timezone.utc)
    values = {
        "verification": result.to_dict(),
        "rejection_reason": result.rejection_reason,
        "updated_at": now,
    }
    if result.verified:
        values["verified_at"] = now
        values["rejected_at"] = None
    else:
        values["rejected_at"] = now
        values["verified_at"] = None

    stmt = (
        update(DomainCandidate)
        .where(DomainCandidate.operator_id == operator_id)
        .where(DomainCandidate.domain == domain.lower())
        .values(**values)
    )
    return session.execute(stmt).rowcount or 0


def upsert_website(
    session: Session,
    operator_id: uuid.UUID,
    domain: str,
    canonical_url: str,
    content_hash: Optional[str] = None,
) -> None:
    stmt = insert(Website).values(
        operator_id=operator_id,
        domain=domain.lower(),
        canonical_url=canonical_url,
        content_hash=content_hash,
        is_active=True,
    )
    stmt = stmt.on_conflict_do_update(
        constraint="websites_operator_domain_uidx",
        set_={
            "canonical_url": stmt.excluded.canonical_url,
            "content_hash": stmt.excluded.content_hash,
            "is_active": True,
            "last_seen_at": func.now(),
        },
    )
    session.execute(stmt)


def operators_without_candidates(session: Session, limit: int) -> list[Operator]:
    has_candidates = select(DomainCandidate.id).where(DomainCandidate.operator_id == Operator.id).exists()
    stmt = (
        select(Operator)
        .where(~has_candidates)
        .order_by(Operator.created_at)
        .limit(limit)
    )
    return list(session.execute(stmt).scalars())


def pending_candidates(
    session: Session,
    limit: int,
    min_confidence: float = 0.0,
    operator_id: Optional[uuid.UUID] = None,
) -> list[tuple[DomainCandidate, Operator]]:
    """Unverified, unrejected candidates, highest confidence first."""
    stmt = (
        select(DomainCandidate, Operator)
        .join(Operator, DomainCandidate.operator_id == Operator.id)
        .where(DomainCandidate.verified_at.is_(None))
        .where(DomainCandidate.rejected_at.is_(None))
        .where(DomainCandidate.confidence >= min_confidence)
        .order_by(DomainCandidate.confidence.desc(), DomainCandidate.created_at)
        .limit(limit)
    )
    if operator_id is not None:
        stmt = stmt.where(DomainCandidate.operator_id == operator_id)
    return [(candidate, operator) for candidate, operator in session.execute(stmt).all()]
