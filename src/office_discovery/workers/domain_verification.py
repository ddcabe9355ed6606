"""Domain verification jobs.

``process_job`` takes ``{operator_id, domain, brand_tokens}``, verifies the
domain and records the outcome: the candidate is stamped verified or
rejected and, when verified, a website row is upserted.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import load_config
from ..db import session_scope
from ..errors import OfficeDiscoveryError
from ..jobs import complete_job, fail_job, start_job
from ..repository import mark_candidate, pending_candidates, upsert_website
from ..schemas import DomainVerificationJob, validate_payload
from ..scoring import generate_brand_tokens
from ..verification import VerificationEngine, VerificationResult

logger = logging.getLogger(__name__)

JOB_NAME = "domain_verification"


def record_result(
    session: Session,
    operator_id: uuid.UUID,
    domain: str,
    result: VerificationResult,
) -> None:
    mark_candidate(session, operator_id, domain, result)
    if result.verified and result.canonical_url:
        upsert_website(session, operator_id, domain, result.canonical_url, result.content_hash)


def process_job(
    payload: Any,
    engine: Optional[VerificationEngine] = None,
    session: Optional[Session] = None,
) -> dict:
    job = validate_payload(DomainVerificationJob, payload)
    logger.info("Processing domain verification job for %s (%s)", job.domain, job.operator_id)

    owns_engine = engine is None
    engine = engine or VerificationEngine.from_config()
    try:
        result = engine.verify(job.domain, job.brand_tokens)
        if session is not None:
            record_result(session, job.operator_id, job.domain, result)
        else:
            with session_scope() as scoped:
                record_result(scoped, job.operator_id, job.domain, result)
    except Exception:
        logger.exception("Domain verification failed for %s", job.domain)
        raise
    finally:
        if owns_engine:
            engine.fetcher.close()

    return {
        "operator_id": str(job.operator_id),
        "domain": job.domain,
        "verified": result.verified,
        "confidence": result.confidence,
        "rejection_reason": result.rejection_reason,
        "reasons": result.reasons,
    }


def run_batch(
    limit: Optional[int] = None,
    operator_id: Optional[uuid.UUID] = None,
    min_confidence: Optional[float] = None,
    scope: Optional[str] = None,
    engine: Optional[VerificationEngine] = None,
) -> dict:
    config = load_config()
    max_items = config.batch_size if limit is None else max(limit, 0)
    threshold = config.verify_min_confidence if min_confidence is None else min_confidence

    owns_engine = engine is None
    engine = engine or VerificationEngine.from_config(config)
    try:
        with session_scope() as session:
            run = start_job(session, JOB_NAME, scope=scope)
            session.commit()
            try:
                rows = pending_candidates(session, max_items, min_confidence=threshold, operator_id=operator_id)
                jobs = [
                    {
                        "operator_id": candidate.operator_id,
                        "domain": candidate.domain,
                        "brand_tokens": generate_brand_tokens(operator.brand_name),
                    }
                    for candidate, operator in rows
                ]

                verified = 0
                rejected = 0
                failed = 0
                for job in jobs:
                    try:
                        result = process_job(job, engine=engine, session=session)
                    except OfficeDiscoveryError as exc:
                        failed += 1
                        logger.warning("Skipping verification of %s: %s", job["domain"], exc)
                        continue
                    session.commit()
                    if result["verified"]:
                        verified += 1
                    else:
                        rejected += 1

                details = {
                    "processed": verified + rejected,
                    "verified": verified,
                    "rejected": rejected,
                    "failed": failed,
                }
                complete_job(session, run, processed_count=verified + rejected, details=details)
                return details
            except Exception as exc:
                # Items are committed one by one, so drop the failed one and record the failure on its own.
                session.rollback()
                fail_job(session, run, error=str(exc))
                session.commit()
                raise
    finally:
        if owns_engine:
            engine.fetcher.close()
