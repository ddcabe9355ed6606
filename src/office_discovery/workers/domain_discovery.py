"""Domain discovery jobs.

``process_job`` is the queue entry point for a single
``{operator_id, operator_name}`` payload: generate candidates, score them
and upsert them. ``run_batch`` plays the queue locally for operators that
have no candidates yet.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import load_config
from ..db import session_scope
from ..discovery import CandidateGenerator
from ..errors import OfficeDiscoveryError
from ..jobs import complete_job, fail_job, start_job
from ..repository import get_operator, operators_without_candidates, upsert_candidates
from ..schemas import DomainDiscoveryJob, validate_payload
from ..scoring import score_candidates

logger = logging.getLogger(__name__)

JOB_NAME = "domain_discovery"


def process_job(
    payload: Any,
    generator: Optional[CandidateGenerator] = None,
    session: Optional[Session] = None,
) -> dict:
    job = validate_payload(DomainDiscoveryJob, payload)
    logger.info("Processing domain discovery job for %s (%s)", job.operator_name, job.operator_id)

    owns_generator = generator is None
    generator = generator or CandidateGenerator.from_config()
    try:
        candidates = score_candidates(generator.discover(job.operator_name), job.operator_name)
        if session is not None:
            upsert_candidates(session, job.operator_id, candidates)
        else:
            with session_scope() as scoped:
                upsert_candidates(scoped, job.operator_id, candidates)
    except Exception:
        logger.exception("Domain discovery failed for operator %s", job.operator_id)
        raise
    finally:
        if owns_generator:
            generator.close()

    logger.info("Domain discovery completed for %s: %d candidates", job.operator_name, len(candidates))
    return {
        "operator_id": str(job.operator_id),
        "candidates": len(candidates),
        "top": [
            {"domain": c.domain, "confidence": c.confidence, "source": c.source.value}
            for c in candidates[:5]
        ],
    }


def run_batch(
    limit: Optional[int] = None,
    operator_id: Optional[uuid.UUID] = None,
    scope: Optional[str] = None,
    generator: Optional[CandidateGenerator] = None,
) -> dict:
    config = load_config()
    max_items = config.batch_size if limit is None else max(limit, 0)

    owns_generator = generator is None
    generator = generator or CandidateGenerator.from_config(config)
    try:
        with session_scope() as session:
            run = start_job(session, JOB_NAME, scope=scope)
            session.commit()
            try:
                if operator_id is not None:
                    operator = get_operator(session, operator_id)
                    operators = [operator] if operator else []
                else:
                    operators = operators_without_candidates(session, max_items)

                processed = 0
                failed = 0
                candidates_total = 0
                for operator in operators:
                    try:
                        result = process_job(
                            {"operator_id": operator.id, "operator_name": operator.brand_name},
                            generator=generator,
                            session=session,
                        )
                    except OfficeDiscoveryError as exc:
                        failed += 1
                        logger.warning("Skipping operator %s: %s", operator.brand_name, exc)
                        continue
                    session.commit()
                    processed += 1
                    candidates_total += result["candidates"]

                details = {"processed": processed, "failed": failed, "candidates": candidates_total}
                complete_job(session, run, processed_count=processed, details=details)
                return details
            except Exception as exc:
                # Items are committed one by one, so drop the failed one and record the failure on its own.
                session.rollback()
                fail_job(session, run, error=str(exc))
                session.commit()
                raise
    finally:
        if owns_generator:
            generator.close()
