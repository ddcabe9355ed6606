from __future__ import annotations

from sqlalchemy import case, func, select

from .db import session_scope
from .jobs import last_run
from .models import DomainCandidate, JobRun, Operator, Website
from .workers.domain_discovery import JOB_NAME as DISCOVERY_JOB
from .workers.domain_verification import JOB_NAME as VERIFICATION_JOB


def collect_metrics() -> dict:
    with session_scope() as session:
        operators_total = session.execute(select(func.count(Operator.id))).scalar() or 0

        has_candidates = select(DomainCandidate.id).where(DomainCandidate.operator_id == Operator.id).exists()
        operators_pending = session.execute(
            select(func.count(Operator.id)).where(~has_candidates)
        ).scalar() or 0

        candidate_totals = session.execute(
            select(
                func.count(DomainCandidate.id),
                func.sum(case((DomainCandidate.verified_at.isnot(None), 1), else_=0)),
                func.sum(case((DomainCandidate.rejected_at.isnot(None), 1), else_=0)),
                func.avg(DomainCandidate.confidence),
            )
        ).first()

        source_rows = session.execute(
            select(DomainCandidate.source, func.count(DomainCandidate.id)).group_by(DomainCandidate.source)
        ).all()

        rejection_rows = session.execute(
            select(DomainCandidate.rejection_reason, func.count(DomainCandidate.id))
            .where(DomainCandidate.rejection_reason.isnot(None))
            .group_by(DomainCandidate.rejection_reason)
            .order_by(func.count(DomainCandidate.id).desc())
            .limit(10)
        ).all()

        websites_active = session.execute(
            select(func.count(Website.id)).where(Website.is_active.is_(True))
        ).scalar() or 0

        job_rows = session.execute(
            select(JobRun.job_name, JobRun.status, func.count(JobRun.id)).group_by(JobRun.job_name, JobRun.status)
        ).all()

        last_runs = {}
        for job_name in (DISCOVERY_JOB, VERIFICATION_JOB):
            run = last_run(session, job_name)
            last_runs[job_name] = (
                {
                    "status": run.status,
                    "started_at": run.started_at,
                    "finished_at": run.finished_at,
                    "processed_count": run.processed_count,
                }
                if run
                else None
            )

    total, verified, rejected, avg_confidence = candidate_totals
    verified = int(verified or 0)
    rejected = int(rejected or 0)

    jobs: dict[str, dict[str, int]] = {}
    for job_name, status, count in job_rows:
        jobs.setdefault(job_name, {})[status] = int(count)

    return {
        "operators": {
            "total": int(operators_total),
            "without_candidates": int(operators_pending),
        },
        "candidates": {
            "total": int(total or 0),
            "verified": verified,
            "rejected": rejected,
            "pending": int(total or 0) - verified - rejected,
            "avg_confidence": float(avg_confidence) if avg_confidence is not None else None,
            "by_source": {source: int(count) for source, count in source_rows},
            "top_rejection_reasons": {reason: int(count) for reason, count in rejection_rows},
        },
        "websites": {"active": int(websites_active)},
        "jobs": jobs,
        "last_runs": last_runs,
    }
