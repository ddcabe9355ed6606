from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import JobRun

GLOBAL_SCOPE = "__global__"


def normalize_scope(scope: Optional[str]) -> str:
    cleaned = (scope or "").strip()
    return cleaned or GLOBAL_SCOPE


def start_job(session: Session, job_name: str, scope: Optional[str] = None, details: Optional[dict] = None) -> JobRun:
    run = JobRun(job_name=job_name, scope=normalize_scope(scope), status="running", details=details)
    session.add(run)
    session.flush()
    return run


def complete_job(session: Session, run: JobRun, processed_count: int = 0, details: Optional[dict] = None) -> None:
    run.status = "success"
    run.processed_count = processed_count
    run.finished_at = datetime.now(timezone.utc)
    if details is not None:
        run.details = details


def fail_job(session: Session, run: JobRun, error: str, details: Optional[dict] = None) -> None:
    run.status = "failed"
    run.error = error[:4000]
    run.finished_at = datetime.now(timezone.utc)
    if details is not None:
        run.details = details


def last_run(session: Session, job_name: str, scope: Optional[str] = None) -> Optional[JobRun]:
    stmt = (
        select(JobRun)
        .where(JobRun.job_name == job_name)
        .where(JobRun.scope == normalize_scope(scope))
        .order_by(JobRun.started_at.desc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()
