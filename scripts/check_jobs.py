"""Check recent job runs."""
from __future__ import annotations

from sqlalchemy import desc, select

from office_discovery.db import session_scope
from office_discovery.models import JobRun


def main() -> None:
    with session_scope() as session:
        runs = session.execute(select(JobRun).order_by(desc(JobRun.started_at)).limit(15)).scalars().all()

        print(f"{'Job Name':<25} {'Status':<10} {'Started At':<30} {'Processed':<10}")
        print("-" * 75)
        for run in runs:
            print(f"{run.job_name:<25} {run.status:<10} {str(run.started_at):<30} {run.processed_count or 0:<10}")
            if run.error:
                print(f"    error: {run.error[:200]}")


if __name__ == "__main__":
    main()
