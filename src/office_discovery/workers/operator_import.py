from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Optional, Union

from ..db import session_scope
from ..errors import ValidationFailure
from ..jobs import complete_job, fail_job, start_job
from ..repository import upsert_operators
from ..schemas import OperatorInput, validate_payload

logger = logging.getLogger(__name__)

JOB_NAME = "operator_import"


def read_operator_names(path: Union[str, Path], column: str = "name") -> tuple[list[str], int]:
    """Valid operator names from a CSV file with a header row, plus the skipped row count."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    names: list[str] = []
    skipped = 0
    with path.open(newline="", encoding="utf-8") as handle:
        for row in csv.DictReader(handle):
            raw = (row.get(column) or "").strip()
            if not raw:
                logger.warning("Missing operator name in row %s, skipping", row)
                skipped += 1
                continue
            try:
                operator = validate_payload(OperatorInput, {"name": raw})
            except ValidationFailure as exc:
                logger.warning("Invalid operator name %r, skipping: %s", raw, exc.errors)
                skipped += 1
                continue
            names.append(operator.name)
    return names, skipped


def load_operators(path: Union[str, Path], column: str = "name", scope: Optional[str] = None) -> dict:
    names, skipped = read_operator_names(path, column=column)

    with session_scope() as session:
        run = start_job(session, JOB_NAME, scope=scope, details={"file": str(path)})
        try:
            inserted = upsert_operators(session, names, source=Path(path).name)
            summary = {"loaded": len(names), "inserted": inserted, "skipped": skipped}
            complete_job(session, run, processed_count=len(names), details=summary)
        except Exception as exc:
            fail_job(session, run, error=str(exc))
            raise

    logger.info("Operator loading completed: loaded=%d inserted=%d skipped=%d", len(names), inserted, skipped)
    return summary
