from __future__ import annotations

import argparse
import logging
import os
import uuid

from office_discovery.workers.domain_discovery import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Discover candidate domains for operators")
    parser.add_argument("--limit", type=int, default=None, help="Max operators to process")
    parser.add_argument("--operator", type=uuid.UUID, default=None, help="Only this operator id")
    parser.add_argument("--scope", default=None, help="Job scope tag")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    result = run_batch(limit=args.limit, operator_id=args.operator, scope=args.scope)
    print(
        f"Processed {result['processed']} operators, {result['candidates']} candidates, "
        f"{result['failed']} failed"
    )


if __name__ == "__main__":
    main()
