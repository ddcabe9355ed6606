from __future__ import annotations

import argparse
import logging
import os
import uuid

from office_discovery.workers.domain_verification import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Verify pending domain candidates")
    parser.add_argument("--limit", type=int, default=None, help="Max candidates to verify")
    parser.add_argument("--operator", type=uuid.UUID, default=None, help="Only candidates of this operator id")
    parser.add_argument("--min-confidence", type=float, default=None, help="Skip candidates below this confidence")
    parser.add_argument("--scope", default=None, help="Job scope tag")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    result = run_batch(
        limit=args.limit,
        operator_id=args.operator,
        min_confidence=args.min_confidence,
        scope=args.scope,
    )
    print(
        f"Verified {result['verified']}, rejected {result['rejected']}, failed {result['failed']}"
    )


if __name__ == "__main__":
    main()
