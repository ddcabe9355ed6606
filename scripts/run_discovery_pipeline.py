from __future__ import annotations

import argparse
import json
import logging
import os

from office_discovery.pipeline import run_once


def main() -> None:
    parser = argparse.ArgumentParser(description="Load operators, discover and verify their domains")
    parser.add_argument("--operators-file", default=None, help="Optional CSV of operators to load first")
    parser.add_argument("--column", default="name", help="Column holding the operator name")
    parser.add_argument("--limit", type=int, default=None, help="Max operators to discover")
    parser.add_argument("--verify-limit", type=int, default=None, help="Max candidates to verify (default 3x limit)")
    parser.add_argument("--min-confidence", type=float, default=None, help="Skip candidates below this confidence")
    parser.add_argument("--scope", default=None, help="Job scope tag")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    result = run_once(
        operators_file=args.operators_file,
        column=args.column,
        limit=args.limit,
        verify_limit=args.verify_limit,
        min_confidence=args.min_confidence,
        scope=args.scope,
    )
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
