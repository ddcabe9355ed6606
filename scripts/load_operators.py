from __future__ import annotations

import argparse
import logging
import os

from office_discovery.workers.operator_import import load_operators


def main() -> None:
    parser = argparse.ArgumentParser(description="Load operators from a CSV file")
    parser.add_argument("file", help="CSV file with a header row")
    parser.add_argument("--column", default="name", help="Column holding the operator name")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    result = load_operators(args.file, column=args.column)
    print(f"Loaded {result['loaded']} operators ({result['inserted']} new), skipped {result['skipped']}")


if __name__ == "__main__":
    main()
