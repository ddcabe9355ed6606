from __future__ import annotations

import argparse
import json
import logging
import os

from office_discovery.fetcher import Fetcher
from office_discovery.scoring import generate_brand_tokens
from office_discovery.verification import VerificationEngine


def main() -> None:
    parser = argparse.ArgumentParser(description="Verify a single domain against an operator name, without the database")
    parser.add_argument("domain", help="Domain to verify, e.g. acmecoworking.com")
    parser.add_argument("operator_name", help="Operator brand name, e.g. 'Acme Coworking'")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    with Fetcher.from_config() as fetcher:
        engine = VerificationEngine.from_config(fetcher=fetcher)
        result = engine.verify(args.domain, generate_brand_tokens(args.operator_name))
    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
