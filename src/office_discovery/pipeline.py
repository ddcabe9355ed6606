from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .config import load_config
from .discovery import CandidateGenerator
from .fetcher import Fetcher
from .verification import VerificationEngine
from .workers.domain_discovery import run_batch as run_domain_discovery
from .workers.domain_verification import run_batch as run_domain_verification
from .workers.operator_import import load_operators


def run_once(
    operators_file: Optional[Union[str, Path]] = None,
    column: str = "name",
    limit: Optional[int] = None,
    verify_limit: Optional[int] = None,
    min_confidence: Optional[float] = None,
    scope: Optional[str] = None,
) -> dict:
    """Load operators (optional), discover their domains, then verify candidates.

    Verification takes three candidates per operator by default, since each
    operator usually yields several plausible domains.
    """
    config = load_config()
    discovery_limit = config.batch_size if limit is None else limit
    if verify_limit is None:
        verify_limit = discovery_limit * 3

    imported = load_operators(operators_file, column=column, scope=scope) if operators_file else None

    generator = CandidateGenerator.from_config(config)
    try:
        discovered = run_domain_discovery(limit=discovery_limit, scope=scope, generator=generator)
    finally:
        generator.close()

    with Fetcher.from_config(config) as fetcher:
        engine = VerificationEngine.from_config(config, fetcher=fetcher)
        verified = run_domain_verification(
            limit=verify_limit,
            min_confidence=min_confidence,
            scope=scope,
            engine=engine,
        )

    return {
        "imported": imported,
        "discovery": discovered,
        "verification": verified,
    }
