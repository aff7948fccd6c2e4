"""Sequential on-chain probing of candidate hashes."""

from __future__ import annotations

import logging
from typing import Iterable

from certledger.ledger.client import LedgerClient
from certledger.models import Candidate, ChainProbeResult

logger = logging.getLogger(__name__)


async def probe_candidates(candidates: Iterable[Candidate], client: LedgerClient) -> list[ChainProbeResult]:
    """Probe each candidate in order, awaiting one call before the next.

    A failed or timed-out probe is recorded on its own result and never
    stops the remaining probes.
    """
    results: list[ChainProbeResult] = []
    for candidate in candidates:
        result = await client.probe(candidate.hash)
        if result.error:
            logger.info("Probe %s: error=%s", result.formatted_hash, result.error)
        else:
            logger.info("Probe %s: exists=%s", result.formatted_hash, result.exists)
        results.append(result)
    return results
