"""Certificate match resolution.

Decides, from the probe results of all candidate hashes, whether a
submitted certificate is verified:

1. the uploaded file's own hash registered on-chain wins (``uploaded_file``);
2. otherwise the first candidate, in collection order, that exists on-chain
   (``database_match``): the record exists, but the uploaded bytes differ
   from the registered document;
3. otherwise nothing matched (``none``).
"""

from __future__ import annotations

import logging

from certledger.ledger.client import LedgerClient
from certledger.models import ChainProbeResult, VerificationOutcome, VerificationReport
from certledger.verification.collector import CandidateSet
from certledger.verification.prober import probe_candidates

logger = logging.getLogger(__name__)

MESSAGES: dict[tuple[bool, str], str] = {
    (True, "uploaded_file"): (
        "Certificate verified: the uploaded file matches a certificate registered on the blockchain."
    ),
    (True, "database_match"): (
        "A matching certificate record is registered on the blockchain, but the uploaded file "
        "does not match the registered document exactly. Review before approving the claim."
    ),
    (False, "none"): (
        "Certificate could not be verified: no candidate hash is registered on the blockchain."
    ),
}


def outcome_message(verified: bool, chosen_source: str) -> str:
    return MESSAGES[(verified, chosen_source)]


def resolve(results: list[ChainProbeResult], local_hash: str | None) -> VerificationOutcome:
    """Pick the authoritative probe result."""
    local_result = next((r for r in results if local_hash is not None and r.hash == local_hash), None)

    if local_result is not None and local_result.exists:
        chosen, source = local_result, "uploaded_file"
    else:
        chosen = next((r for r in results if r.exists), None)
        source = "database_match" if chosen is not None else "none"

    verified = chosen is not None
    return VerificationOutcome(
        verified=verified,
        matched_hash=chosen.hash if chosen is not None else None,
        chosen_source=source,
        message=outcome_message(verified, source),
    )


async def verify_candidates(candidates: CandidateSet, client: LedgerClient) -> VerificationReport:
    """Probe every candidate and resolve the outcome."""
    results = await probe_candidates(candidates, client)
    outcome = resolve(results, candidates.local_hash)
    logger.info(
        "Verification resolved: verified=%s source=%s candidates=%d db_matches=%d",
        outcome.verified, outcome.chosen_source, len(results), candidates.db_matches,
    )
    return VerificationReport(
        local_hash=candidates.local_hash,
        outcome=outcome,
        candidates=list(candidates),
        results=results,
        db_matches=candidates.db_matches,
    )
