"""Certificate match resolver: candidate collection, chain probing, resolution."""

from certledger.verification.audit import record_verification
from certledger.verification.collector import CandidateSet, collect_candidates
from certledger.verification.prober import probe_candidates
from certledger.verification.resolver import outcome_message, resolve, verify_candidates

__all__ = [
    "CandidateSet",
    "collect_candidates",
    "outcome_message",
    "probe_candidates",
    "record_verification",
    "resolve",
    "verify_candidates",
]
