"""Verification model objects shared by the collector, prober and resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# Candidate provenance tags
UPLOADED_FILE = "uploaded_file"
DATABASE_HASH = "database_hash"
DATABASE_NAME = "database_name"
DATABASE_IPFS = "database_ipfs"
MANUAL_INPUT = "manual_input"

ChosenSource = Literal["uploaded_file", "database_match", "none"]


@dataclass
class Candidate:
    """A canonical hash proposed as possibly registered on-chain.

    ``sources`` and ``reasons`` grow when the same hash is registered
    again from another provenance path.
    """

    hash: str
    sources: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    documents: list[dict[str, Any]] = field(default_factory=list)

    def add(self, source: str, reason: str | None = None, document: dict[str, Any] | None = None) -> None:
        if source not in self.sources:
            self.sources.append(source)
        if reason and reason not in self.reasons:
            self.reasons.append(reason)
        if document is not None:
            self.documents.append(document)


@dataclass(frozen=True)
class ChainProbeResult:
    """Outcome of one read-only ledger lookup."""

    hash: str
    formatted_hash: str
    exists: bool = False
    ipfs_cid: str = ""
    registrar_address: str = ""
    registration_timestamp: int = 0
    error: str | None = None


@dataclass(frozen=True)
class VerificationOutcome:
    verified: bool
    matched_hash: str | None
    chosen_source: ChosenSource
    message: str


@dataclass
class VerificationReport:
    """Everything one verification request produced, ready for the response body."""

    local_hash: str | None
    outcome: VerificationOutcome
    candidates: list[Candidate]
    results: list[ChainProbeResult]
    db_matches: int = 0

    @property
    def matched_result(self) -> ChainProbeResult | None:
        if self.outcome.matched_hash is None:
            return None
        for result in self.results:
            if result.hash == self.outcome.matched_hash:
                return result
        return None
