"""Candidate hash collection.

A verification request proposes hashes from several places: the uploaded
file itself, an optional hash typed in by the insurer, and certificate
records in the store that resemble the request (same hash, similar name,
same certificate ID or IPFS CID). All of them are canonicalized and merged
into one ordered, de-duplicated :class:`CandidateSet`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from certledger.hashing import canonicalize, sha256_hex
from certledger.models import (
    DATABASE_HASH,
    DATABASE_IPFS,
    DATABASE_NAME,
    MANUAL_INPUT,
    UPLOADED_FILE,
    Candidate,
)
from certledger.utils import StoreError

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_LIMIT = 25

REASON_FILE = "SHA-256 of uploaded file"
REASON_MANUAL = "hash supplied with the request"
REASON_HASH = "stored certificate hash equals uploaded file hash"
REASON_NAME = "deceased name equals certificate full name"
REASON_CID = "IPFS CID equals stored certificate CID"
REASON_CERT_ID = "certificate ID equals stored certificate ID"
REASON_FUZZY = "fuzzy database match"


class CandidateSet:
    """Insertion-ordered candidates keyed by canonical hash."""

    def __init__(self) -> None:
        self._by_hash: dict[str, Candidate] = {}
        self.local_hash: str | None = None
        self.db_matches: int = 0

    def register(
        self,
        raw_hash: str | None,
        source: str,
        reason: str | None = None,
        document: dict[str, Any] | None = None,
    ) -> Candidate | None:
        """Add *raw_hash* under *source*; invalid hashes are dropped silently."""
        canonical = canonicalize(raw_hash)
        if canonical is None:
            logger.debug("Dropping malformed candidate hash %r (source=%s)", raw_hash, source)
            return None
        candidate = self._by_hash.get(canonical)
        if candidate is None:
            candidate = Candidate(hash=canonical)
            self._by_hash[canonical] = candidate
        candidate.add(source, reason, document)
        return candidate

    def get(self, canonical_hash: str) -> Candidate | None:
        return self._by_hash.get(canonical_hash)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(list(self._by_hash.values()))

    def __len__(self) -> int:
        return len(self._by_hash)

    def __contains__(self, canonical_hash: object) -> bool:
        return canonical_hash in self._by_hash

    @property
    def hashes(self) -> list[str]:
        return list(self._by_hash)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def attribute_match(
    document: dict[str, Any],
    *,
    local_hash: str | None,
    deceased_name: str | None,
    certificate_id: str | None,
    ipfs_cid: str | None,
) -> list[tuple[str, str]]:
    """Return ``(source, reason)`` pairs explaining why *document* was returned.

    Every database hit is at least a ``database_hash`` candidate; name and
    CID equality add their own provenance tags.
    """
    reasons: list[tuple[str, str]] = []
    stored_hash = canonicalize(document.get("hash"))
    if local_hash and stored_hash == local_hash:
        reasons.append((DATABASE_HASH, REASON_HASH))
    full_name = str(document.get("fullName") or "").strip().lower()
    if deceased_name and full_name == deceased_name.lower():
        reasons.append((DATABASE_NAME, REASON_NAME))
    if ipfs_cid and document.get("ipfsCid") == ipfs_cid:
        reasons.append((DATABASE_IPFS, REASON_CID))
    if certificate_id and document.get("certificateId") == certificate_id:
        reasons.append((DATABASE_HASH, REASON_CERT_ID))
    if not reasons:
        reasons.append((DATABASE_HASH, REASON_FUZZY))
    return reasons


def collect_candidates(
    file_bytes: bytes,
    store: Any,
    *,
    deceased_name: str | None = None,
    certificate_id: str | None = None,
    ipfs_cid: str | None = None,
    manual_hash: str | None = None,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
) -> CandidateSet:
    """Build the candidate set for one verification request.

    Order: uploaded-file hash, manual hash, then database hits in the order
    the store returned them. The store is only queried when at least one
    criterion is present.
    """
    deceased_name = _clean(deceased_name)
    certificate_id = _clean(certificate_id)
    ipfs_cid = _clean(ipfs_cid)

    candidates = CandidateSet()

    local = candidates.register(sha256_hex(file_bytes), UPLOADED_FILE, REASON_FILE)
    candidates.local_hash = local.hash if local is not None else None

    if _clean(manual_hash):
        candidates.register(manual_hash, MANUAL_INPUT, REASON_MANUAL)

    if not any((candidates.local_hash, deceased_name, certificate_id, ipfs_cid)):
        return candidates

    try:
        documents = store.search_certificates(
            cert_hash=candidates.local_hash,
            name=deceased_name,
            certificate_id=certificate_id,
            ipfs_cid=ipfs_cid,
            limit=limit,
        )
    except StoreError:
        logger.exception("Certificate lookup failed; continuing with request-supplied hashes only")
        return candidates
    candidates.db_matches = len(documents)
    logger.info("Candidate lookup returned %d certificate record(s)", len(documents))

    for document in documents[:limit]:
        pairs = attribute_match(
            document,
            local_hash=candidates.local_hash,
            deceased_name=deceased_name,
            certificate_id=certificate_id,
            ipfs_cid=ipfs_cid,
        )
        # Every hit carries database_hash even when only a name/CID clause matched.
        if all(source != DATABASE_HASH for source, _ in pairs):
            pairs.insert(0, (DATABASE_HASH, pairs[0][1]))
        for i, (source, reason) in enumerate(pairs):
            candidates.register(document.get("hash"), source, reason, document if i == 0 else None)

    return candidates
