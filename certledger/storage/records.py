"""Record kinds and field helpers shared by both store backends."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

CERTIFICATES = "certificates"
CLAIMS = "claims"
CLAIMANT_DATA = "claimant_data"
USERS = "users"
ROLE_REQUESTS = "role_requests"

# record kind -> Neo4j label
RECORD_KINDS: dict[str, str] = {
    CERTIFICATES: "Certificate",
    CLAIMS: "Claim",
    CLAIMANT_DATA: "ClaimantData",
    USERS: "User",
    ROLE_REQUESTS: "RoleRequest",
}

ROLES = ("admin", "insurer", "claimant", "registrar")


def check_kind(kind: str) -> str:
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown record kind: {kind}")
    return kind


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def stamp_new(data: dict[str, Any]) -> dict[str, Any]:
    """Copy *data* and fill in ``id``, ``createdAt`` and ``updatedAt``."""
    now = utcnow_iso()
    record = dict(data)
    record.setdefault("id", new_id())
    record.setdefault("createdAt", now)
    record["updatedAt"] = now
    return record


def matches_certificate(
    doc: dict[str, Any],
    *,
    cert_hash: str | None = None,
    name: str | None = None,
    certificate_id: str | None = None,
    ipfs_cid: str | None = None,
) -> bool:
    """Disjunctive certificate match used by the in-memory backend.

    Mirrors the Neo4j ``search_certificates`` query: exact hash (with or
    without ``0x``), case-insensitive partial name, exact certificate ID,
    exact IPFS CID. Absent criteria contribute nothing.
    """
    if cert_hash:
        stored = str(doc.get("hash") or "").lower()
        if stored in (cert_hash, "0x" + cert_hash):
            return True
    if name and name.lower() in str(doc.get("fullName") or "").lower():
        return True
    if certificate_id and doc.get("certificateId") == certificate_id:
        return True
    if ipfs_cid and doc.get("ipfsCid") == ipfs_cid:
        return True
    return False
