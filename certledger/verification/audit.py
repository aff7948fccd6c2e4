"""Best-effort audit writes after a verification.

Two independent writes: a Claim record of the attempt, and an upsert of the
claimant-status record keyed by (claimant name, deceased name, hash). A
failure in one does not roll back or skip the other, and nothing here ever
raises to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from certledger.models import VerificationReport
from certledger.storage.records import CLAIMANT_DATA, CLAIMS, utcnow_iso

logger = logging.getLogger(__name__)


def record_verification(
    store: Any,
    report: VerificationReport,
    *,
    claimant_name: str,
    deceased_name: str,
    verified_by: str | None = None,
) -> dict[str, Any]:
    """Write the audit records. Returns ``{"claim_id": ..., "claimant_data_id": ...}`` (None on failure)."""
    outcome = report.outcome
    certificate_hash = outcome.matched_hash or report.local_hash or ""
    written: dict[str, Any] = {"claim_id": None, "claimant_data_id": None}

    try:
        claim = store.insert(CLAIMS, {
            "claimantName": claimant_name,
            "deceasedName": deceased_name,
            "certificateHash": certificate_hash,
            "status": "approved" if outcome.verified else "rejected",
            "verified": outcome.verified,
            "chosenSource": outcome.chosen_source,
            "notes": outcome.message,
        })
        written["claim_id"] = claim["id"]
    except Exception:
        logger.exception("Failed to write verification claim record")

    matched = report.matched_result
    changes: dict[str, Any] = {
        "verificationStatus": "Approved" if outcome.verified else "Rejected",
        "verifiedAt": utcnow_iso(),
    }
    if matched is not None and matched.ipfs_cid:
        changes["ipfsCid"] = matched.ipfs_cid
    if verified_by:
        changes["verifiedBy"] = verified_by

    try:
        record, created = store.upsert(
            CLAIMANT_DATA,
            {
                "claimantName": claimant_name,
                "deceasedName": deceased_name,
                "certificateHash": certificate_hash,
            },
            changes,
        )
        written["claimant_data_id"] = record["id"]
        logger.info("Claimant status %s (id=%s)", "created" if created else "updated", record["id"])
    except Exception:
        logger.exception("Failed to upsert claimant status record")

    return written
