"""Claimant endpoints - claim submission and status."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from certledger.api.auth import require_role
from certledger.api.models import ClaimSubmitRequest, ClaimSubmitResponse
from certledger.hashing import canonicalize
from certledger.storage import get_store
from certledger.storage.records import CLAIMS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/claimant", tags=["claimant"])

_claimant = require_role("claimant")


@router.post("/submit", response_model=ClaimSubmitResponse, status_code=201)
def submit_claim(payload: ClaimSubmitRequest, user: dict[str, Any] = Depends(_claimant)):
    """File a pending claim against a certificate hash."""
    canonical = canonicalize(payload.certificate_hash)
    if canonical is None:
        raise HTTPException(status_code=400, detail="certificateHash must be a 64 hex character SHA-256 digest")

    claim = get_store().insert(CLAIMS, {
        "claimantId": user["id"],
        "claimantName": user.get("name"),
        "deceasedName": payload.deceased_name,
        "certificateHash": canonical,
        "policyId": payload.policy_id,
        "status": "pending",
        "verified": False,
        "chosenSource": "none",
    })
    logger.info("Claim %s submitted by user=%s policy=%s", claim["id"], user["id"], payload.policy_id)
    return ClaimSubmitResponse(id=claim["id"], status=claim["status"], verified=False)


@router.get("/status/{claim_id}")
def claim_status(claim_id: str, user: dict[str, Any] = Depends(_claimant)) -> dict[str, Any]:
    claim = get_store().get(CLAIMS, claim_id)
    if claim is None or (user.get("role") != "admin" and claim.get("claimantId") != user["id"]):
        raise HTTPException(status_code=404, detail="Claim not found")
    return claim
