"""Insurer endpoints - certificate verification and lookup."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from certledger.api.auth import require_role
from certledger.api.models import (
    CandidateResult,
    CertificateLookupResponse,
    OnchainData,
    VerifyResponse,
)
from certledger.config import get_config
from certledger.hashing import canonicalize
from certledger.ledger import get_ledger_client
from certledger.models import ChainProbeResult, VerificationReport
from certledger.storage import get_store
from certledger.storage.records import CERTIFICATES
from certledger.verification import collect_candidates, record_verification, verify_candidates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/insurer", tags=["insurer"])

_insurer = require_role("insurer")
_insurer_verify = require_role("insurer", max_requests=30, bucket="verify")


def _onchain(result: ChainProbeResult | None) -> OnchainData:
    if result is None:
        return OnchainData()
    return OnchainData(
        exists=result.exists,
        ipfs_cid=result.ipfs_cid,
        registrar=result.registrar_address,
        timestamp=result.registration_timestamp,
    )


def _build_response(report: VerificationReport) -> VerifyResponse:
    by_hash = {c.hash: c for c in report.candidates}
    candidate_results = []
    for result in report.results:
        candidate = by_hash.get(result.hash)
        candidate_results.append(CandidateResult(
            hash=result.hash,
            formatted_hash=result.formatted_hash,
            exists=result.exists,
            ipfs_cid=result.ipfs_cid,
            registrar=result.registrar_address,
            timestamp=result.registration_timestamp,
            error=result.error,
            sources=list(candidate.sources) if candidate else [],
            reasons=list(candidate.reasons) if candidate else [],
        ))

    chosen = report.matched_result
    if chosen is None:
        chosen = next((r for r in report.results if r.hash == report.local_hash), None)

    outcome = report.outcome
    return VerifyResponse(
        verified=outcome.verified,
        local_hash=report.local_hash,
        matched_hash=outcome.matched_hash,
        chosen_source=outcome.chosen_source,
        onchain_data=_onchain(chosen),
        candidate_results=candidate_results,
        db_matches=report.db_matches,
        message=outcome.message,
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify_certificate(
    file: UploadFile | None = File(default=None),
    claimant_name: str | None = Form(default=None, alias="claimantName"),
    deceased_name: str | None = Form(default=None, alias="deceasedName"),
    certificate_id: str | None = Form(default=None, alias="certificateId"),
    ipfs_cid: str | None = Form(default=None, alias="ipfsCid"),
    manual_hash: str | None = Form(default=None, alias="manualHash"),
    user: dict[str, Any] = Depends(_insurer_verify),
):
    """Verify an uploaded death certificate against the on-chain registry.

    Candidate hashes come from the file itself, the optional manual hash and
    matching certificate records; each is probed on-chain in order. The
    attempt is recorded as a Claim and the claimant status is upserted.
    """
    claimant_name = (claimant_name or "").strip()
    deceased_name = (deceased_name or "").strip()
    if file is None or not claimant_name or not deceased_name:
        raise HTTPException(
            status_code=400,
            detail="Certificate file, claimantName, and deceasedName are required",
        )

    cfg = get_config()
    content = await file.read(cfg.max_upload_bytes + 1)
    if len(content) > cfg.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds {cfg.max_upload_bytes // (1024 * 1024)}MB limit",
        )

    store = get_store()
    candidates = await run_in_threadpool(
        collect_candidates,
        content,
        store,
        deceased_name=deceased_name,
        certificate_id=certificate_id,
        ipfs_cid=ipfs_cid,
        manual_hash=manual_hash,
        limit=cfg.candidate_limit,
    )
    report = await verify_candidates(candidates, get_ledger_client())

    await run_in_threadpool(
        record_verification,
        store,
        report,
        claimant_name=claimant_name,
        deceased_name=deceased_name,
        verified_by=user.get("walletAddress") or user["id"],
    )
    return _build_response(report)


@router.get("/certificates")
def list_certificates(user: dict[str, Any] = Depends(_insurer)) -> dict[str, Any]:
    """All stored certificate records, newest first."""
    docs = get_store().list_all(CERTIFICATES, newest_first=True)
    return {"certificates": docs}


@router.get("/certificate/{cert_hash}", response_model=CertificateLookupResponse)
async def lookup_certificate(cert_hash: str, user: dict[str, Any] = Depends(_insurer)):
    """On-chain registration data for one hash, plus the stored record if any."""
    canonical = canonicalize(cert_hash)
    if canonical is None:
        raise HTTPException(status_code=400, detail="hash must be a 64 hex character SHA-256 digest")

    result = await get_ledger_client().probe(canonical)
    certificate = await run_in_threadpool(get_store().find_one, CERTIFICATES, hash=canonical)
    return CertificateLookupResponse(
        hash=canonical,
        formatted_hash=result.formatted_hash,
        onchain_data=_onchain(result),
        error=result.error,
        certificate=certificate,
    )
