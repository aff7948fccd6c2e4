"""Registrar endpoints - certificate upload and on-chain registration bookkeeping.

The on-chain ``addCertificate`` transaction itself is signed in the
registrar's browser wallet; these endpoints only pin the file and track
the certificate's status.
"""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from certledger.api.auth import require_role
from certledger.api.models import (
    RegisterOnChainRequest,
    RegisterOnChainResponse,
    UpdateCertificateStatusRequest,
    UploadResponse,
)
from certledger.config import get_config
from certledger.hashing import canonicalize
from certledger.pinning import PinataClient
from certledger.security import public_user
from certledger.storage import get_store
from certledger.storage.records import CERTIFICATES, USERS
from certledger.utils import PinningError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/registrar", tags=["registrar"])

_registrar = require_role("registrar")

# Lazy singleton
_pinner: PinataClient | None = None


def _get_pinner() -> PinataClient:
    global _pinner
    if _pinner is None:
        _pinner = PinataClient()
    return _pinner


def _certificate_id() -> str:
    return f"CERT-{int(time.time() * 1000)}"


@router.post("/upload", response_model=UploadResponse)
def upload_certificate(
    file: UploadFile | None = File(default=None),
    full_name: str | None = Form(default=None, alias="fullName"),
    wallet: str | None = Form(default=None),
    user: dict[str, Any] = Depends(_registrar),
):
    """Pin a certificate to IPFS and record it as ``uploaded_to_ipfs``."""
    full_name = (full_name or "").strip()
    wallet = (wallet or "").strip()
    if file is None or not full_name or not wallet:
        raise HTTPException(status_code=400, detail="fullName, wallet, and certificate file are required")

    cfg = get_config()
    content = file.file.read(cfg.max_upload_bytes + 1)
    if len(content) > cfg.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds {cfg.max_upload_bytes // (1024 * 1024)}MB limit",
        )

    try:
        pinned = _get_pinner().pin_file(content, full_name)
    except PinningError as exc:
        logger.error("Certificate pinning failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))

    doc = get_store().insert(CERTIFICATES, {
        "certificateId": _certificate_id(),
        "fullName": full_name,
        "hash": pinned.hash,
        "ipfsCid": pinned.cid,
        "registrarWallet": wallet,
        "uploadedBy": user["id"],
        "status": "uploaded_to_ipfs",
    })
    logger.info("Certificate %s uploaded: cid=%s hash=%s", doc["certificateId"], pinned.cid, pinned.hash)
    return UploadResponse(
        id=doc["id"],
        cid=pinned.cid,
        hash=pinned.hash,
        full_name=full_name,
        wallet=wallet,
        timestamp=int(time.time() * 1000),
    )


@router.post("/register-on-chain", response_model=RegisterOnChainResponse)
def register_on_chain(payload: RegisterOnChainRequest, user: dict[str, Any] = Depends(_registrar)):
    """Mark a certificate ``ready_for_blockchain`` (creating it if unknown) and hand back contract details."""
    canonical = canonicalize(payload.hash)
    if canonical is None:
        raise HTTPException(status_code=400, detail="hash must be a 64 hex character SHA-256 digest")

    store = get_store()
    doc = store.update_where(
        CERTIFICATES,
        {"ipfsCid": payload.cid},
        {"status": "ready_for_blockchain", "registrarWallet": payload.wallet},
    )
    if doc is None:
        doc = store.insert(CERTIFICATES, {
            "certificateId": _certificate_id(),
            "fullName": payload.full_name,
            "hash": canonical,
            "ipfsCid": payload.cid,
            "registrarWallet": payload.wallet,
            "uploadedBy": user["id"],
            "status": "ready_for_blockchain",
        })
        logger.info("Created certificate %s on register-on-chain", doc["certificateId"])

    cfg = get_config()
    return RegisterOnChainResponse(
        cid=payload.cid,
        hash=canonical,
        full_name=payload.full_name,
        wallet=payload.wallet,
        registry_address=cfg.registry_address,
        rpc_url=cfg.rpc_url,
        timestamp=int(time.time()),
    )


@router.post("/update-certificate-status")
def update_certificate_status(
    payload: UpdateCertificateStatusRequest,
    user: dict[str, Any] = Depends(_registrar),
) -> dict[str, Any]:
    """Record the transaction hash once the wallet transaction is mined."""
    doc = get_store().update_where(
        CERTIFICATES,
        {"ipfsCid": payload.cid},
        {"status": "registered_on_chain", "transactionHash": payload.tx_hash},
    )
    if doc is None:
        raise HTTPException(status_code=404, detail="Certificate not found")
    logger.info("Certificate %s registered on chain tx=%s", doc.get("certificateId"), payload.tx_hash)
    return {"success": True, "message": "Certificate status updated successfully", "certificate": doc}


@router.get("/profile")
def profile(user: dict[str, Any] = Depends(_registrar)) -> dict[str, Any]:
    stored = get_store().get(USERS, user["id"]) or user
    stored = public_user(stored)
    return {
        "name": stored.get("name"),
        "email": stored.get("email"),
        "role": stored.get("role"),
        "walletAddress": stored.get("walletAddress"),
        "registrarInfo": stored.get("profile", {}),
    }
