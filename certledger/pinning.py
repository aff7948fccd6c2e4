"""Pinata (IPFS pinning) client.

Fully mockable: all HTTP goes through ``httpx`` with configurable timeout,
retry count and backoff. No real HTTP calls are made in tests.

Docs: https://docs.pinata.cloud/api-reference
"""

from __future__ import annotations

import base64
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from certledger.config import get_config
from certledger.hashing import sha256_hex
from certledger.utils import PinningError

logger = logging.getLogger(__name__)

_DEFAULT_RETRY_DELAY = 2.0


@dataclass(frozen=True)
class PinResult:
    cid: str
    hash: str
    reused: bool = False


def certificate_filename(full_name: str) -> str:
    return "_".join(full_name.split()) + "_certificate.pdf"


class PinataClient:
    """Pin certificate files to IPFS through the Pinata REST API."""

    def __init__(
        self,
        jwt: str | None = None,
        project_id: str | None = None,
        project_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float = _DEFAULT_RETRY_DELAY,
    ) -> None:
        cfg = get_config()
        self.jwt = cfg.pinata_jwt if jwt is None else jwt
        self.project_id = cfg.pinata_project_id if project_id is None else project_id
        self.project_secret = cfg.pinata_project_secret if project_secret is None else project_secret
        self.base_url = (cfg.pinata_base_url if base_url is None else base_url).rstrip("/")
        self.timeout = cfg.pinata_timeout if timeout is None else timeout
        self.max_retries = cfg.pinata_max_retries if max_retries is None else max_retries
        self.retry_delay = retry_delay

    @property
    def configured(self) -> bool:
        return bool(self.jwt or (self.project_id and self.project_secret))

    def _auth_headers(self) -> dict[str, str]:
        if self.jwt:
            return {"Authorization": f"Bearer {self.jwt}"}
        token = base64.b64encode(f"{self.project_id}:{self.project_secret}".encode()).decode()
        return {"Authorization": f"Basic {token}"}

    def find_existing(self, file_hash: str) -> str | None:
        """Return the CID of an already-pinned file with this SHA-256, if any.

        Lookup failures are logged and treated as "not found".
        """
        params = {
            "status": "pinned",
            "metadata[keyvalues]": json.dumps({"fileHash": {"value": file_hash, "op": "eq"}}),
        }
        try:
            resp = httpx.get(
                f"{self.base_url}/data/pinList",
                params=params,
                headers=self._auth_headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            rows = resp.json().get("rows") or []
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.info("Pinata duplicate check failed, uploading anyway: %s", exc)
            return None
        if rows:
            return rows[0].get("ipfs_pin_hash")
        return None

    def pin_file(self, content: bytes, full_name: str) -> PinResult:
        """Pin *content*, reusing an existing pin with the same file hash."""
        if not self.configured:
            raise PinningError(
                "Pinata credentials not configured. Set CERTLEDGER_PINATA_JWT, or "
                "CERTLEDGER_PINATA_PROJECT_ID and CERTLEDGER_PINATA_PROJECT_SECRET"
            )

        file_hash = sha256_hex(content)
        existing = self.find_existing(file_hash)
        if existing:
            logger.info("File already pinned as %s, reusing CID", existing)
            return PinResult(cid=existing, hash=file_hash, reused=True)

        filename = certificate_filename(full_name)
        uploaded_at = datetime.now(timezone.utc).isoformat()
        data = {
            "pinataMetadata": json.dumps({
                "name": filename,
                "keyvalues": {"fullName": full_name, "uploadedAt": uploaded_at, "fileHash": file_hash},
            }),
            "pinataOptions": json.dumps({"cidVersion": 1}),
        }
        url = f"{self.base_url}/pinning/pinFileToIPFS"
        last_exc: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = httpx.post(
                    url,
                    headers=self._auth_headers(),
                    data=data,
                    files={"file": (filename, content, "application/pdf")},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                body: dict[str, Any] = resp.json()
                cid = body.get("IpfsHash") or body.get("cid") or body.get("hash")
                if not cid:
                    raise PinningError("Pinata response did not include a CID")
                logger.info("Pinned %s as %s", filename, cid)
                return PinResult(cid=cid, hash=file_hash)
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                logger.warning("Pinata upload failed (attempt %d/%d): %s", attempt, self.max_retries, exc)
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay * (2 ** (attempt - 1)))

        if isinstance(last_exc, httpx.TimeoutException):
            raise PinningError("Upload timeout after multiple attempts") from last_exc
        raise PinningError(f"Pinata upload failed after {self.max_retries} attempts: {last_exc}") from last_exc
