"""Read-only client for the death-certificate registry contract.

Only one contract function is used::

    verifyCertificate(bytes32 certHash) view returns (bool, string, address, uint256)

Each call is awaited with a per-call timeout. Failures never raise out of
:meth:`LedgerClient.probe`; they are recorded on the returned
:class:`~certledger.models.ChainProbeResult`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3

from certledger.config import get_config
from certledger.hashing import to_chain_hash
from certledger.models import ChainProbeResult
from certledger.utils import LedgerError

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "Blockchain provider not configured"

REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "verifyCertificate",
        "stateMutability": "view",
        "inputs": [{"name": "certHash", "type": "bytes32"}],
        "outputs": [
            {"name": "", "type": "bool"},
            {"name": "", "type": "string"},
            {"name": "", "type": "address"},
            {"name": "", "type": "uint256"},
        ],
    },
]


class LedgerClient:
    """Thin async wrapper around the registry contract's lookup function."""

    def __init__(
        self,
        rpc_url: str | None = None,
        registry_address: str | None = None,
        timeout: float | None = None,
    ) -> None:
        cfg = get_config()
        self.rpc_url = cfg.rpc_url if rpc_url is None else rpc_url
        self.registry_address = cfg.registry_address if registry_address is None else registry_address
        self.timeout = cfg.probe_timeout_seconds if timeout is None else timeout
        self._contract: Any = None

    @property
    def configured(self) -> bool:
        return bool(self.rpc_url and self.registry_address)

    def _get_contract(self) -> Any:
        if not self.configured:
            raise LedgerError(NOT_CONFIGURED_ERROR)
        if self._contract is None:
            try:
                address = AsyncWeb3.to_checksum_address(self.registry_address)
            except ValueError as exc:
                raise LedgerError(f"Invalid registry address: {self.registry_address}") from exc
            w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url, request_kwargs={"timeout": self.timeout}))
            self._contract = w3.eth.contract(address=address, abi=REGISTRY_ABI)
        return self._contract

    async def lookup(self, canonical_hash: str) -> tuple[bool, str, str, int]:
        """Call ``verifyCertificate`` and return ``(exists, ipfs_cid, registrar, timestamp)``.

        Raises on transport or contract errors; :meth:`probe` is the
        non-raising variant.
        """
        contract = self._get_contract()
        call = contract.functions.verifyCertificate(bytes.fromhex(canonical_hash)).call()
        exists, ipfs_cid, registrar, timestamp = await asyncio.wait_for(call, timeout=self.timeout)
        return bool(exists), str(ipfs_cid or ""), str(registrar or ""), int(timestamp or 0)

    async def probe(self, canonical_hash: str) -> ChainProbeResult:
        """Look up one canonical hash, recording any failure on the result."""
        formatted = to_chain_hash(canonical_hash)
        if not self.configured:
            return ChainProbeResult(hash=canonical_hash, formatted_hash=formatted, error=NOT_CONFIGURED_ERROR)

        try:
            exists, ipfs_cid, registrar, timestamp = await self.lookup(canonical_hash)
        except asyncio.TimeoutError:
            logger.warning("Ledger lookup timed out after %.1fs for %s", self.timeout, formatted)
            return ChainProbeResult(
                hash=canonical_hash,
                formatted_hash=formatted,
                error=f"Blockchain call timed out after {self.timeout:g}s",
            )
        except Exception as exc:
            logger.warning("Ledger lookup failed for %s: %s", formatted, exc)
            return ChainProbeResult(hash=canonical_hash, formatted_hash=formatted, error=str(exc) or type(exc).__name__)

        return ChainProbeResult(
            hash=canonical_hash,
            formatted_hash=formatted,
            exists=exists,
            ipfs_cid=ipfs_cid,
            registrar_address=registrar,
            registration_timestamp=timestamp,
        )

    async def is_connected(self) -> bool:
        if not self.configured:
            return False
        try:
            w3 = self._get_contract().w3
            return bool(await asyncio.wait_for(w3.is_connected(), timeout=self.timeout))
        except Exception:
            logger.warning("Ledger connectivity check failed")
            return False


# Lazy singleton
_client: LedgerClient | None = None


def get_ledger_client() -> LedgerClient:
    global _client
    if _client is None:
        _client = LedgerClient()
    return _client


def reset_ledger_client() -> None:
    global _client
    _client = None
