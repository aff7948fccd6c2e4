"""Certificate hash canonicalization.

Every hash that reaches the ledger or the candidate set passes through
:func:`canonicalize`: optional ``0x``/``0X`` prefix stripped, lowercased,
and accepted only if it is exactly 64 hex characters.
"""

from __future__ import annotations

import hashlib
import re

_HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def sha256_hex(content: bytes) -> str:
    """Compute SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(content).hexdigest()


def normalize(raw: str | None) -> str:
    """Strip a leading ``0x`` and lowercase. Does not validate."""
    if not raw:
        return ""
    value = raw.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return value.lower()


def is_valid(value: str) -> bool:
    return bool(_HASH_PATTERN.match(value))


def canonicalize(raw: str | None) -> str | None:
    """Return the canonical form of *raw*, or None if it is not a SHA-256 hex digest."""
    value = normalize(raw)
    return value if is_valid(value) else None


def to_chain_hash(canonical: str) -> str:
    """Format a canonical hash as the ``bytes32`` hex string the contract expects."""
    return "0x" + canonical
