"""
CertLedger
Death-certificate registry and verification service backed by an on-chain registry
"""

__version__ = "0.1.0"

from certledger.config import Config, get_config
from certledger.hashing import canonicalize, sha256_hex

__all__ = [
    "Config",
    "get_config",
    "canonicalize",
    "sha256_hex",
]
