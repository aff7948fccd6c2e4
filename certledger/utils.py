"""
Utility functions for CertLedger

Provides logging setup, retry logic, file hashing and the exception hierarchy
"""

import functools
import hashlib
import logging
import time
from pathlib import Path
from typing import Callable, Optional


# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO", log_file: Optional[str | Path] = None) -> None:
    """Configure logging for CertLedger"""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


# ═══════════════════════════════════════════════════════════════════
# RETRY LOGIC
# ═══════════════════════════════════════════════════════════════════

def retry(max_attempts: int = 3, backoff_seconds: tuple[float, ...] = (1.0, 2.0, 4.0),
          retryable: tuple[type[Exception], ...] = (Exception,)):
    """Retry decorator with exponential backoff.

    Parameters
    ----------
    max_attempts : int
        Total number of attempts (1 = no retry).
    backoff_seconds : tuple[float, ...]
        Sleep durations between attempts.
    retryable : tuple
        Exception types that trigger a retry.
    """
    def decorator(fn: Callable):
        logger = logging.getLogger(fn.__module__)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            last_exc: Exception | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt < max_attempts:
                        wait = backoff_seconds[min(attempt - 1, len(backoff_seconds) - 1)]
                        logger.warning(
                            "Retry %d/%d for %s after %s: sleeping %.1fs",
                            attempt, max_attempts, fn.__name__,
                            type(exc).__name__, wait,
                        )
                        time.sleep(wait)
                    else:
                        logger.error(
                            "All %d attempts failed for %s: %s",
                            max_attempts, fn.__name__, exc,
                        )
            raise last_exc  # type: ignore[misc]
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════
# FILE HASH CALCULATION
# ═══════════════════════════════════════════════════════════════════

def compute_sha256(file_path: str | Path) -> str:
    """Compute SHA-256 checksum of file"""
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for byte_block in iter(lambda: f.read(4096), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()


# ═══════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════

class CertLedgerError(Exception):
    """Base exception for CertLedger"""
    pass


class ConfigurationError(CertLedgerError):
    """Required setting is missing"""
    pass


class PinningError(CertLedgerError):
    """IPFS pinning failed"""
    pass


class LedgerError(CertLedgerError):
    """Ledger call failed"""
    pass


class StoreError(CertLedgerError):
    """Record store operation failed"""
    pass


class RecordNotFoundError(StoreError):
    """Record does not exist"""
    pass


class DuplicateRecordError(StoreError):
    """Unique key already taken"""
    pass


class InvalidTransitionError(CertLedgerError):
    """Lifecycle transition not allowed from the current status"""
    pass


class AuthenticationError(CertLedgerError):
    """Token or credentials rejected"""
    pass
