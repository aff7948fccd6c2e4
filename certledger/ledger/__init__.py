"""Blockchain ledger access (read-only)."""

from certledger.ledger.client import (
    NOT_CONFIGURED_ERROR,
    LedgerClient,
    get_ledger_client,
    reset_ledger_client,
)

__all__ = ["NOT_CONFIGURED_ERROR", "LedgerClient", "get_ledger_client", "reset_ledger_client"]
