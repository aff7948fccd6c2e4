"""Record store selection.

Uses Neo4j when a URI and password are configured, otherwise falls back to
the in-memory store (records are lost on restart).
"""

import logging
import threading
from typing import Any

from certledger.config import get_config
from certledger.storage.memory import InMemoryRecordStore

logger = logging.getLogger(__name__)

_store: Any = None
_lock = threading.Lock()


def get_store() -> Any:
    """Get or create the record store singleton."""
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                cfg = get_config()
                if cfg.neo4j_configured:
                    from certledger.storage.neo4j_store import Neo4jRecordStore

                    _store = Neo4jRecordStore()
                    logger.info("Record store using Neo4j (%s)", cfg.neo4j_uri)
                else:
                    _store = InMemoryRecordStore()
                    logger.warning("CERTLEDGER_NEO4J_URI not set; using in-memory record store")
    return _store


def set_store(store: Any) -> None:
    """Replace the store singleton (tests, CLI)."""
    global _store
    with _lock:
        _store = store


def close_store() -> None:
    global _store
    with _lock:
        if _store is not None:
            _store.close()
            _store = None


__all__ = ["InMemoryRecordStore", "close_store", "get_store", "set_store"]
