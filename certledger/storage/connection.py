"""Neo4j driver management.

Thread Safety
-------------
The singleton driver uses double-checked locking with ``threading.Lock`` so
concurrent request handlers never race on initialization. Query helpers
retry transient failures via :func:`certledger.utils.retry`.
"""

import logging
import threading

from neo4j import GraphDatabase, Query, unit_of_work
from neo4j.exceptions import ServiceUnavailable, TransientError

from certledger.config import get_config
from certledger.utils import ConfigurationError, retry

logger = logging.getLogger(__name__)

_driver = None
_lock = threading.Lock()

_QUERY_TIMEOUT = 30  # seconds
_RETRYABLE = (TransientError, ServiceUnavailable)


def get_driver():
    """Return a singleton Neo4j driver instance (thread-safe, health-checked)."""
    global _driver
    if _driver is None:
        with _lock:
            if _driver is None:
                cfg = get_config()
                if not cfg.neo4j_configured:
                    raise ConfigurationError("CERTLEDGER_NEO4J_URI and CERTLEDGER_NEO4J_PASSWORD must be set")
                _driver = GraphDatabase.driver(
                    cfg.neo4j_uri,
                    auth=(cfg.neo4j_user, cfg.neo4j_password),
                )
                _driver.verify_connectivity()
                logger.info("Neo4j driver initialized: %s", cfg.neo4j_uri)
    return _driver


def close_driver():
    """Close the Neo4j driver and release the singleton."""
    global _driver
    with _lock:
        if _driver is not None:
            _driver.close()
            _driver = None
            logger.info("Neo4j driver closed")


@retry(max_attempts=3, backoff_seconds=(1.0, 2.0, 4.0), retryable=_RETRYABLE)
def run_query(cypher: str, parameters: dict | None = None) -> list[dict]:
    """Execute a read query and return list of record dicts."""
    driver = get_driver()
    cfg = get_config()
    with driver.session(database=cfg.neo4j_database) as session:
        result = session.run(Query(cypher, timeout=_QUERY_TIMEOUT), parameters or {})
        return [record.data() for record in result]


@unit_of_work(timeout=_QUERY_TIMEOUT)
def _collect(tx, cypher: str, parameters: dict) -> list[dict]:
    return [record.data() for record in tx.run(cypher, parameters)]


@retry(max_attempts=3, backoff_seconds=(1.0, 2.0, 4.0), retryable=_RETRYABLE)
def run_write(cypher: str, parameters: dict | None = None) -> list[dict]:
    """Execute a write transaction and return the records it produced."""
    driver = get_driver()
    cfg = get_config()
    with driver.session(database=cfg.neo4j_database) as session:
        return session.execute_write(_collect, cypher, parameters or {})
