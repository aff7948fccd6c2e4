"""Health check endpoint."""

import logging

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from certledger.api.models import HealthResponse
from certledger.config import get_config
from certledger.ledger import get_ledger_client
from certledger.storage import get_store
from certledger.storage.memory import InMemoryRecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/api/health", response_model=HealthResponse)
@router.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health():
    """Check record store reachability, ledger connectivity and pinning configuration."""
    config = get_config()
    store = get_store()
    backend = "memory" if isinstance(store, InMemoryRecordStore) else "neo4j"

    store_ok = False
    try:
        store_ok = bool(await run_in_threadpool(store.ping))
    except Exception:
        logger.warning("Record store health check failed")

    ledger_ok = await get_ledger_client().is_connected()

    return HealthResponse(
        status="healthy" if store_ok else "degraded",
        store_backend=backend,
        store_connected=store_ok,
        ledger_configured=config.ledger_configured,
        ledger_connected=ledger_ok,
        pinning_configured=config.pinata_configured,
    )
