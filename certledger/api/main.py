"""CertLedger FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from certledger import __version__
from certledger.api.auth import request_logging_middleware
from certledger.config import get_config
from certledger.storage import close_store, get_store
from certledger.utils import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle handler."""
    config = get_config()
    setup_logging(config.log_level, config.log_file)

    if config.jwt_secret == "dev" and not config.demo_mode:
        logger.warning("CERTLEDGER_JWT_SECRET is not set; tokens are signed with the development secret")
    if not config.ledger_configured:
        logger.warning("RPC_URL / REGISTRY_ADDRESS not set; verification will report the ledger as unconfigured")

    get_store()
    logger.info(
        "CertLedger API starting - store=%s, ledger=%s, pinning=%s",
        config.neo4j_uri or "memory",
        config.rpc_url or "unconfigured",
        "configured" if config.pinata_configured else "unconfigured",
    )
    yield
    close_store()
    logger.info("CertLedger API shutdown - record store closed")


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    app = FastAPI(
        title="CertLedger API",
        description="Death certificate registration and blockchain-backed verification for insurance claims",
        version=__version__,
        lifespan=lifespan,
    )

    config = get_config()

    # CORS - restricted to configured origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Request logging and X-Request-ID middleware
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_logging_middleware)

    from certledger.api.routes.admin import router as admin_router
    from certledger.api.routes.auth import router as auth_router
    from certledger.api.routes.claimant import router as claimant_router
    from certledger.api.routes.health import router as health_router
    from certledger.api.routes.insurer import router as insurer_router
    from certledger.api.routes.registrar import router as registrar_router

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(registrar_router)
    app.include_router(insurer_router)
    app.include_router(claimant_router)
    app.include_router(admin_router)

    return app


app = create_app()
