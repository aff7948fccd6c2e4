"""Shared test fixtures for the CertLedger test suite."""

import os

import pytest

# Ensure test environment variables are set before any config import
os.environ["CERTLEDGER_JWT_SECRET"] = "test-secret"
os.environ["CERTLEDGER_DEMO_MODE"] = "false"
os.environ["CERTLEDGER_NEO4J_URI"] = ""
os.environ["CERTLEDGER_RPC_URL"] = ""
os.environ["CERTLEDGER_REGISTRY_ADDRESS"] = ""
os.environ["CERTLEDGER_PINATA_JWT"] = ""

from certledger.accounts import create_user  # noqa: E402
from certledger.security import issue_token  # noqa: E402
from certledger.storage import set_store  # noqa: E402
from certledger.storage.memory import InMemoryRecordStore  # noqa: E402

REGISTRY_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
REGISTRAR_WALLET = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def _reset_singletons():
    import certledger.config
    import certledger.api.routes.registrar as registrar_routes
    from certledger.api.auth import reset_rate_limits
    from certledger.ledger import reset_ledger_client

    certledger.config._config = None
    registrar_routes._pinner = None
    reset_ledger_client()
    reset_rate_limits()


@pytest.fixture(autouse=True)
def store():
    """Fresh in-memory record store and clean singletons for every test."""
    _reset_singletons()
    memory = InMemoryRecordStore()
    set_store(memory)
    yield memory
    set_store(None)
    _reset_singletons()


@pytest.fixture
def make_user(store):
    """Create a user and return ``(user, auth_headers)``."""
    counter = {"n": 0}

    def _make(role: str, *, approved: bool = True, name: str | None = None, **extra):
        counter["n"] += 1
        user = create_user(
            store,
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            password="correct-horse",
            role=role,
            approved=approved,
            **extra,
        )
        headers = {"Authorization": f"Bearer {issue_token(user['id'], role)}"}
        return user, headers

    return _make


@pytest.fixture
def certificate_bytes():
    return b"%PDF-1.4 death certificate for Jane Doe\n"


@pytest.fixture
def stored_certificate(store, certificate_bytes):
    """A certificate record whose hash is the SHA-256 of ``certificate_bytes``."""
    from certledger.hashing import sha256_hex

    return store.insert("certificates", {
        "certificateId": "CERT-1700000000000",
        "fullName": "Jane Doe",
        "hash": sha256_hex(certificate_bytes),
        "ipfsCid": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
        "registrarWallet": REGISTRAR_WALLET,
        "status": "registered_on_chain",
    })
