"""Tests for the read-only ledger client."""

import asyncio
from unittest.mock import MagicMock, patch

from certledger.ledger import NOT_CONFIGURED_ERROR, LedgerClient, get_ledger_client
from certledger.ledger.client import REGISTRY_ABI

HASH = "ab" * 32
REGISTRY = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


def _contract_returning(coro_factory):
    contract = MagicMock()
    contract.functions.verifyCertificate.return_value.call.side_effect = coro_factory
    return contract


def _client_with(contract, timeout=5.0):
    client = LedgerClient(rpc_url="http://127.0.0.1:8545", registry_address=REGISTRY, timeout=timeout)
    client._contract = contract
    return client


class TestLedgerClient:
    def test_unconfigured_makes_no_call(self):
        client = LedgerClient(rpc_url="", registry_address="")
        with patch.object(client, "_get_contract") as get_contract:
            result = asyncio.run(client.probe(HASH))
        get_contract.assert_not_called()
        assert result.exists is False
        assert result.error == NOT_CONFIGURED_ERROR
        assert result.formatted_hash == "0x" + HASH

    def test_registered_hash(self):
        async def call():
            return (True, "bafycid", "0x70997970C51812dc3A010C7d01b50e0d17dc79C8", 1700000000)

        contract = _contract_returning(call)
        result = asyncio.run(_client_with(contract).probe(HASH))

        assert result.exists is True
        assert result.ipfs_cid == "bafycid"
        assert result.registrar_address == "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
        assert result.registration_timestamp == 1700000000
        assert result.error is None
        contract.functions.verifyCertificate.assert_called_once_with(bytes.fromhex(HASH))

    def test_unregistered_hash(self):
        async def call():
            return (False, "", "0x0000000000000000000000000000000000000000", 0)

        result = asyncio.run(_client_with(_contract_returning(call)).probe(HASH))
        assert result.exists is False
        assert result.error is None

    def test_timeout_recorded_on_result(self):
        async def call():
            await asyncio.sleep(1)

        result = asyncio.run(_client_with(_contract_returning(call), timeout=0.01).probe(HASH))
        assert result.exists is False
        assert result.error == "Blockchain call timed out after 0.01s"

    def test_call_failure_recorded_on_result(self):
        async def call():
            raise ValueError("execution reverted")

        result = asyncio.run(_client_with(_contract_returning(call)).probe(HASH))
        assert result.exists is False
        assert result.error == "execution reverted"

    def test_config_defaults(self, monkeypatch):
        import certledger.config

        monkeypatch.setenv("CERTLEDGER_RPC_URL", "http://127.0.0.1:8545")
        monkeypatch.setenv("CERTLEDGER_REGISTRY_ADDRESS", REGISTRY)
        certledger.config._config = None

        client = get_ledger_client()
        assert client.configured is True
        assert client.timeout == 5.0
        assert get_ledger_client() is client

    def test_abi_declares_lookup(self):
        names = [entry["name"] for entry in REGISTRY_ABI]
        assert names == ["verifyCertificate"]
        assert REGISTRY_ABI[0]["stateMutability"] == "view"

    def test_invalid_registry_address_recorded(self):
        client = LedgerClient(rpc_url="http://127.0.0.1:8545", registry_address="0x1234")
        result = asyncio.run(client.probe(HASH))
        assert result.exists is False
        assert result.error == "Invalid registry address: 0x1234"

    def test_is_connected_false_when_unconfigured(self):
        assert asyncio.run(LedgerClient(rpc_url="", registry_address="").is_connected()) is False
