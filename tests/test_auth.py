"""Tests for API authentication, role guards, rate limiting, and demo mode."""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from certledger.api.auth import _check_rate_limit, _hash_ip, _rate_buckets
from certledger.security import issue_token


@pytest.fixture
def app():
    from certledger.api.main import create_app
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


class TestAuthEnforcement:
    def test_missing_token_401(self, client):
        assert client.get("/api/admin/users").status_code == 401

    def test_garbage_token_401(self, client):
        response = client.get("/api/admin/users", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_token_for_unknown_user_401(self, client):
        token = issue_token("ghost", "admin")
        response = client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_role_comes_from_store_not_token(self, client, make_user):
        user, _ = make_user("claimant")
        forged = issue_token(user["id"], "admin")
        response = client.get("/api/admin/users", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 403

    def test_admin_passes_role_guards(self, client, make_user):
        _, headers = make_user("admin")
        assert client.get("/api/insurer/certificates", headers=headers).status_code == 200
        assert client.get("/api/registrar/profile", headers=headers).status_code == 200

    def test_unapproved_claimant_allowed(self, client, make_user):
        _, headers = make_user("claimant", approved=False)
        response = client.post(
            "/api/claimant/submit",
            json={"certificateHash": "a" * 64, "policyId": "POL-1"},
            headers=headers,
        )
        assert response.status_code == 201

    def test_unapproved_registrar_blocked(self, client, make_user):
        _, headers = make_user("registrar", approved=False)
        assert client.get("/api/registrar/profile", headers=headers).status_code == 403


class TestDemoMode:
    def test_guards_skipped(self, client, monkeypatch):
        import certledger.config

        monkeypatch.setenv("CERTLEDGER_DEMO_MODE", "true")
        certledger.config._config = None

        assert client.get("/api/admin/users").status_code == 200
        me = client.get("/api/auth/me").json()
        assert me["id"] == "demo"
        assert me["role"] == "admin"


class TestRateLimit:
    def test_allows_up_to_limit(self):
        for _ in range(3):
            _check_rate_limit("test:limit", max_requests=3)
        assert len(_rate_buckets["test:limit"]) == 3

    def test_exceeding_limit_429(self):
        for _ in range(2):
            _check_rate_limit("test:exceed", max_requests=2)
        with pytest.raises(HTTPException) as exc_info:
            _check_rate_limit("test:exceed", max_requests=2)
        assert exc_info.value.status_code == 429

    def test_verify_endpoint_limited(self, client, make_user, certificate_bytes):
        _, headers = make_user("insurer")
        files = {"file": ("c.pdf", certificate_bytes, "application/pdf")}
        data = {"claimantName": "Ann", "deceasedName": "Jane"}
        statuses = [
            client.post("/api/insurer/verify", files=files, data=data, headers=headers).status_code
            for _ in range(31)
        ]
        assert statuses[:30] == [200] * 30
        assert statuses[30] == 429

    def test_listing_does_not_spend_verify_budget(self, client, make_user, certificate_bytes):
        _, headers = make_user("insurer")
        for _ in range(30):
            assert client.get("/api/insurer/certificates", headers=headers).status_code == 200

        response = client.post(
            "/api/insurer/verify",
            files={"file": ("c.pdf", certificate_bytes, "application/pdf")},
            data={"claimantName": "Ann", "deceasedName": "Jane"},
            headers=headers,
        )
        assert response.status_code == 200


def test_hash_ip_is_one_way():
    assert _hash_ip("10.0.0.1") != "10.0.0.1"
    assert len(_hash_ip("10.0.0.1")) == 12
    assert _hash_ip(None) == "unknown"
