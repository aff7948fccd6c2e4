"""Tests for the Pinata pinning client (httpx mocked)."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from certledger.hashing import sha256_hex
from certledger.pinning import PinataClient, certificate_filename
from certledger.utils import PinningError

CONTENT = b"%PDF-1.4 certificate"


def _response(body, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"{status}", request=MagicMock(), response=MagicMock(status_code=status)
        )
    return resp


@pytest.fixture
def client():
    return PinataClient(jwt="test-jwt", base_url="https://pinata.test", retry_delay=0)


class TestPinataClient:
    def test_unconfigured_raises(self):
        client = PinataClient(jwt="", project_id="", project_secret="")
        with pytest.raises(PinningError, match="not configured"):
            client.pin_file(CONTENT, "Jane Doe")

    def test_bearer_and_basic_auth(self):
        assert PinataClient(jwt="tok")._auth_headers() == {"Authorization": "Bearer tok"}
        basic = PinataClient(jwt="", project_id="id", project_secret="secret")._auth_headers()
        assert basic["Authorization"].startswith("Basic ")

    @patch("certledger.pinning.httpx.post")
    @patch("certledger.pinning.httpx.get")
    def test_pin_new_file(self, mock_get, mock_post, client):
        mock_get.return_value = _response({"rows": []})
        mock_post.return_value = _response({"IpfsHash": "bafynew"})

        result = client.pin_file(CONTENT, "Jane Doe")

        assert result.cid == "bafynew"
        assert result.hash == sha256_hex(CONTENT)
        assert result.reused is False
        kwargs = mock_post.call_args.kwargs
        assert mock_post.call_args.args[0] == "https://pinata.test/pinning/pinFileToIPFS"
        metadata = json.loads(kwargs["data"]["pinataMetadata"])
        assert metadata["name"] == "Jane_Doe_certificate.pdf"
        assert metadata["keyvalues"]["fileHash"] == sha256_hex(CONTENT)
        assert json.loads(kwargs["data"]["pinataOptions"]) == {"cidVersion": 1}
        assert kwargs["headers"] == {"Authorization": "Bearer test-jwt"}

    @patch("certledger.pinning.httpx.post")
    @patch("certledger.pinning.httpx.get")
    def test_existing_pin_reused(self, mock_get, mock_post, client):
        mock_get.return_value = _response({"rows": [{"ipfs_pin_hash": "bafyold"}]})

        result = client.pin_file(CONTENT, "Jane Doe")

        assert result.cid == "bafyold"
        assert result.reused is True
        mock_post.assert_not_called()

    @patch("certledger.pinning.httpx.post")
    @patch("certledger.pinning.httpx.get")
    def test_duplicate_check_failure_still_uploads(self, mock_get, mock_post, client):
        mock_get.side_effect = httpx.ConnectError("unreachable")
        mock_post.return_value = _response({"IpfsHash": "bafynew"})
        assert client.pin_file(CONTENT, "Jane Doe").cid == "bafynew"

    @patch("certledger.pinning.time.sleep")
    @patch("certledger.pinning.httpx.post")
    @patch("certledger.pinning.httpx.get")
    def test_retries_then_succeeds(self, mock_get, mock_post, mock_sleep):
        client = PinataClient(jwt="test-jwt", base_url="https://pinata.test")
        mock_get.return_value = _response({"rows": []})
        mock_post.side_effect = [_response({}, status=502), _response({"IpfsHash": "bafy2"})]

        assert client.pin_file(CONTENT, "Jane Doe").cid == "bafy2"
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once_with(2.0)

    @patch("certledger.pinning.time.sleep")
    @patch("certledger.pinning.httpx.post")
    @patch("certledger.pinning.httpx.get")
    def test_exhausted_retries_raise(self, mock_get, mock_post, mock_sleep):
        client = PinataClient(jwt="test-jwt", base_url="https://pinata.test", max_retries=3)
        mock_get.return_value = _response({"rows": []})
        mock_post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(PinningError, match="timeout"):
            client.pin_file(CONTENT, "Jane Doe")
        assert mock_post.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [2.0, 4.0]


def test_certificate_filename_collapses_whitespace():
    assert certificate_filename("  Mary   Ann Smith ") == "Mary_Ann_Smith_certificate.pdf"
