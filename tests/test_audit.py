"""Tests for post-verification audit writes."""

from unittest.mock import MagicMock

from certledger.models import ChainProbeResult, VerificationOutcome, VerificationReport
from certledger.verification import outcome_message, record_verification

LOCAL = "a" * 64
MATCHED = "b" * 64


def _report(verified=True, source="database_match", matched=MATCHED):
    results = [
        ChainProbeResult(hash=LOCAL, formatted_hash="0x" + LOCAL),
        ChainProbeResult(
            hash=MATCHED,
            formatted_hash="0x" + MATCHED,
            exists=verified,
            ipfs_cid="bafycid" if verified else "",
        ),
    ]
    outcome = VerificationOutcome(
        verified=verified,
        matched_hash=matched if verified else None,
        chosen_source=source if verified else "none",
        message=outcome_message(verified, source if verified else "none"),
    )
    return VerificationReport(local_hash=LOCAL, outcome=outcome, candidates=[], results=results)


class TestRecordVerification:
    def test_writes_claim_and_claimant_status(self, store):
        written = record_verification(store, _report(), claimant_name="Ann", deceased_name="Bob", verified_by="0xabc")

        claim = store.get("claims", written["claim_id"])
        assert claim["status"] == "approved"
        assert claim["certificateHash"] == MATCHED
        assert claim["chosenSource"] == "database_match"

        status = store.get("claimant_data", written["claimant_data_id"])
        assert status["verificationStatus"] == "Approved"
        assert status["ipfsCid"] == "bafycid"
        assert status["verifiedBy"] == "0xabc"

    def test_unverified_keys_on_local_hash(self, store):
        written = record_verification(store, _report(verified=False), claimant_name="Ann", deceased_name="Bob")
        status = store.get("claimant_data", written["claimant_data_id"])
        assert status["certificateHash"] == LOCAL
        assert status["verificationStatus"] == "Rejected"
        assert store.get("claims", written["claim_id"])["status"] == "rejected"

    def test_repeat_verification_updates_status_record(self, store):
        record_verification(store, _report(verified=False), claimant_name="Ann", deceased_name="Bob")
        record_verification(store, _report(verified=False), claimant_name="Ann", deceased_name="Bob")
        assert store.count("claimant_data") == 1
        assert store.count("claims") == 2

    def test_claim_failure_does_not_skip_status_upsert(self):
        broken = MagicMock()
        broken.insert.side_effect = RuntimeError("write failed")
        broken.upsert.return_value = ({"id": "cd1"}, True)

        written = record_verification(broken, _report(), claimant_name="Ann", deceased_name="Bob")

        assert written == {"claim_id": None, "claimant_data_id": "cd1"}
        broken.upsert.assert_called_once()

    def test_never_raises(self):
        broken = MagicMock()
        broken.insert.side_effect = RuntimeError("down")
        broken.upsert.side_effect = RuntimeError("down")
        assert record_verification(broken, _report(), claimant_name="Ann", deceased_name="Bob") == {
            "claim_id": None,
            "claimant_data_id": None,
        }
