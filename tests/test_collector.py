"""Tests for candidate hash collection."""

from unittest.mock import MagicMock

from certledger.hashing import sha256_hex
from certledger.models import (
    DATABASE_HASH,
    DATABASE_IPFS,
    DATABASE_NAME,
    MANUAL_INPUT,
    UPLOADED_FILE,
)
from certledger.utils import StoreError
from certledger.verification.collector import (
    REASON_FUZZY,
    CandidateSet,
    attribute_match,
    collect_candidates,
)

OTHER_HASH = "b" * 64


class TestCandidateSet:
    def test_register_dedups_and_merges_sources(self):
        candidates = CandidateSet()
        candidates.register("0x" + "A" * 64, UPLOADED_FILE, "file")
        candidates.register("a" * 64, DATABASE_HASH, "db")
        candidates.register("a" * 64, DATABASE_HASH, "db")

        assert len(candidates) == 1
        candidate = candidates.get("a" * 64)
        assert candidate.sources == [UPLOADED_FILE, DATABASE_HASH]
        assert candidate.reasons == ["file", "db"]

    def test_invalid_hash_dropped(self):
        candidates = CandidateSet()
        assert candidates.register("not-a-hash", MANUAL_INPUT) is None
        assert candidates.register(None, DATABASE_HASH) is None
        assert len(candidates) == 0

    def test_iteration_preserves_insertion_order(self):
        candidates = CandidateSet()
        for h in ("c" * 64, "a" * 64, "b" * 64):
            candidates.register(h, DATABASE_HASH)
        assert candidates.hashes == ["c" * 64, "a" * 64, "b" * 64]
        assert [c.hash for c in candidates] == candidates.hashes


class TestAttributeMatch:
    def test_name_and_cid_tags(self):
        doc = {"hash": OTHER_HASH, "fullName": "Jane Doe", "ipfsCid": "bafy1"}
        pairs = attribute_match(doc, local_hash=None, deceased_name="jane doe", certificate_id=None, ipfs_cid="bafy1")
        sources = [s for s, _ in pairs]
        assert sources == [DATABASE_NAME, DATABASE_IPFS]

    def test_partial_name_is_fuzzy(self):
        doc = {"hash": OTHER_HASH, "fullName": "Jane Doe"}
        pairs = attribute_match(doc, local_hash=None, deceased_name="jane", certificate_id=None, ipfs_cid=None)
        assert pairs == [(DATABASE_HASH, REASON_FUZZY)]


class TestCollectCandidates:
    def test_file_hash_first(self, store, certificate_bytes):
        candidates = collect_candidates(certificate_bytes, store)
        assert candidates.hashes == [sha256_hex(certificate_bytes)]
        assert candidates.local_hash == sha256_hex(certificate_bytes)
        assert candidates.get(candidates.local_hash).sources == [UPLOADED_FILE]

    def test_stored_hash_match_merges_into_file_candidate(self, store, certificate_bytes, stored_certificate):
        candidates = collect_candidates(certificate_bytes, store, deceased_name="Jane Doe")
        assert len(candidates) == 1
        candidate = candidates.get(candidates.local_hash)
        assert candidate.sources == [UPLOADED_FILE, DATABASE_HASH, DATABASE_NAME]
        assert len(candidate.sources) == len(set(candidate.sources))
        assert candidates.db_matches == 1

    def test_name_match_adds_database_candidate(self, store, certificate_bytes):
        store.insert("certificates", {"fullName": "Jane Doe", "hash": "0x" + OTHER_HASH.upper()})
        candidates = collect_candidates(certificate_bytes, store, deceased_name="Jane Doe")

        assert candidates.hashes == [sha256_hex(certificate_bytes), OTHER_HASH]
        other = candidates.get(OTHER_HASH)
        assert other.sources == [DATABASE_HASH, DATABASE_NAME]
        assert other.documents[0]["fullName"] == "Jane Doe"

    def test_manual_hash_between_file_and_database(self, store, certificate_bytes):
        store.insert("certificates", {"fullName": "Jane Doe", "hash": OTHER_HASH})
        manual = "c" * 64
        candidates = collect_candidates(certificate_bytes, store, deceased_name="Jane Doe", manual_hash=manual)
        assert candidates.hashes == [sha256_hex(certificate_bytes), manual, OTHER_HASH]
        assert candidates.get(manual).sources == [MANUAL_INPUT]

    def test_malformed_stored_hash_never_enters(self, store, certificate_bytes):
        store.insert("certificates", {"fullName": "Jane Doe", "hash": "1234"})
        candidates = collect_candidates(certificate_bytes, store, deceased_name="Jane Doe")
        assert candidates.hashes == [sha256_hex(certificate_bytes)]
        assert candidates.db_matches == 1

    def test_malformed_manual_hash_dropped(self, store, certificate_bytes):
        candidates = collect_candidates(certificate_bytes, store, manual_hash="xyz")
        assert len(candidates) == 1

    def test_certificate_id_and_cid_clauses(self, store, certificate_bytes):
        store.insert("certificates", {"fullName": "A", "hash": OTHER_HASH, "certificateId": "CERT-1"})
        store.insert("certificates", {"fullName": "B", "hash": "d" * 64, "ipfsCid": "bafy2"})
        candidates = collect_candidates(certificate_bytes, store, certificate_id="CERT-1", ipfs_cid="bafy2")
        assert OTHER_HASH in candidates
        assert candidates.get("d" * 64).sources == [DATABASE_HASH, DATABASE_IPFS]

    def test_limit_caps_database_hits(self, store, certificate_bytes):
        for i in range(5):
            store.insert("certificates", {"fullName": "Jane Doe", "hash": f"{i:064x}"})
        candidates = collect_candidates(certificate_bytes, store, deceased_name="Jane", limit=3)
        assert len(candidates) == 4

    def test_store_failure_keeps_request_hashes(self, certificate_bytes):
        broken = MagicMock()
        broken.search_certificates.side_effect = StoreError("down")
        candidates = collect_candidates(certificate_bytes, broken, deceased_name="Jane", manual_hash="c" * 64)
        assert candidates.hashes == [sha256_hex(certificate_bytes), "c" * 64]
        assert candidates.db_matches == 0
