"""
Test suite for CertLedger

Unit tests for hashing, candidate collection, chain probing and resolution,
record stores, pinning and accounts, plus HTTP tests through TestClient.
"""
