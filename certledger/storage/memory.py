"""In-memory record store.

Used when no Neo4j database is configured, and throughout the test suite.
API-compatible with :class:`certledger.storage.neo4j_store.Neo4jRecordStore`.
"""

from __future__ import annotations

import copy
import threading
from typing import Any

from certledger.storage.records import (
    CERTIFICATES,
    check_kind,
    matches_certificate,
    stamp_new,
    utcnow_iso,
)
from certledger.utils import DuplicateRecordError


class InMemoryRecordStore:
    """Thread-safe dict-based storage for application records.

    Records are stored by (kind, record_id) tuples and returned as deep
    copies so callers can never mutate stored state.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = threading.Lock()

    # -- CRUD -----------------------------------------------------------------

    def insert(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        """Store a new record and return it with ``id`` and timestamps."""
        check_kind(kind)
        record = stamp_new(data)
        with self._lock:
            self._store[(kind, record["id"])] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def insert_unique(self, kind: str, data: dict[str, Any], unique: tuple[str, ...]) -> dict[str, Any]:
        """Insert unless a record of *kind* already has the same *unique* field values.

        The check and the insert happen under one lock acquisition.
        """
        check_kind(kind)
        key = {k: data.get(k) for k in unique}
        record = stamp_new(data)
        with self._lock:
            for (rk, _), existing in self._store.items():
                if rk == kind and all(existing.get(k) == v for k, v in key.items()):
                    raise DuplicateRecordError(f"Duplicate {kind} record for {key}")
            self._store[(kind, record["id"])] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def get(self, kind: str, record_id: str) -> dict[str, Any] | None:
        """Retrieve a record, or None if not found."""
        check_kind(kind)
        with self._lock:
            record = self._store.get((kind, record_id))
            return copy.deepcopy(record) if record is not None else None

    def update(self, kind: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Merge *changes* into a record. Returns the updated record or None."""
        check_kind(kind)
        with self._lock:
            record = self._store.get((kind, record_id))
            if record is None:
                return None
            record.update(copy.deepcopy(changes))
            record["updatedAt"] = utcnow_iso()
            return copy.deepcopy(record)

    def update_where(self, kind: str, match: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any] | None:
        """Update the first record matching all of *match*."""
        check_kind(kind)
        with self._lock:
            for (rk, _), record in self._store.items():
                if rk == kind and all(record.get(k) == v for k, v in match.items()):
                    record.update(copy.deepcopy(changes))
                    record["updatedAt"] = utcnow_iso()
                    return copy.deepcopy(record)
        return None

    def upsert(self, kind: str, key: dict[str, Any], changes: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        """Update the record identified by *key* or insert a new one.

        Returns ``(record, created)``.
        """
        check_kind(kind)
        with self._lock:
            for (rk, _), record in self._store.items():
                if rk == kind and all(record.get(k) == v for k, v in key.items()):
                    record.update(copy.deepcopy(changes))
                    record["updatedAt"] = utcnow_iso()
                    return copy.deepcopy(record), False
            record = stamp_new({**key, **changes})
            self._store[(kind, record["id"])] = copy.deepcopy(record)
            return copy.deepcopy(record), True

    # -- Queries --------------------------------------------------------------

    def find(self, kind: str, **attrs: Any) -> list[dict[str, Any]]:
        """Return records of *kind* matching all given attribute values."""
        check_kind(kind)
        with self._lock:
            return [
                copy.deepcopy(v)
                for (rk, _), v in self._store.items()
                if rk == kind and all(v.get(k) == val for k, val in attrs.items())
            ]

    def find_one(self, kind: str, **attrs: Any) -> dict[str, Any] | None:
        found = self.find(kind, **attrs)
        return found[0] if found else None

    def list_all(self, kind: str, *, limit: int | None = None, newest_first: bool = False) -> list[dict[str, Any]]:
        """Return all records of a given kind in insertion order."""
        records = self.find(kind)
        if newest_first:
            records.reverse()
        return records[:limit] if limit is not None else records

    def search_certificates(
        self,
        *,
        cert_hash: str | None = None,
        name: str | None = None,
        certificate_id: str | None = None,
        ipfs_cid: str | None = None,
        limit: int = 25,
    ) -> list[dict[str, Any]]:
        """Disjunctive certificate lookup capped at *limit* documents."""
        if not any((cert_hash, name, certificate_id, ipfs_cid)):
            return []
        hits: list[dict[str, Any]] = []
        with self._lock:
            for (rk, _), doc in self._store.items():
                if rk != CERTIFICATES:
                    continue
                if matches_certificate(
                    doc,
                    cert_hash=cert_hash,
                    name=name,
                    certificate_id=certificate_id,
                    ipfs_cid=ipfs_cid,
                ):
                    hits.append(copy.deepcopy(doc))
                    if len(hits) >= limit:
                        break
        return hits

    def count(self, kind: str | None = None) -> int:
        """Count records, optionally filtered by kind."""
        with self._lock:
            if kind is None:
                return len(self._store)
            return sum(1 for (rk, _) in self._store if rk == kind)

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        """Remove all records."""
        with self._lock:
            self._store.clear()

    def close(self) -> None:
        pass
