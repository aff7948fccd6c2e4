"""Neo4j-backed record store.

Each record kind is a node label; records are flat property maps. Nested
dicts (user profiles) cannot be node properties, so they are written as
``<field>_json`` strings and decoded on read.

API-compatible with :class:`certledger.storage.memory.InMemoryRecordStore`.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from certledger.storage import connection
from neo4j.exceptions import ConstraintError

from certledger.storage.cypher_templates import SCHEMA_STATEMENTS, clamp_limit, render
from certledger.storage.records import RECORD_KINDS, check_kind, new_id, stamp_new, utcnow_iso
from certledger.utils import DuplicateRecordError, StoreError

logger = logging.getLogger(__name__)

_JSON_SUFFIX = "_json"


def _needs_json(value: Any) -> bool:
    if isinstance(value, dict):
        return True
    if isinstance(value, (list, tuple)):
        return any(isinstance(v, (dict, list, tuple)) for v in value)
    return False


def encode_props(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten a record into Neo4j-storable properties. None values are dropped."""
    props: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if _needs_json(value):
            props[key + _JSON_SUFFIX] = json.dumps(value, default=str)
        else:
            props[key] = value
    return props


def decode_props(props: dict[str, Any]) -> dict[str, Any]:
    """Inverse of :func:`encode_props`."""
    record: dict[str, Any] = {}
    for key, value in props.items():
        if key.endswith(_JSON_SUFFIX) and isinstance(value, str):
            try:
                record[key[: -len(_JSON_SUFFIX)]] = json.loads(value)
                continue
            except json.JSONDecodeError:
                logger.warning("Undecodable JSON property %s", key)
        record[key] = value
    return record


class Neo4jRecordStore:
    """Record store persisting every kind as labelled Neo4j nodes."""

    def __init__(self) -> None:
        self._schema_ready = False

    def ensure_schema(self) -> None:
        """Create the constraints and indexes (idempotent)."""
        for stmt in SCHEMA_STATEMENTS:
            try:
                connection.run_query(stmt)
            except Exception as exc:
                raise StoreError("Applying Neo4j schema failed") from exc
        self._schema_ready = True
        logger.info("Neo4j schema applied: %d statements", len(SCHEMA_STATEMENTS))

    def _read(self, cypher: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            rows = connection.run_query(cypher, params)
        except Exception as exc:
            logger.exception("Neo4j read failed")
            raise StoreError("Record store read failed") from exc
        return [decode_props(row["record"]) for row in rows if row.get("record") is not None]

    def _write(self, cypher: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            return connection.run_write(cypher, params)
        except ConstraintError as exc:
            raise DuplicateRecordError("Uniqueness constraint violated") from exc
        except Exception as exc:
            logger.exception("Neo4j write failed")
            raise StoreError("Record store write failed") from exc

    # -- CRUD -----------------------------------------------------------------

    def insert(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        record = stamp_new(data)
        rows = self._write(render("insert", kind), {"props": encode_props(record)})
        return decode_props(rows[0]["record"]) if rows else record

    def insert_unique(self, kind: str, data: dict[str, Any], unique: tuple[str, ...]) -> dict[str, Any]:
        """Insert unless a node of *kind* already has the same *unique* values.

        Concurrent inserts that slip past the existence check are caught by
        the uniqueness constraints from :meth:`ensure_schema`.
        """
        if not self._schema_ready:
            self.ensure_schema()
        record = stamp_new(data)
        rows = self._write(
            render("insert_unique", kind),
            {"props": encode_props(record), "unique": list(unique)},
        )
        if not rows:
            key = {k: data.get(k) for k in unique}
            raise DuplicateRecordError(f"Duplicate {kind} record for {key}")
        return decode_props(rows[0]["record"])

    def get(self, kind: str, record_id: str) -> dict[str, Any] | None:
        found = self._read(render("get", kind), {"id": record_id})
        return found[0] if found else None

    def update(self, kind: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        rows = self._write(
            render("update", kind),
            {"id": record_id, "changes": encode_props(changes), "now": utcnow_iso()},
        )
        return decode_props(rows[0]["record"]) if rows else None

    def update_where(self, kind: str, match: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any] | None:
        rows = self._write(
            render("update_where", kind),
            {"match": encode_props(match), "changes": encode_props(changes), "now": utcnow_iso()},
        )
        return decode_props(rows[0]["record"]) if rows else None

    def upsert(self, kind: str, key: dict[str, Any], changes: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        check_kind(kind)
        key_props = encode_props(key)
        key_pattern = "{" + ", ".join(f"{k}: $key.{k}" for k in key_props) + "}"
        rows = self._write(
            render("upsert", kind, key_pattern=key_pattern),
            {"key": key_props, "changes": encode_props(changes), "new_id": new_id(), "now": utcnow_iso()},
        )
        if not rows:
            raise StoreError(f"Upsert into {kind} returned no record")
        return decode_props(rows[0]["record"]), bool(rows[0].get("created"))

    # -- Queries --------------------------------------------------------------

    def find(self, kind: str, **attrs: Any) -> list[dict[str, Any]]:
        return self._read(render("find", kind), {"attrs": encode_props(attrs), "limit": clamp_limit(None)})

    def find_one(self, kind: str, **attrs: Any) -> dict[str, Any] | None:
        found = self.find(kind, **attrs)
        return found[0] if found else None

    def list_all(self, kind: str, *, limit: int | None = None, newest_first: bool = False) -> list[dict[str, Any]]:
        cypher = render("list", kind, direction="DESC" if newest_first else "ASC")
        return self._read(cypher, {"limit": clamp_limit(limit)})

    def search_certificates(
        self,
        *,
        cert_hash: str | None = None,
        name: str | None = None,
        certificate_id: str | None = None,
        ipfs_cid: str | None = None,
        limit: int = 25,
    ) -> list[dict[str, Any]]:
        if not any((cert_hash, name, certificate_id, ipfs_cid)):
            return []
        params = {
            "hash": cert_hash or None,
            "name": name or None,
            "certificate_id": certificate_id or None,
            "ipfs_cid": ipfs_cid or None,
            "limit": clamp_limit(limit),
        }
        return self._read(render("search_certificates"), params)

    def count(self, kind: str | None = None) -> int:
        kinds = [kind] if kind is not None else list(RECORD_KINDS)
        total = 0
        for k in kinds:
            try:
                rows = connection.run_query(render("count", k))
            except Exception as exc:
                raise StoreError("Record store count failed") from exc
            total += rows[0]["total"] if rows else 0
        return total

    def ping(self) -> bool:
        try:
            return bool(connection.run_query(render("ping")))
        except Exception:
            logger.warning("Neo4j ping failed")
            return False

    def close(self) -> None:
        connection.close_driver()
