"""Parameterized Cypher statements for the Neo4j record store.

Labels cannot be parameters in Cypher, so every statement takes a
``{label}`` placeholder that :func:`render` fills from the whitelisted
record kinds. Every read includes a LIMIT clause.
"""

from certledger.storage.records import RECORD_KINDS, check_kind

_MAX_LIMIT = 1000

TEMPLATES: dict[str, str] = {
    "insert": """
        CREATE (n:{label})
        SET n = $props
        RETURN properties(n) AS record
    """,
    "insert_unique": """
        OPTIONAL MATCH (existing:{label})
        WHERE all(k IN $unique WHERE existing[k] = $props[k])
        WITH count(existing) AS taken
        WHERE taken = 0
        CREATE (n:{label})
        SET n = $props
        RETURN properties(n) AS record
    """,
    "get": """
        MATCH (n:{label} {{id: $id}})
        RETURN properties(n) AS record
        LIMIT 1
    """,
    "find": """
        MATCH (n:{label})
        WHERE all(k IN keys($attrs) WHERE n[k] = $attrs[k])
        RETURN properties(n) AS record
        ORDER BY n.createdAt
        LIMIT $limit
    """,
    "list": """
        MATCH (n:{label})
        RETURN properties(n) AS record
        ORDER BY n.createdAt {direction}
        LIMIT $limit
    """,
    "update": """
        MATCH (n:{label} {{id: $id}})
        SET n += $changes, n.updatedAt = $now
        RETURN properties(n) AS record
    """,
    "update_where": """
        MATCH (n:{label})
        WHERE all(k IN keys($match) WHERE n[k] = $match[k])
        WITH n ORDER BY n.createdAt LIMIT 1
        SET n += $changes, n.updatedAt = $now
        RETURN properties(n) AS record
    """,
    "upsert": """
        MERGE (n:{label} {key_pattern})
        ON CREATE SET n.id = $new_id, n.createdAt = $now, n._created = true
        ON MATCH SET n._created = false
        SET n += $changes, n.updatedAt = $now
        WITH n, n._created AS created
        REMOVE n._created
        RETURN properties(n) AS record, created
    """,
    "search_certificates": """
        MATCH (c:Certificate)
        WHERE ($hash IS NOT NULL AND toLower(c.hash) IN [$hash, '0x' + $hash])
           OR ($name IS NOT NULL AND toLower(c.fullName) CONTAINS toLower($name))
           OR ($certificate_id IS NOT NULL AND c.certificateId = $certificate_id)
           OR ($ipfs_cid IS NOT NULL AND c.ipfsCid = $ipfs_cid)
        RETURN properties(c) AS record
        LIMIT $limit
    """,
    "count": """
        MATCH (n:{label})
        RETURN count(n) AS total
    """,
    "ping": "RETURN 1 AS ok",
}

# Constraints and indexes, executed one statement at a time (DDL cannot share a transaction).
SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT user_id IF NOT EXISTS FOR (u:User) REQUIRE u.id IS UNIQUE",
    "CREATE CONSTRAINT user_email IF NOT EXISTS FOR (u:User) REQUIRE u.email IS UNIQUE",
    "CREATE INDEX certificate_hash IF NOT EXISTS FOR (c:Certificate) ON (c.hash)",
]


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return _MAX_LIMIT
    return max(1, min(int(limit), _MAX_LIMIT))


def render(name: str, kind: str | None = None, **extra: str) -> str:
    """Return the Cypher for *name* with the label for *kind* substituted."""
    cypher = TEMPLATES[name]
    if kind is None:
        return cypher
    return cypher.format(label=RECORD_KINDS[check_kind(kind)], **extra)
