"""
Vocal Bridge Entity-Relation Store
----------------------------------
A small persisted knowledge graph in SQLite: named, typed content entities and
directed, labeled relations between them.

Relations are soft references. Nothing checks that their endpoints exist when
they are written, and deleting an entity leaves its relations in place as
dangling edges; get_relations() reports the missing side with null names.

Every public method runs as one transaction under one lock, so the store is
safe to call from worker threads via asyncio.to_thread().
"""

import sqlite3
import json
import time
import uuid
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterator

from vocal_bridge.core.errors import StorageError
from vocal_bridge.core.types import Entity, RelationView

logger = logging.getLogger("VocalBridge.Store")

SCHEMA_VERSION = 1
SEARCH_PAGE_SIZE = 50
PREVIEW_CHARS = 200
DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000

CREATE_ENTITIES = """
CREATE TABLE IF NOT EXISTS entities (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    type        TEXT NOT NULL,
    content     TEXT NOT NULL DEFAULT '',
    metadata    TEXT NOT NULL DEFAULT '{}',
    created_at  REAL NOT NULL,
    updated_at  REAL NOT NULL
);
"""

CREATE_RELATIONS = """
CREATE TABLE IF NOT EXISTS relations (
    id              TEXT PRIMARY KEY,
    from_id         TEXT NOT NULL,
    to_id           TEXT NOT NULL,
    relation_type   TEXT NOT NULL,
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      REAL NOT NULL
);
"""

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_entities_name ON entities(name);",
    "CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type);",
    "CREATE INDEX IF NOT EXISTS idx_entities_updated ON entities(updated_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_relations_from ON relations(from_id);",
    "CREATE INDEX IF NOT EXISTS idx_relations_to ON relations(to_id);",
]

SCHEMA_META = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);
"""

# rowid breaks updated_at ties so the newest write still sorts first.
NEWEST_FIRST = "ORDER BY updated_at DESC, rowid DESC"


def _casefold(value: Optional[str]) -> Optional[str]:
    # Registered as a SQL function; LIKE only folds ASCII letters.
    return value.casefold() if value else value


def _load_metadata(raw: Optional[str]) -> Dict[str, Any]:
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


class EntityRelationStore:
    """Manages entities and relations in SQLite."""

    def __init__(self, db_path):
        self.db_path = Path(db_path) if not isinstance(db_path, Path) else db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._initialize()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("casefold", 1, _casefold, deterministic=True)
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn

    def _initialize(self) -> None:
        # Failures here are fatal to startup, so they propagate as sqlite3.Error.
        conn = self._get_conn()
        conn.execute(CREATE_ENTITIES)
        conn.execute(CREATE_RELATIONS)
        for idx in CREATE_INDEXES:
            conn.execute(idx)
        conn.execute(SCHEMA_META)
        conn.execute(
            "INSERT OR IGNORE INTO schema_meta (key, value) VALUES (?, ?)",
            ("version", str(SCHEMA_VERSION)),
        )
        conn.commit()
        logger.info("Entity-relation store initialized at %s", self.db_path)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run one store operation atomically, mapping sqlite faults to StorageError."""
        with self._lock:
            conn = self._get_conn()
            try:
                with conn:
                    yield conn
            except sqlite3.Error as exc:
                logger.error("Store operation '%s' failed: %s", operation, exc)
                raise StorageError(f"Storage error during {operation}: {exc}") from exc

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> Entity:
        d = dict(row)
        d["metadata"] = _load_metadata(d.get("metadata"))
        return Entity(**d)

    @staticmethod
    def _row_to_relation(row: sqlite3.Row) -> RelationView:
        d = dict(row)
        d["metadata"] = _load_metadata(d.get("metadata"))
        return RelationView(**d)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def store(
        self,
        name: str,
        type: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Create a new entity and return its id. Names are labels, not keys."""
        entity_id = str(uuid.uuid4())
        now = time.time()
        with self._transaction("store") as conn:
            conn.execute(
                """
                INSERT INTO entities (id, name, type, content, metadata, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (entity_id, name, type, content, json.dumps(metadata or {}), now, now),
            )
        logger.debug("Stored entity %s (%s/%s)", entity_id, type, name)
        return entity_id

    def update(
        self,
        entity_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Rewrite an entity's content, and its metadata when given.

        Returns False when the entity does not exist; nothing is created.
        """
        now = time.time()
        with self._transaction("update") as conn:
            if metadata is None:
                cursor = conn.execute(
                    "UPDATE entities SET content = ?, updated_at = ? WHERE id = ?",
                    (content, now, entity_id),
                )
            else:
                cursor = conn.execute(
                    "UPDATE entities SET content = ?, metadata = ?, updated_at = ? WHERE id = ?",
                    (content, json.dumps(metadata), now, entity_id),
                )
        return cursor.rowcount > 0

    def get(self, entity_id: str) -> Optional[Entity]:
        with self._transaction("get") as conn:
            row = conn.execute("SELECT * FROM entities WHERE id = ?", (entity_id,)).fetchone()
        return self._row_to_entity(row) if row else None

    def recall(self, name_or_id: str) -> Optional[Entity]:
        """
        Look up an entity by exact id, falling back to exact name.

        When several entities share the name, the most recently updated wins.
        """
        with self._transaction("recall") as conn:
            row = conn.execute("SELECT * FROM entities WHERE id = ?", (name_or_id,)).fetchone()
            if row is None:
                row = conn.execute(
                    f"SELECT * FROM entities WHERE name = ? {NEWEST_FIRST} LIMIT 1",
                    (name_or_id,),
                ).fetchone()
        return self._row_to_entity(row) if row else None

    def search(self, query: str, type: Optional[str] = None) -> List[Entity]:
        """Case-insensitive substring match on name or content, newest first."""
        needle = query.casefold()
        sql = (
            "SELECT * FROM entities "
            "WHERE (instr(casefold(name), ?) > 0 OR instr(casefold(content), ?) > 0)"
        )
        params: List[Any] = [needle, needle]
        if type:
            sql += " AND type = ?"
            params.append(type)
        sql += f" {NEWEST_FIRST} LIMIT ?"
        params.append(SEARCH_PAGE_SIZE)
        with self._transaction("search") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_entity(r) for r in rows]

    def list(self, type: Optional[str] = None, limit: int = DEFAULT_LIST_LIMIT) -> List[Entity]:
        safe_limit = max(1, min(MAX_LIST_LIMIT, int(limit)))
        with self._transaction("list") as conn:
            if type:
                rows = conn.execute(
                    f"SELECT * FROM entities WHERE type = ? {NEWEST_FIRST} LIMIT ?",
                    (type, safe_limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    f"SELECT * FROM entities {NEWEST_FIRST} LIMIT ?",
                    (safe_limit,),
                ).fetchall()
        return [self._row_to_entity(r) for r in rows]

    def delete(self, entity_id: str) -> bool:
        """Remove the entity only. Relations touching it are left dangling."""
        with self._transaction("delete") as conn:
            cursor = conn.execute("DELETE FROM entities WHERE id = ?", (entity_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def relate(
        self,
        from_id: str,
        to_id: str,
        relation_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Create a directed relation. Endpoints are not checked and duplicates are allowed."""
        relation_id = str(uuid.uuid4())
        with self._transaction("relate") as conn:
            conn.execute(
                """
                INSERT INTO relations (id, from_id, to_id, relation_type, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (relation_id, from_id, to_id, relation_type, json.dumps(metadata or {}), time.time()),
            )
        return relation_id

    def get_relations(self, entity_id: str) -> List[RelationView]:
        """All relations with entity_id at either end, annotated with endpoint names."""
        with self._transaction("get_relations") as conn:
            rows = conn.execute(
                """
                SELECT r.id, r.from_id, r.to_id, r.relation_type, r.metadata, r.created_at,
                       ef.name AS from_name, ef.type AS from_type,
                       et.name AS to_name, et.type AS to_type
                FROM relations r
                LEFT JOIN entities ef ON ef.id = r.from_id
                LEFT JOIN entities et ON et.id = r.to_id
                WHERE r.from_id = ? OR r.to_id = ?
                ORDER BY r.created_at DESC, r.rowid DESC
                """,
                (entity_id, entity_id),
            ).fetchall()
        return [self._row_to_relation(r) for r in rows]

    def stats(self) -> Dict[str, Any]:
        with self._transaction("stats") as conn:
            entities = conn.execute("SELECT COUNT(*) FROM entities").fetchone()[0]
            relations = conn.execute("SELECT COUNT(*) FROM relations").fetchone()[0]
            type_rows = conn.execute(
                "SELECT type, COUNT(*) AS n FROM entities GROUP BY type ORDER BY n DESC, type"
            ).fetchall()
        return {
            "entities": int(entities),
            "relations": int(relations),
            "types": {row["type"]: int(row["n"]) for row in type_rows},
        }

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
