"""SQLite-backed knowledge store.

Persists source documents and their embedded chunks to a local SQLite
database at ``data/knowledge.db``.  Uses ``aiosqlite`` for async I/O and
opens one connection per call, so concurrent ingestion runs never share a
cursor or a transaction.

Table layout::

    knowledge_sources     one row per ingested file
    knowledge_embeddings  one row per chunk, vector stored as a JSON array,
                          ON DELETE CASCADE to its source

Foreign keys are off by default in SQLite; every connection turns them on
so deletes cascade and a chunk can never point at a missing source.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from chatbot_kb.interfaces.knowledge_store import IKnowledgeStore
from chatbot_kb.models.knowledge import ChunkInput, KnowledgeChunk, SourceDocument, SourceType
from chatbot_kb.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/knowledge.db")
_PROVIDER_NAME = "sqlite_knowledge_store"

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS knowledge_sources (
    id           TEXT PRIMARY KEY,
    chatbot_id   TEXT NOT NULL,
    source_type  TEXT NOT NULL,
    source_name  TEXT NOT NULL,
    metadata     TEXT NOT NULL DEFAULT '{}',
    created_at   TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS knowledge_embeddings (
    id          TEXT PRIMARY KEY,
    chatbot_id  TEXT NOT NULL,
    source_id   TEXT NOT NULL REFERENCES knowledge_sources(id) ON DELETE CASCADE,
    content     TEXT NOT NULL,
    embedding   TEXT NOT NULL,
    position    INTEGER NOT NULL,
    UNIQUE(source_id, position)
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_sources_chatbot ON knowledge_sources(chatbot_id);",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_chatbot ON knowledge_embeddings(chatbot_id);",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_source ON knowledge_embeddings(source_id);",
]

_INSERT_SOURCE_SQL = """\
INSERT INTO knowledge_sources (id, chatbot_id, source_type, source_name, metadata, created_at)
VALUES (?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO knowledge_embeddings (id, chatbot_id, source_id, content, embedding, position)
VALUES (?, ?, ?, ?, ?, ?);
"""

_SOURCE_COLUMNS = "id, chatbot_id, source_type, source_name, metadata, created_at"


class SQLiteKnowledgeStore(IKnowledgeStore):
    """SQLite-backed knowledge-base persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                message=f"Cannot create database directory {self._db_path.parent}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        async with self._connect("initialize") as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("knowledge_db_initialized", path=str(self._db_path))

    async def record_source(
        self,
        chatbot_id: str,
        source_type: SourceType,
        filename: str,
        metadata: dict[str, Any],
        source_id: str | None = None,
    ) -> str:
        source_id = source_id or str(uuid.uuid4())
        created_at = datetime.now(timezone.utc).isoformat()

        async with self._connect("record_source") as db:
            await db.execute(
                _INSERT_SOURCE_SQL,
                (
                    source_id,
                    chatbot_id,
                    SourceType(source_type).value,
                    filename,
                    json.dumps(metadata),
                    created_at,
                ),
            )
            await db.commit()

        logger.info(
            "knowledge_source_recorded",
            source_id=source_id,
            chatbot_id=chatbot_id,
            source_type=SourceType(source_type).value,
        )
        return source_id

    async def record_chunks(
        self,
        chatbot_id: str,
        source_id: str,
        chunks: list[ChunkInput],
    ) -> None:
        if not chunks:
            return

        rows = [
            (
                str(uuid.uuid4()),
                chatbot_id,
                source_id,
                chunk.text,
                json.dumps(chunk.vector),
                chunk.position,
            )
            for chunk in chunks
        ]

        async with self._connect("record_chunks") as db:
            try:
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
            except sqlite3.Error:
                await db.rollback()
                raise

        logger.info(
            "knowledge_chunks_recorded",
            source_id=source_id,
            chatbot_id=chatbot_id,
            count=len(rows),
        )

    async def get_source(self, source_id: str) -> SourceDocument | None:
        async with self._connect("get_source") as db:
            cursor = await db.execute(
                f"SELECT {_SOURCE_COLUMNS} FROM knowledge_sources WHERE id = ?",
                (source_id,),
            )
            row = await cursor.fetchone()
        return _row_to_source(row) if row else None

    async def list_sources(self, chatbot_id: str | None = None) -> list[SourceDocument]:
        sql = f"SELECT {_SOURCE_COLUMNS} FROM knowledge_sources"
        params: tuple[Any, ...] = ()
        if chatbot_id is not None:
            sql += " WHERE chatbot_id = ?"
            params = (chatbot_id,)
        sql += " ORDER BY created_at DESC, rowid DESC"

        async with self._connect("list_sources") as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_source(r) for r in rows]

    async def get_chunks(self, source_id: str) -> list[KnowledgeChunk]:
        async with self._connect("get_chunks") as db:
            cursor = await db.execute(
                "SELECT id, chatbot_id, source_id, content, embedding, position "
                "FROM knowledge_embeddings WHERE source_id = ? ORDER BY position",
                (source_id,),
            )
            rows = await cursor.fetchall()
        return [
            KnowledgeChunk(
                id=r["id"],
                chatbot_id=r["chatbot_id"],
                source_id=r["source_id"],
                content=r["content"],
                embedding=json.loads(r["embedding"]),
                position=r["position"],
            )
            for r in rows
        ]

    async def count_chunks(
        self,
        chatbot_id: str | None = None,
        source_id: str | None = None,
    ) -> int:
        clauses: list[str] = []
        params: list[Any] = []
        if chatbot_id is not None:
            clauses.append("chatbot_id = ?")
            params.append(chatbot_id)
        if source_id is not None:
            clauses.append("source_id = ?")
            params.append(source_id)

        sql = "SELECT COUNT(*) FROM knowledge_embeddings"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)

        async with self._connect("count_chunks") as db:
            cursor = await db.execute(sql, tuple(params))
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def delete_source(self, source_id: str) -> bool:
        async with self._connect("delete_source") as db:
            cursor = await db.execute("DELETE FROM knowledge_sources WHERE id = ?", (source_id,))
            await db.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("knowledge_source_deleted", source_id=source_id)
        return deleted

    async def find_orphaned_sources(self, chatbot_id: str | None = None) -> list[SourceDocument]:
        """Return sources whose metadata promises chunks but which have none.

        Such rows are left behind when ``record_chunks`` fails after
        ``record_source`` succeeded.
        """
        sql = (
            "SELECT s.id, s.chatbot_id, s.source_type, s.source_name, s.metadata, s.created_at, "
            "COUNT(e.id) AS stored "
            "FROM knowledge_sources s "
            "LEFT JOIN knowledge_embeddings e ON e.source_id = s.id"
        )
        params: tuple[Any, ...] = ()
        if chatbot_id is not None:
            sql += " WHERE s.chatbot_id = ?"
            params = (chatbot_id,)
        sql += " GROUP BY s.id HAVING stored = 0 ORDER BY s.created_at DESC"

        async with self._connect("find_orphaned_sources") as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()

        sources = [_row_to_source(r) for r in rows]
        return [s for s in sources if s.expected_chunk_count > 0]

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with foreign keys on; map sqlite errors to StorageError."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON")
                yield db
        except sqlite3.Error as exc:
            logger.error(
                "knowledge_store_error",
                operation=operation,
                path=str(self._db_path),
                error=str(exc),
            )
            raise StorageError(
                message=f"{operation} failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc


def _row_to_source(row: aiosqlite.Row) -> SourceDocument:
    return SourceDocument(
        id=row["id"],
        chatbot_id=row["chatbot_id"],
        source_type=SourceType(row["source_type"]),
        source_name=row["source_name"],
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
