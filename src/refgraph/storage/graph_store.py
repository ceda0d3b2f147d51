"""
Graph store port and its adapters.

The store is the system of record for declarations and edges. The
projector only needs two queries from it: the innermost declaration
enclosing a file line, and an idempotent edge upsert.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Protocol, runtime_checkable

import aiosqlite
import structlog

from refgraph.errors import StoreUnavailableError
from refgraph.model import DeclarationSpan, GraphEdge

logger = structlog.get_logger(__name__)


@runtime_checkable
class GraphStore(Protocol):
    """Port to the persistent graph store."""

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def register_declarations(self, spans: Iterable[DeclarationSpan]) -> int: ...

    async def locate_enclosing(self, file_path: str, line: int) -> str | None: ...

    async def upsert_edge(self, source_id: str, target_id: str) -> bool: ...

    async def count_edges(self) -> int: ...

    async def get_edges(self) -> list[GraphEdge]: ...


def _innermost(spans: Iterable[DeclarationSpan], line: int) -> DeclarationSpan | None:
    best = None
    for span in spans:
        if not span.start_line <= line <= span.end_line:
            continue
        if best is None or (span.end_line - span.start_line) < (best.end_line - best.start_line):
            best = span
    return best


class InMemoryGraphStore:
    """Graph store kept in process memory. Used for tests and dry runs."""

    def __init__(self) -> None:
        self._spans: dict[str, dict[tuple[str, int, int], DeclarationSpan]] = {}
        self._edges: dict[GraphEdge, None] = {}
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False

    async def register_declarations(self, spans: Iterable[DeclarationSpan]) -> int:
        count = 0
        for span in spans:
            by_file = self._spans.setdefault(span.file_path, {})
            key = (span.identifier, span.start_line, span.end_line)
            if key not in by_file:
                by_file[key] = span
                count += 1
        return count

    async def locate_enclosing(self, file_path: str, line: int) -> str | None:
        span = _innermost(self._spans.get(file_path, {}).values(), line)
        return span.identifier if span else None

    async def upsert_edge(self, source_id: str, target_id: str) -> bool:
        edge = GraphEdge(source_id, target_id)
        if edge in self._edges:
            return False
        self._edges[edge] = None
        return True

    async def count_edges(self) -> int:
        return len(self._edges)

    async def get_edges(self) -> list[GraphEdge]:
        return list(self._edges)


class SQLiteGraphStore:
    """
    Graph store backed by SQLite.

    Features:
    - WAL mode for concurrent reads
    - Composite primary keys make both registration and upsert idempotent
    - Innermost enclosing range wins on nested declarations
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS declarations (
        identifier TEXT NOT NULL,
        file_path TEXT NOT NULL,
        start_line INTEGER NOT NULL,
        end_line INTEGER NOT NULL,
        kind TEXT NOT NULL,
        PRIMARY KEY (identifier, file_path, start_line)
    );

    CREATE INDEX IF NOT EXISTS idx_declarations_file ON declarations(file_path, start_line, end_line);

    CREATE TABLE IF NOT EXISTS edges (
        source_id TEXT NOT NULL,
        target_id TEXT NOT NULL,
        PRIMARY KEY (source_id, target_id)
    );

    CREATE INDEX IF NOT EXISTS idx_edges_target ON edges(target_id);
    """

    def __init__(self, db_path: Path, wal_mode: bool = True) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """
        Open the database and create the schema.

        Raises:
            StoreUnavailableError: If the database cannot be opened.
        """
        logger.info("Initializing graph store", db_path=str(self.db_path))
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self.db_path, isolation_level=None)
            if self.wal_mode:
                await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")
            await self._db.executescript(self.SCHEMA)
        except (sqlite3.Error, OSError) as e:
            if self._db is not None:
                await self._db.close()
                self._db = None
            raise StoreUnavailableError(f"Graph store unavailable at {self.db_path}: {e}") from e
        logger.info("Graph store initialized")

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Graph store closed")

    def _connection(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("Database not initialized")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Context manager for transactions."""
        db = self._connection()
        async with self._lock:
            await db.execute("BEGIN")
            try:
                yield db
                await db.execute("COMMIT")
            except Exception:
                await db.execute("ROLLBACK")
                raise

    async def register_declarations(self, spans: Iterable[DeclarationSpan]) -> int:
        """Record callable line ranges. Returns the number of new rows."""
        rows = [
            (s.identifier, s.file_path, s.start_line, s.end_line, s.kind.value)
            for s in spans
        ]
        async with self.transaction() as conn:
            before = conn.total_changes
            await conn.executemany(
                """
                INSERT OR IGNORE INTO declarations (identifier, file_path, start_line, end_line, kind)
                VALUES (?, ?, ?, ?, ?)
                """,
                rows,
            )
            added = conn.total_changes - before
        logger.debug("Declarations registered", rows=len(rows), added=added)
        return added

    async def locate_enclosing(self, file_path: str, line: int) -> str | None:
        db = self._connection()
        async with db.execute(
            """
            SELECT identifier FROM declarations
            WHERE file_path = ? AND start_line <= ? AND end_line >= ?
            ORDER BY end_line - start_line ASC, start_line DESC
            LIMIT 1
            """,
            (file_path, line, line),
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def upsert_edge(self, source_id: str, target_id: str) -> bool:
        """Create the edge if absent. Returns True when a row was added."""
        db = self._connection()
        cursor = await db.execute(
            "INSERT OR IGNORE INTO edges (source_id, target_id) VALUES (?, ?)",
            (source_id, target_id),
        )
        return cursor.rowcount > 0

    async def count_edges(self) -> int:
        db = self._connection()
        async with db.execute("SELECT COUNT(*) FROM edges") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def get_edges(self) -> list[GraphEdge]:
        db = self._connection()
        async with db.execute("SELECT source_id, target_id FROM edges ORDER BY source_id, target_id") as cursor:
            rows = await cursor.fetchall()
        return [GraphEdge(row[0], row[1]) for row in rows]
