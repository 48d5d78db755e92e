"""SQLite-backed project, file and chunk persistence.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IProjectStore).
#
# Database: ``data/rag.db`` with three tables, ``projects``, ``files`` and
# ``chunks``.  Timestamps are stored as integer milliseconds since the
# epoch in a ``created`` column; embedding vectors are stored as JSON text.
#
# Uses ``aiosqlite`` for async I/O with one connection per operation,
# ``PRAGMA foreign_keys = ON`` on every connection and
# ``PRAGMA journal_mode=WAL`` for concurrent read safety.
#
# Schema versions are tracked with ``PRAGMA user_version``.  Version 0 is
# either an empty file or a database written by the first deployment,
# whose projects carry no embedding settings, whose files carry no error
# message and whose chunks require a short description.  ``initialize``
# upgrades such a database in place inside one transaction.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.project_store import IProjectStore
from src.models.project import Chunk, EmbeddingType, FileStatus, Project, ProjectFile

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/rag.db")

_SCHEMA_VERSION = 1

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_PROJECTS_TABLE = """\
CREATE TABLE IF NOT EXISTS projects (
    id              TEXT    PRIMARY KEY,
    name            TEXT    NOT NULL,
    created         INTEGER NOT NULL,
    embedding_model TEXT    NOT NULL DEFAULT 'llama2',
    chunk_size      INTEGER NOT NULL DEFAULT 1000,
    embedding_type  TEXT    NOT NULL DEFAULT 'summary'
);
"""

_CREATE_FILES_TABLE = """\
CREATE TABLE IF NOT EXISTS files (
    id            TEXT    PRIMARY KEY,
    project_id    TEXT    NOT NULL,
    filename      TEXT    NOT NULL,
    created       INTEGER NOT NULL,
    status        TEXT    NOT NULL,
    chunk_count   INTEGER,
    error_message TEXT,
    FOREIGN KEY (project_id) REFERENCES projects (id)
);
"""

_CHUNKS_COLUMNS_SQL = """\
    id                TEXT    PRIMARY KEY,
    file_id           TEXT    NOT NULL,
    project_id        TEXT    NOT NULL,
    chunk_text        TEXT    NOT NULL,
    short_description TEXT,
    embedding_vector  TEXT    NOT NULL,
    created           INTEGER NOT NULL,
    FOREIGN KEY (file_id) REFERENCES files (id),
    FOREIGN KEY (project_id) REFERENCES projects (id)
"""

_CREATE_CHUNKS_TABLE = f"CREATE TABLE IF NOT EXISTS chunks (\n{_CHUNKS_COLUMNS_SQL});\n"

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_files_project ON files(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_files_status ON files(status);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_project ON chunks(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_file ON chunks(file_id);",
]

# Columns a first-deployment database may lack, with the DDL that adds them.
_LEGACY_COLUMNS = {
    "projects": [
        ("embedding_model", "TEXT NOT NULL DEFAULT 'llama2'"),
        ("chunk_size", "INTEGER NOT NULL DEFAULT 1000"),
        ("embedding_type", "TEXT NOT NULL DEFAULT 'summary'"),
    ],
    "files": [
        ("error_message", "TEXT"),
    ],
}

_REBUILD_CHUNKS = [
    f"CREATE TABLE chunks_rebuilt (\n{_CHUNKS_COLUMNS_SQL});",
    "INSERT INTO chunks_rebuilt "
    "(id, file_id, project_id, chunk_text, short_description, embedding_vector, created) "
    "SELECT id, file_id, project_id, chunk_text, short_description, embedding_vector, created "
    "FROM chunks ORDER BY rowid;",
    "DROP TABLE chunks;",
    "ALTER TABLE chunks_rebuilt RENAME TO chunks;",
]

# ── DML ───────────────────────────────────────────────────────────────

_PROJECT_COLUMNS = "id, name, created, embedding_model, chunk_size, embedding_type"
_FILE_COLUMNS = "id, project_id, filename, created, status, chunk_count, error_message"
_CHUNK_COLUMNS = (
    "id, file_id, project_id, chunk_text, short_description, embedding_vector, created"
)

_INSERT_PROJECT = f"INSERT INTO projects ({_PROJECT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?);"
_INSERT_FILE = f"INSERT INTO files ({_FILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?);"
_INSERT_CHUNK = f"INSERT INTO chunks ({_CHUNK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?);"

_SELECT_PROJECTS = f"SELECT {_PROJECT_COLUMNS} FROM projects ORDER BY created DESC, rowid DESC;"
_SELECT_PROJECT = f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?;"
_SELECT_FILES = (
    f"SELECT {_FILE_COLUMNS} FROM files WHERE project_id = ? "
    "ORDER BY created DESC, rowid DESC;"
)
_SELECT_FILE = f"SELECT {_FILE_COLUMNS} FROM files WHERE id = ? AND project_id = ?;"
_SELECT_PROJECT_CHUNKS = (
    f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE project_id = ? ORDER BY rowid;"
)
_SELECT_FILE_CHUNKS = f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE file_id = ? ORDER BY rowid;"

_UPDATE_CHUNK_COUNT = "UPDATE files SET chunk_count = ? WHERE id = ?;"
_MARK_COMPLETED = (
    "UPDATE files SET status = 'completed', error_message = NULL "
    "WHERE id = ? AND status = 'processing';"
)
_MARK_ERROR = (
    "UPDATE files SET status = 'error', error_message = ? "
    "WHERE id = ? AND status = 'processing';"
)
_COUNT_PROCESSING = (
    "SELECT COUNT(*) AS n FROM files WHERE project_id = ? AND status = 'processing';"
)


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class SQLiteProjectStore(IProjectStore):
    """SQLite-backed project store.

    Parameters
    ----------
    db_path:
        Location of the database file; parent directories are created by
        :meth:`initialize`.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON;")
            yield db

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Connection with an explicit transaction, rolled back on any error."""
        async with self._connect() as db:
            await db.execute("BEGIN;")
            try:
                yield db
            except Exception:
                await db.rollback()
                raise
            await db.commit()

    # ── Schema ─────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the schema, upgrading a first-deployment database in place."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            cursor = await db.execute("PRAGMA user_version;")
            version = (await cursor.fetchone())[0]
            if version >= _SCHEMA_VERSION:
                logger.info("project_db_initialized", path=str(self._db_path), version=version)
                return

            # Table rebuilds must not trip foreign key checks mid-migration.
            await db.execute("PRAGMA foreign_keys = OFF;")
            await db.execute("BEGIN;")
            try:
                migrated = await self._migrate_legacy_tables(db)
                await db.execute(_CREATE_PROJECTS_TABLE)
                await db.execute(_CREATE_FILES_TABLE)
                await db.execute(_CREATE_CHUNKS_TABLE)
                for idx_sql in _CREATE_INDICES:
                    await db.execute(idx_sql)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION};")
            except Exception:
                await db.rollback()
                raise
            await db.commit()

        logger.info(
            "project_db_initialized",
            path=str(self._db_path),
            version=_SCHEMA_VERSION,
            migrated_from_legacy=migrated,
        )

    @staticmethod
    async def _table_columns(db: aiosqlite.Connection, table: str) -> dict[str, bool]:
        """Return ``{column_name: is_not_null}`` for *table* (empty if absent)."""
        cursor = await db.execute(f"PRAGMA table_info({table});")
        rows = await cursor.fetchall()
        return {row[1]: bool(row[3]) for row in rows}

    async def _migrate_legacy_tables(self, db: aiosqlite.Connection) -> bool:
        migrated = False
        for table, columns in _LEGACY_COLUMNS.items():
            existing = await self._table_columns(db, table)
            if not existing:
                continue
            for name, ddl in columns:
                if name not in existing:
                    await db.execute(f"ALTER TABLE {table} ADD COLUMN {name} {ddl};")
                    logger.info("schema_column_added", table=table, column=name)
                    migrated = True

        chunk_columns = await self._table_columns(db, "chunks")
        if chunk_columns.get("short_description"):
            for statement in _REBUILD_CHUNKS:
                await db.execute(statement)
            logger.info("schema_chunks_rebuilt", short_description_nullable=True)
            migrated = True
        return migrated

    def get_provider_name(self) -> str:
        return "sqlite_project_store"

    # ── Projects ───────────────────────────────────────────────────────

    async def create_project(self, project: Project) -> Project:
        async with self._connect() as db:
            await db.execute(
                _INSERT_PROJECT,
                (
                    project.id,
                    project.name,
                    _to_millis(project.created_at),
                    project.embedding_model,
                    project.chunk_size,
                    project.embedding_type.value,
                ),
            )
            await db.commit()
        logger.info("project_created", project_id=project.id, name=project.name)
        return project

    async def list_projects(self) -> list[Project]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PROJECTS)
            rows = await cursor.fetchall()
        return [self._row_to_project(row) for row in rows]

    async def get_project(self, project_id: str) -> Project | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PROJECT, (project_id,))
            row = await cursor.fetchone()
        return self._row_to_project(row) if row is not None else None

    async def delete_project(self, project_id: str) -> bool:
        """Delete chunks, files and the project row in one transaction."""
        async with self._transaction() as db:
            await db.execute("DELETE FROM chunks WHERE project_id = ?;", (project_id,))
            await db.execute("DELETE FROM files WHERE project_id = ?;", (project_id,))
            cursor = await db.execute("DELETE FROM projects WHERE id = ?;", (project_id,))
            deleted = cursor.rowcount > 0
        logger.info("project_deleted", project_id=project_id, deleted=deleted)
        return deleted

    # ── Files ──────────────────────────────────────────────────────────

    async def create_file(self, file: ProjectFile) -> ProjectFile:
        async with self._connect() as db:
            await db.execute(
                _INSERT_FILE,
                (
                    file.id,
                    file.project_id,
                    file.filename,
                    _to_millis(file.created_at),
                    file.status.value,
                    file.chunk_count,
                    file.error_message,
                ),
            )
            await db.commit()
        return file

    async def list_files(self, project_id: str) -> list[ProjectFile]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_FILES, (project_id,))
            rows = await cursor.fetchall()
        return [self._row_to_file(row) for row in rows]

    async def get_file(self, project_id: str, file_id: str) -> ProjectFile | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_FILE, (file_id, project_id))
            row = await cursor.fetchone()
        return self._row_to_file(row) if row is not None else None

    async def set_file_chunk_count(self, file_id: str, chunk_count: int) -> None:
        async with self._connect() as db:
            await db.execute(_UPDATE_CHUNK_COUNT, (chunk_count, file_id))
            await db.commit()

    async def mark_file_completed(self, file_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(_MARK_COMPLETED, (file_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def mark_file_error(self, file_id: str, message: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(_MARK_ERROR, (message, file_id))
            await db.commit()
            return cursor.rowcount > 0

    async def delete_file(self, project_id: str, file_id: str) -> bool:
        """Delete the file's chunks and its row in one transaction."""
        async with self._transaction() as db:
            await db.execute(
                "DELETE FROM chunks WHERE file_id = ? AND project_id = ?;",
                (file_id, project_id),
            )
            cursor = await db.execute(
                "DELETE FROM files WHERE id = ? AND project_id = ?;",
                (file_id, project_id),
            )
            deleted = cursor.rowcount > 0
        logger.info("file_deleted", project_id=project_id, file_id=file_id, deleted=deleted)
        return deleted

    async def count_processing_files(self, project_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(_COUNT_PROCESSING, (project_id,))
            row = await cursor.fetchone()
        return int(row["n"])

    async def fail_processing_files(self, message: str) -> list[str]:
        async with self._transaction() as db:
            cursor = await db.execute("SELECT id FROM files WHERE status = 'processing';")
            file_ids = [row["id"] for row in await cursor.fetchall()]
            if file_ids:
                await db.execute(
                    "UPDATE files SET status = 'error', error_message = ? "
                    "WHERE status = 'processing';",
                    (message,),
                )
        return file_ids

    # ── Chunks ─────────────────────────────────────────────────────────

    async def add_chunk(self, chunk: Chunk) -> Chunk:
        async with self._connect() as db:
            await db.execute(
                _INSERT_CHUNK,
                (
                    chunk.id,
                    chunk.file_id,
                    chunk.project_id,
                    chunk.chunk_text,
                    chunk.short_description,
                    json.dumps(chunk.embedding_vector),
                    _to_millis(chunk.created_at),
                ),
            )
            await db.commit()
        return chunk

    async def list_chunks(self, project_id: str) -> list[Chunk]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PROJECT_CHUNKS, (project_id,))
            rows = await cursor.fetchall()
        return [self._row_to_chunk(row) for row in rows]

    async def list_file_chunks(self, file_id: str) -> list[Chunk]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_FILE_CHUNKS, (file_id,))
            rows = await cursor.fetchall()
        return [self._row_to_chunk(row) for row in rows]

    async def delete_file_chunks(self, file_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM chunks WHERE file_id = ?;", (file_id,))
            await db.commit()
            return cursor.rowcount

    # ── Row mapping ────────────────────────────────────────────────────

    @staticmethod
    def _row_to_project(row: aiosqlite.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            created_at=_from_millis(row["created"]),
            embedding_model=row["embedding_model"],
            chunk_size=row["chunk_size"],
            embedding_type=EmbeddingType(row["embedding_type"]),
        )

    @staticmethod
    def _row_to_file(row: aiosqlite.Row) -> ProjectFile:
        return ProjectFile(
            id=row["id"],
            project_id=row["project_id"],
            filename=row["filename"],
            created_at=_from_millis(row["created"]),
            status=FileStatus(row["status"]),
            chunk_count=row["chunk_count"],
            error_message=row["error_message"],
        )

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
        return Chunk(
            id=row["id"],
            file_id=row["file_id"],
            project_id=row["project_id"],
            chunk_text=row["chunk_text"],
            # First-deployment rows may hold "" for direct chunks.
            short_description=row["short_description"] or None,
            embedding_vector=json.loads(row["embedding_vector"]),
            created_at=_from_millis(row["created"]),
        )
