"""Persistent storage for file change records.

``ChangeStore`` is the narrow async collaborator interface. Two
implementations ship: an in-memory store for tests and embedding, and a
SQLite store for the CLI. Concurrent writers for the same project get
last-write-wins upsert semantics.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from ctxengine.changes.models import FileRecord
from ctxengine.exceptions import StoreError

logger = logging.getLogger("ctxengine.store")


class ChangeStore(ABC):
    """Async access to per-project file records."""

    @abstractmethod
    async def get_file_records(self, project_id: str) -> dict[str, FileRecord]:
        """Return every record for a project keyed by path."""

    @abstractmethod
    async def upsert_file_records(self, records: list[FileRecord]) -> None:
        """Insert or replace records (keyed by project_id + path)."""

    @abstractmethod
    async def delete_file_records(self, project_id: str, paths: list[str]) -> None:
        """Remove records for the given paths."""

    @abstractmethod
    async def clear_project(self, project_id: str) -> None:
        """Drop all records for a project."""

    def close(self) -> None:
        pass


class InMemoryChangeStore(ChangeStore):
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, FileRecord]] = {}

    async def get_file_records(self, project_id: str) -> dict[str, FileRecord]:
        return {
            path: record.model_copy(deep=True)
            for path, record in self._records.get(project_id, {}).items()
        }

    async def upsert_file_records(self, records: list[FileRecord]) -> None:
        for record in records:
            self._records.setdefault(record.project_id, {})[record.path] = record.model_copy(
                deep=True
            )

    async def delete_file_records(self, project_id: str, paths: list[str]) -> None:
        project = self._records.get(project_id, {})
        for path in paths:
            project.pop(path, None)

    async def clear_project(self, project_id: str) -> None:
        self._records.pop(project_id, None)


class SQLiteChangeStore(ChangeStore):
    """Stores file records in a single SQLite table."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        return self._conn

    def _create_tables(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS file_records (
                project_id TEXT NOT NULL,
                path TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                byte_size INTEGER NOT NULL DEFAULT 0,
                last_modified_at TEXT,
                file_type TEXT,
                exports TEXT,                   -- JSON array
                imports TEXT,                   -- JSON array
                modification_count INTEGER NOT NULL DEFAULT 1,
                PRIMARY KEY (project_id, path)
            );

            CREATE INDEX IF NOT EXISTS idx_records_project ON file_records(project_id);
        """)
        conn.commit()

    @staticmethod
    def _decode_list(raw: str | None) -> list[str]:
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return []
        return [str(v) for v in value] if isinstance(value, list) else []

    def _row_to_record(self, row: sqlite3.Row) -> FileRecord:
        data = {
            "project_id": row["project_id"],
            "path": row["path"],
            "content_hash": row["content_hash"],
            "byte_size": row["byte_size"] or 0,
            "file_type": row["file_type"],
            "exports": self._decode_list(row["exports"]),
            "imports": self._decode_list(row["imports"]),
            "modification_count": max(1, row["modification_count"] or 1),
        }
        if row["last_modified_at"]:
            data["last_modified_at"] = row["last_modified_at"]
        return FileRecord(**data)

    async def get_file_records(self, project_id: str) -> dict[str, FileRecord]:
        try:
            rows = self._get_conn().execute(
                "SELECT * FROM file_records WHERE project_id = ?", (project_id,)
            ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read records for {project_id}: {exc}") from exc
        return {row["path"]: self._row_to_record(row) for row in rows}

    async def upsert_file_records(self, records: list[FileRecord]) -> None:
        if not records:
            return
        conn = self._get_conn()
        try:
            conn.executemany(
                """INSERT INTO file_records
                   (project_id, path, content_hash, byte_size, last_modified_at,
                    file_type, exports, imports, modification_count)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(project_id, path) DO UPDATE SET
                     content_hash = excluded.content_hash,
                     byte_size = excluded.byte_size,
                     last_modified_at = excluded.last_modified_at,
                     file_type = excluded.file_type,
                     exports = excluded.exports,
                     imports = excluded.imports,
                     modification_count = excluded.modification_count""",
                [
                    (
                        r.project_id,
                        r.path,
                        r.content_hash,
                        r.byte_size,
                        r.last_modified_at.isoformat(),
                        r.file_type.value,
                        json.dumps(r.exports),
                        json.dumps(r.imports),
                        r.modification_count,
                    )
                    for r in records
                ],
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to upsert {len(records)} records: {exc}") from exc

    async def delete_file_records(self, project_id: str, paths: list[str]) -> None:
        if not paths:
            return
        conn = self._get_conn()
        try:
            conn.executemany(
                "DELETE FROM file_records WHERE project_id = ? AND path = ?",
                [(project_id, p) for p in paths],
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete records: {exc}") from exc

    async def clear_project(self, project_id: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM file_records WHERE project_id = ?", (project_id,))
        conn.commit()

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
