"""SQLite implementation of the storage backend."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

from .base import StatusFilter, StorageBackend, normalize_statuses
from .models import RunRecord


class SQLiteStorage(StorageBackend):
    """Persist run records using SQLite.

    The full record is stored as a JSON document; ``workflow_name``,
    ``status`` and ``created_at`` are duplicated into indexed columns for
    listing. Inputs and step data must therefore be JSON serializable.
    """

    def __init__(self, db_path: str | Path = ":memory:", table_name: str = "flux_runs"):
        self.db_path = str(db_path)
        self.table_name = table_name
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    id TEXT PRIMARY KEY,
                    workflow_name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    record TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_name "
                f"ON {self.table_name}(workflow_name)"
            )
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_status "
                f"ON {self.table_name}(status)"
            )
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_created "
                f"ON {self.table_name}(created_at DESC)"
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Storage API
    async def save(self, record: RunRecord) -> None:
        await asyncio.to_thread(
            self._execute,
            f"""
            INSERT OR REPLACE INTO {self.table_name}
            (id, workflow_name, status, record, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            record.id,
            record.workflow_name,
            record.status.value,
            record.model_dump_json(),
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
        )

    async def load(self, run_id: str) -> Optional[RunRecord]:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT record FROM {self.table_name} WHERE id = ?",
            run_id,
        )
        if not row:
            return None
        return RunRecord.model_validate_json(row["record"])

    async def list_runs(
        self,
        workflow_name: Optional[str] = None,
        status: StatusFilter = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RunRecord]:
        query = f"SELECT record FROM {self.table_name} WHERE 1=1"
        params: list[Any] = []
        if workflow_name is not None:
            query += " AND workflow_name = ?"
            params.append(workflow_name)
        statuses = normalize_statuses(status)
        if statuses is not None:
            query += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(sorted(statuses))
        query += " ORDER BY created_at DESC"
        if limit is not None or offset:
            query += " LIMIT ? OFFSET ?"
            params.extend([-1 if limit is None else limit, offset])

        rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [RunRecord.model_validate_json(row["record"]) for row in rows]

    async def delete(self, run_id: str) -> None:
        await asyncio.to_thread(
            self._execute,
            f"DELETE FROM {self.table_name} WHERE id = ?",
            run_id,
        )

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)
