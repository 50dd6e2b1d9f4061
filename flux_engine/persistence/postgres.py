"""PostgreSQL implementation of the storage backend."""

from __future__ import annotations

from typing import Any, Optional

import asyncpg

from .base import StatusFilter, StorageBackend, normalize_statuses
from .models import RunRecord


class PostgresStorage(StorageBackend):
    """Persist run records using PostgreSQL."""

    def __init__(self, dsn: str, table_name: str = "flux_runs"):
        self._dsn = dsn
        self.table_name = table_name
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                id TEXT PRIMARY KEY,
                workflow_name TEXT NOT NULL,
                status TEXT NOT NULL,
                record JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_name "
            f"ON {self.table_name}(workflow_name)"
        )
        await conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_status "
            f"ON {self.table_name}(status)"
        )

    async def connect(self) -> None:
        conn = await self._connect()
        await conn.close()

    # ------------------------------------------------------------------
    async def save(self, record: RunRecord) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                f"""
                INSERT INTO {self.table_name}
                (id, workflow_name, status, record, created_at, updated_at)
                VALUES ($1, $2, $3, $4::jsonb, $5, $6)
                ON CONFLICT (id) DO UPDATE SET
                    workflow_name = EXCLUDED.workflow_name,
                    status = EXCLUDED.status,
                    record = EXCLUDED.record,
                    updated_at = EXCLUDED.updated_at
                """,
                record.id,
                record.workflow_name,
                record.status.value,
                record.model_dump_json(),
                record.created_at,
                record.updated_at,
            )
        finally:
            await conn.close()

    async def load(self, run_id: str) -> Optional[RunRecord]:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT record::text AS record FROM {self.table_name} WHERE id = $1",
                run_id,
            )
        finally:
            await conn.close()
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
        query = f"SELECT record::text AS record FROM {self.table_name} WHERE TRUE"
        params: list[Any] = []
        if workflow_name is not None:
            params.append(workflow_name)
            query += f" AND workflow_name = ${len(params)}"
        statuses = normalize_statuses(status)
        if statuses is not None:
            params.append(sorted(statuses))
            query += f" AND status = ANY(${len(params)}::text[])"
        query += " ORDER BY created_at DESC"
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"
        if offset:
            params.append(offset)
            query += f" OFFSET ${len(params)}"

        conn = await self._connect()
        try:
            rows = await conn.fetch(query, *params)
        finally:
            await conn.close()
        return [RunRecord.model_validate_json(r["record"]) for r in rows]

    async def delete(self, run_id: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                f"DELETE FROM {self.table_name} WHERE id = $1", run_id
            )
        finally:
            await conn.close()
