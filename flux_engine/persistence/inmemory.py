"""In-memory implementation of the storage backend."""

from __future__ import annotations

from typing import Dict, Optional

from .base import StatusFilter, StorageBackend, normalize_statuses
from .models import RunRecord


class InMemoryStorage(StorageBackend):
    """Store run records in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Records are copied on the way in and
    out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, RunRecord] = {}

    # ------------------------------------------------------------------
    async def save(self, record: RunRecord) -> None:
        self._runs[record.id] = record.model_copy(deep=True)

    async def load(self, run_id: str) -> Optional[RunRecord]:
        record = self._runs.get(run_id)
        return record.model_copy(deep=True) if record else None

    async def list_runs(
        self,
        workflow_name: Optional[str] = None,
        status: StatusFilter = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RunRecord]:
        statuses = normalize_statuses(status)
        matches = [
            record
            for record in self._runs.values()
            if (workflow_name is None or record.workflow_name == workflow_name)
            and (statuses is None or record.status.value in statuses)
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return [record.model_copy(deep=True) for record in matches[offset:end]]

    async def delete(self, run_id: str) -> None:
        self._runs.pop(run_id, None)
