"""Storage backend interface for run state persistence."""

from __future__ import annotations

import abc
from typing import Iterable, Optional, Union

from .models import RunRecord, RunStatus

StatusFilter = Union[RunStatus, str, Iterable[Union[RunStatus, str]], None]


class StorageBackend(metaclass=abc.ABCMeta):
    """Abstract base for run state persistence backends.

    Backends own durability only: ``load`` must return exactly what was last
    passed to ``save`` for that id. The engine never issues two concurrent
    saves for the same id, but different ids may be saved concurrently.
    """

    async def connect(self) -> None:
        """Open connections or create schema (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release resources (no-op by default)."""
        pass

    @abc.abstractmethod
    async def save(self, record: RunRecord) -> None:
        """Persist or overwrite the full record for ``record.id``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def load(self, run_id: str) -> Optional[RunRecord]:
        """Return the record saved under ``run_id`` or ``None``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_runs(
        self,
        workflow_name: Optional[str] = None,
        status: StatusFilter = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RunRecord]:
        """Return matching records, newest first."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, run_id: str) -> None:
        """Remove the record for ``run_id`` if present."""
        raise NotImplementedError


def normalize_statuses(status: StatusFilter) -> Optional[set[str]]:
    """Turn a status filter into a set of raw status strings."""
    if status is None:
        return None
    if isinstance(status, (RunStatus, str)):
        status = [status]
    return {RunStatus(s).value for s in status}
