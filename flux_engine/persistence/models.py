"""Data models for persisted run state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from ..errors import InvalidStateError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.RUNNING: {RunStatus.SUCCEEDED, RunStatus.FAILED},
    RunStatus.FAILED: {RunStatus.RUNNING},
    RunStatus.SUCCEEDED: set(),
}


class CompletedStep(BaseModel):
    """Record of a step that finished successfully or was skipped."""

    name: str
    status: Literal["completed", "skipped"] = "completed"
    completed_at: datetime = Field(default_factory=utcnow)
    attempts: int = 1
    duration_ms: float = 0.0


class StepFailure(BaseModel):
    """Details of the step that exhausted its attempts."""

    step_name: str
    error: str
    error_type: Optional[str] = None
    attempts: int
    failed_at: datetime = Field(default_factory=utcnow)


class RunRecord(BaseModel):
    """Persisted execution state of one workflow invocation."""

    id: str
    workflow_name: str
    status: RunStatus = RunStatus.RUNNING
    input: Any = None
    data: dict[str, Any] = Field(default_factory=dict)
    completed_steps: list[CompletedStep] = Field(default_factory=list)
    failure: Optional[StepFailure] = None
    current_step: Optional[str] = None
    current_attempt: int = 0
    retry_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def error(self) -> Optional[str]:
        return self.failure.error if self.failure else None

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def transition(self, status: RunStatus) -> None:
        """Move to ``status`` or raise :class:`InvalidStateError`."""
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStateError(
                f"Run {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        self.updated_at = utcnow()

    def touch(self) -> None:
        self.updated_at = utcnow()
