"""Core definition contracts for flux_engine workflows."""

from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import (
    DuplicateStepNameError,
    EmptyWorkflowError,
    InvalidCommitPlacementError,
)


class ExecutionContext(BaseModel):
    """View of a run handed to a step handler for one attempt.

    ``input`` is a private snapshot of the workflow input. ``data`` is a
    working copy of the accumulated run data; it is merged back into the run
    only when the attempt succeeds.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    workflow_name: str
    step_name: str
    attempt: int = 1
    input: Any = None
    data: dict[str, Any] = Field(default_factory=dict)


StepHandler = Callable[[ExecutionContext], Any]
StepCondition = Callable[[ExecutionContext], bool]


class StepOptions(BaseModel):
    """Execution options for a single step.

    ``None`` means "use the engine default": no additional retries and no
    timeout unless configured otherwise.
    """

    model_config = ConfigDict(frozen=True)

    retries: Optional[int] = Field(
        default=None, ge=0, description="Attempts allowed after the first"
    )
    timeout_ms: Optional[float] = Field(
        default=None, gt=0, description="Per-attempt timeout in milliseconds"
    )
    when: Optional[StepCondition] = Field(
        default=None, description="Skip the step when this returns False"
    )


class StepDefinition(BaseModel):
    """Defines one step in a workflow."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    handler: StepHandler
    options: StepOptions = Field(default_factory=StepOptions)
    is_commit: bool = False


class WorkflowDefinition(BaseModel):
    """Immutable, ordered description of a workflow."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    steps: Tuple[StepDefinition, ...]
    input_validator: Optional[Callable[[Any], bool]] = None

    @model_validator(mode="after")
    def _check_steps(self) -> "WorkflowDefinition":
        if not self.steps:
            raise EmptyWorkflowError(f'Workflow "{self.name}" has no steps')
        seen: set[str] = set()
        for index, step in enumerate(self.steps):
            if step.name in seen:
                raise DuplicateStepNameError(self.name, step.name)
            seen.add(step.name)
            if step.is_commit and index != len(self.steps) - 1:
                raise InvalidCommitPlacementError(
                    f'Commit step "{step.name}" must be the last step of "{self.name}"'
                )
        return self

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    @property
    def commit_step(self) -> Optional[StepDefinition]:
        """Return the terminal commit step, if the workflow has one."""
        last = self.steps[-1]
        return last if last.is_commit else None

    def index_of(self, step_name: str) -> Optional[int]:
        """Return the position of ``step_name`` or ``None`` when unknown."""
        for index, step in enumerate(self.steps):
            if step.name == step_name:
                return index
        return None
