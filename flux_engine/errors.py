"""Exception hierarchy for flux_engine."""

from __future__ import annotations


class FluxError(Exception):
    """Base class for all engine errors."""


class DefinitionError(FluxError):
    """A workflow definition violates one of its structural rules."""


class DuplicateStepNameError(DefinitionError):
    """Two steps in the same workflow share a name."""

    def __init__(self, workflow_name: str, step_name: str) -> None:
        super().__init__(
            f'Workflow "{workflow_name}" already has a step named "{step_name}"'
        )
        self.workflow_name = workflow_name
        self.step_name = step_name


class InvalidCommitPlacementError(DefinitionError):
    """The commit step is repeated or is not the last step."""


class EmptyWorkflowError(DefinitionError):
    """A workflow was built without any steps."""


class InvalidStateError(FluxError):
    """An operation is not allowed for the run's current status."""


class InvalidInputError(FluxError):
    """Workflow input was rejected by the definition's validator."""


class WorkflowMismatchError(FluxError):
    """A persisted run does not belong to the supplied definition."""


class StepTimeoutError(FluxError, TimeoutError):
    """A step attempt did not finish within its timeout."""

    def __init__(self, step_name: str, timeout_ms: float) -> None:
        super().__init__(f'Step "{step_name}" timed out after {timeout_ms:g}ms')
        self.step_name = step_name
        self.timeout_ms = timeout_ms
