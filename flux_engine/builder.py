"""Fluent builder producing immutable workflow definitions."""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from .contracts import (
    StepCondition,
    StepDefinition,
    StepHandler,
    StepOptions,
    WorkflowDefinition,
)
from .errors import (
    DuplicateStepNameError,
    EmptyWorkflowError,
    InvalidCommitPlacementError,
)


class WorkflowBuilder:
    """Collects steps and produces a :class:`WorkflowDefinition`.

    Example::

        workflow = (
            create_workflow("order-process")
            .input(OrderInput)
            .step("validate", validate_order)
            .step("charge", charge_card, retries=2, timeout_ms=5000)
            .commit("notify", send_email)
            .build()
        )

    The builder performs no I/O; its only side effect is appending to its own
    step list.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._steps: List[StepDefinition] = []
        self._input_validator: Optional[Callable[[Any], bool]] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def step_count(self) -> int:
        return len(self._steps)

    def input(self, input_type: Optional[type] = None) -> "WorkflowBuilder":
        """Declare the expected input type.

        This is documentation for readers and type checkers only; it does not
        validate anything at runtime. Use :meth:`validate` for that.
        """
        return self

    def validate(self, validator: Callable[[Any], bool]) -> "WorkflowBuilder":
        """Reject inputs for which ``validator`` returns ``False``."""
        self._input_validator = validator
        return self

    def step(
        self,
        name: str,
        handler: StepHandler,
        options: Optional[StepOptions] = None,
        *,
        retries: Optional[int] = None,
        timeout_ms: Optional[float] = None,
        when: Optional[StepCondition] = None,
    ) -> "WorkflowBuilder":
        """Append a regular step."""
        if self._has_commit():
            raise InvalidCommitPlacementError(
                f'Cannot add step "{name}" after the commit step of "{self._name}"'
            )
        self._append(name, handler, options, retries, timeout_ms, when, is_commit=False)
        return self

    def commit(
        self,
        name: str,
        handler: StepHandler,
        options: Optional[StepOptions] = None,
        *,
        retries: Optional[int] = None,
        timeout_ms: Optional[float] = None,
        when: Optional[StepCondition] = None,
    ) -> "WorkflowBuilder":
        """Append the terminal commit step; it may be added only once."""
        if self._has_commit():
            raise InvalidCommitPlacementError(
                f'Workflow "{self._name}" already has a commit step'
            )
        self._append(name, handler, options, retries, timeout_ms, when, is_commit=True)
        return self

    def build(self) -> WorkflowDefinition:
        if not self._steps:
            raise EmptyWorkflowError(f'Workflow "{self._name}" has no steps')
        return WorkflowDefinition(
            name=self._name,
            steps=tuple(self._steps),
            input_validator=self._input_validator,
        )

    # ------------------------------------------------------------------
    def _has_commit(self) -> bool:
        return bool(self._steps) and self._steps[-1].is_commit

    def _append(
        self,
        name: str,
        handler: StepHandler,
        options: Optional[StepOptions],
        retries: Optional[int],
        timeout_ms: Optional[float],
        when: Optional[StepCondition],
        is_commit: bool,
    ) -> None:
        if any(step.name == name for step in self._steps):
            raise DuplicateStepNameError(self._name, name)
        base = options or StepOptions()
        resolved = StepOptions(
            retries=retries if retries is not None else base.retries,
            timeout_ms=timeout_ms if timeout_ms is not None else base.timeout_ms,
            when=when if when is not None else base.when,
        )
        self._steps.append(
            StepDefinition(
                name=name, handler=handler, options=resolved, is_commit=is_commit
            )
        )


def create_workflow(name: str) -> WorkflowBuilder:
    """Start a new workflow definition named ``name``."""
    return WorkflowBuilder(name)
