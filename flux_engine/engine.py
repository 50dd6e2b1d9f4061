"""Workflow execution engine for flux_engine."""

from __future__ import annotations

import asyncio
import copy
import inspect
import uuid
import weakref
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from .builder import WorkflowBuilder
from .config import FluxConfig, load_config
from .contracts import ExecutionContext, StepDefinition, WorkflowDefinition
from .errors import InvalidInputError, InvalidStateError, WorkflowMismatchError
from .logger import FluxLogger, StdlibLogger
from .persistence import StorageBackend, get_storage
from .persistence.base import StatusFilter
from .persistence.models import (
    CompletedStep,
    RunRecord,
    RunStatus,
    StepFailure,
    utcnow,
)
from .policy import RetryPolicy, StepFailed, execute_step

WorkflowLike = Union[WorkflowBuilder, WorkflowDefinition]


class EngineHooks(BaseModel):
    """Optional callbacks fired as a run progresses.

    Callbacks receive a copy of the record and may be plain functions or
    coroutine functions.
    """

    step_start: Optional[Callable[[str, RunRecord], Any]] = None
    step_complete: Optional[Callable[[str, RunRecord], Any]] = None
    step_error: Optional[Callable[[str, RunRecord], Any]] = None
    workflow_complete: Optional[Callable[[RunRecord], Any]] = None
    workflow_error: Optional[Callable[[RunRecord], Any]] = None


class Engine:
    """Runs workflow definitions and persists progress after every step.

    Example::

        engine = Engine(storage=InMemoryStorage())
        record = await engine.execute(workflow, {"order_id": "123"})
        if record.status is RunStatus.FAILED:
            record = await engine.retry_step(workflow, record.id, record.failure.step_name)
    """

    def __init__(
        self,
        storage: StorageBackend | None = None,
        logger: FluxLogger | None = None,
        config: FluxConfig | None = None,
        hooks: EngineHooks | None = None,
    ) -> None:
        self._config = config or load_config()
        self._storage = storage or get_storage()
        self._logger = logger or StdlibLogger()
        self._hooks = hooks or EngineHooks()
        self._run_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def connect(self) -> None:
        await self._storage.connect()

    async def close(self) -> None:
        await self._storage.close()

    # ------------------------------------------------------------------
    async def execute(self, workflow: WorkflowLike, input: Any = None) -> RunRecord:
        """Run ``workflow`` end-to-end against ``input``.

        Step failures never raise: the returned record has status ``failed``
        and a ``failure`` entry. Storage errors propagate.
        """
        definition = self._resolve_definition(workflow)
        if definition.input_validator is not None and not definition.input_validator(
            input
        ):
            raise InvalidInputError(f'Invalid input for workflow "{definition.name}"')

        record = RunRecord(
            id=str(uuid.uuid4()),
            workflow_name=definition.name,
            input=copy.deepcopy(input),
        )
        await self._storage.save(record)
        self._logger.info(
            f"Workflow {definition.name} started for run_id={record.id}"
        )
        return await self._run_from(definition, record, 0)

    async def retry_step(
        self, workflow: WorkflowLike, run_id: str, step_name: str
    ) -> RunRecord | None:
        """Replay the failed ``step_name`` of run ``run_id`` and continue.

        Returns ``None`` when no such run exists. Steps completed before the
        failure are trusted and not executed again.

        Raises:
            InvalidStateError: The run is not failed, or ``step_name`` is not
                the step that failed.
            WorkflowMismatchError: The run belongs to a different workflow or
                the failed step is missing from ``workflow``.
        """
        definition = self._resolve_definition(workflow)
        lock = self._run_locks.get(run_id)
        if lock is None:
            lock = asyncio.Lock()
            self._run_locks[run_id] = lock

        async with lock:
            record = await self._storage.load(run_id)
            if record is None:
                self._logger.warn(f"No run found for run_id={run_id}")
                return None

            if record.workflow_name != definition.name:
                raise WorkflowMismatchError(
                    f"Run {run_id} belongs to workflow {record.workflow_name}, "
                    f"not {definition.name}"
                )
            if record.status is not RunStatus.FAILED or record.failure is None:
                raise InvalidStateError(
                    f"Run {run_id} is {record.status.value}; only failed runs can be retried"
                )
            if step_name != record.failure.step_name:
                raise InvalidStateError(
                    f"Run {run_id} failed at step {record.failure.step_name}, "
                    f"cannot retry {step_name}"
                )
            start_index = definition.index_of(step_name)
            if start_index is None:
                raise WorkflowMismatchError(
                    f'Step "{step_name}" is not part of workflow {definition.name}'
                )

            record.transition(RunStatus.RUNNING)
            record.failure = None
            record.retry_count += 1
            await self._storage.save(record)
            self._logger.info(
                f"Retrying step {step_name} for run_id={run_id} "
                f"(retry {record.retry_count})"
            )
            return await self._run_from(definition, record, start_index)

    async def get(self, run_id: str) -> RunRecord | None:
        return await self._storage.load(run_id)

    async def list_runs(
        self,
        workflow_name: Optional[str] = None,
        status: StatusFilter = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RunRecord]:
        return await self._storage.list_runs(
            workflow_name=workflow_name, status=status, limit=limit, offset=offset
        )

    # ------------------------------------------------------------------
    async def _run_from(
        self, definition: WorkflowDefinition, record: RunRecord, start_index: int
    ) -> RunRecord:
        for step in definition.steps[start_index:]:
            record.current_step = step.name
            record.current_attempt = 0

            try:
                should_run = self._should_run(step, record)
            except Exception as exc:
                return await self._fail(
                    step,
                    record,
                    error=str(exc) or type(exc).__name__,
                    error_type=type(exc).__name__,
                    attempts=0,
                )

            if not should_run:
                record.completed_steps.append(
                    CompletedStep(name=step.name, status="skipped", attempts=0)
                )
                record.current_step = None
                record.touch()
                await self._storage.save(record)
                self._logger.info(f"Skipped step {step.name} for run_id={record.id}")
                continue

            await self._emit(self._hooks.step_start, step.name, record)
            self._logger.debug(f"Starting step {step.name} for run_id={record.id}")

            async def on_retry(
                step: StepDefinition, exc: Exception, attempt: int, max_attempts: int
            ) -> None:
                record.current_attempt = attempt
                record.touch()
                await self._storage.save(record)
                self._logger.warn(
                    f"Step {step.name} attempt {attempt}/{max_attempts} failed "
                    f"for run_id={record.id}: {exc}"
                )

            outcome = await execute_step(
                step,
                RetryPolicy.for_step(step, self._config),
                run_id=record.id,
                workflow_name=record.workflow_name,
                input=record.input,
                data=record.data,
                on_retry=on_retry,
            )

            if isinstance(outcome, StepFailed):
                return await self._fail(
                    step,
                    record,
                    error=outcome.error,
                    error_type=outcome.error_type,
                    attempts=outcome.attempts,
                )

            record.data = outcome.data
            record.completed_steps.append(
                CompletedStep(
                    name=step.name,
                    attempts=outcome.attempts,
                    duration_ms=outcome.duration_ms,
                )
            )
            record.current_step = None
            record.current_attempt = 0
            record.touch()
            await self._storage.save(record)
            self._logger.info(f"Completed step {step.name} for run_id={record.id}")
            await self._emit(self._hooks.step_complete, step.name, record)

        record.transition(RunStatus.SUCCEEDED)
        record.completed_at = utcnow()
        await self._storage.save(record)
        self._logger.info(
            f"Workflow {definition.name} succeeded for run_id={record.id}"
        )
        await self._emit(self._hooks.workflow_complete, record)
        return record

    async def _fail(
        self,
        step: StepDefinition,
        record: RunRecord,
        *,
        error: str,
        error_type: str,
        attempts: int,
    ) -> RunRecord:
        record.failure = StepFailure(
            step_name=step.name,
            error=error,
            error_type=error_type,
            attempts=attempts,
        )
        record.current_attempt = attempts
        record.transition(RunStatus.FAILED)
        await self._storage.save(record)
        self._logger.error(
            f"Step {step.name} failed after {attempts} attempt(s) "
            f"for run_id={record.id}: {error}"
        )
        await self._emit(self._hooks.step_error, step.name, record)
        await self._emit(self._hooks.workflow_error, record)
        return record

    def _should_run(self, step: StepDefinition, record: RunRecord) -> bool:
        if step.options.when is None:
            return True
        ctx = ExecutionContext(
            run_id=record.id,
            workflow_name=record.workflow_name,
            step_name=step.name,
            input=copy.deepcopy(record.input),
            data=copy.deepcopy(record.data),
        )
        return bool(step.options.when(ctx))

    async def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        args = tuple(
            arg.model_copy(deep=True) if isinstance(arg, RunRecord) else arg
            for arg in args
        )
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            self._logger.error(
                f"Hook {getattr(callback, '__name__', repr(callback))} raised: {exc!r}"
            )

    @staticmethod
    def _resolve_definition(workflow: WorkflowLike) -> WorkflowDefinition:
        if isinstance(workflow, WorkflowBuilder):
            return workflow.build()
        if isinstance(workflow, WorkflowDefinition):
            return workflow
        raise TypeError(f"Expected a workflow definition, got {type(workflow).__name__}")
