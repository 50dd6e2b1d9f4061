"""Retry and timeout policy for step execution.

A step runs as up to ``1 + retries`` attempts. Each attempt races the handler
against the step timeout; a handler that loses the race is abandoned rather
than cancelled, so its side effects may still land later. Outcomes are
returned as :class:`StepSucceeded` or :class:`StepFailed` values instead of
being raised.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import FluxConfig
from .contracts import ExecutionContext, StepDefinition, StepHandler
from .errors import StepTimeoutError
from .utils.retry import schedule_retry

logger = logging.getLogger(__name__)

RetryCallback = Callable[[StepDefinition, Exception, int, int], Awaitable[None]]


class RetryPolicy(BaseModel):
    """Resolved execution contract for one step."""

    model_config = ConfigDict(frozen=True)

    retries: int = Field(default=0, ge=0)
    timeout_ms: Optional[float] = Field(default=None, gt=0)
    backoff_base: Optional[float] = Field(default=None, gt=0)

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    @property
    def timeout_seconds(self) -> Optional[float]:
        return None if self.timeout_ms is None else self.timeout_ms / 1000

    @classmethod
    def for_step(
        cls, step: StepDefinition, config: Optional[FluxConfig] = None
    ) -> "RetryPolicy":
        """Combine a step's options with engine-wide defaults."""
        config = config or FluxConfig()
        options = step.options
        return cls(
            retries=(
                options.retries if options.retries is not None else config.default_retries
            ),
            timeout_ms=(
                options.timeout_ms
                if options.timeout_ms is not None
                else config.default_timeout_ms
            ),
            backoff_base=config.retry_backoff_base,
        )


class StepSucceeded(BaseModel):
    kind: Literal["succeeded"] = "succeeded"
    data: dict[str, Any] = Field(default_factory=dict)
    attempts: int
    duration_ms: float


class StepFailed(BaseModel):
    kind: Literal["failed"] = "failed"
    error: str
    error_type: str
    attempts: int
    duration_ms: float


StepOutcome = Union[StepSucceeded, StepFailed]


async def execute_step(
    step: StepDefinition,
    policy: RetryPolicy,
    *,
    run_id: str,
    workflow_name: str,
    input: Any,
    data: dict[str, Any],
    on_retry: Optional[RetryCallback] = None,
) -> StepOutcome:
    """Run ``step`` under ``policy`` and report the outcome.

    Each attempt receives fresh copies of ``input`` and ``data``; the caller's
    objects are never mutated.
    """
    started = time.monotonic()
    last_error: Optional[Exception] = None

    for attempt in range(1, policy.max_attempts + 1):
        ctx = ExecutionContext(
            run_id=run_id,
            workflow_name=workflow_name,
            step_name=step.name,
            attempt=attempt,
            input=copy.deepcopy(input),
            data=copy.deepcopy(data),
        )
        try:
            result = await _race(step.handler, ctx, step.name, policy.timeout_ms)
            merged = dict(ctx.data)
            if isinstance(result, Mapping):
                merged.update(result)
            return StepSucceeded(
                data=merged, attempts=attempt, duration_ms=_elapsed_ms(started)
            )
        except Exception as exc:
            last_error = exc
            logger.debug(
                f"Step {step.name} attempt {attempt}/{policy.max_attempts} "
                f"failed for run_id={run_id}: {exc!r}"
            )
            if attempt < policy.max_attempts:
                if on_retry is not None:
                    await on_retry(step, exc, attempt, policy.max_attempts)
                await schedule_retry(attempt, policy.backoff_base)

    assert last_error is not None
    return StepFailed(
        error=str(last_error) or type(last_error).__name__,
        error_type=type(last_error).__name__,
        attempts=policy.max_attempts,
        duration_ms=_elapsed_ms(started),
    )


async def _invoke(handler: StepHandler, ctx: ExecutionContext) -> Any:
    if inspect.iscoroutinefunction(handler):
        return await handler(ctx)
    # plain callables run off the loop so the timeout race still applies
    result = await asyncio.to_thread(handler, ctx)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _race(
    handler: StepHandler,
    ctx: ExecutionContext,
    step_name: str,
    timeout_ms: Optional[float],
) -> Any:
    task = asyncio.ensure_future(_invoke(handler, ctx))
    if timeout_ms is None:
        return await task

    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    if task in done:
        return task.result()

    task.add_done_callback(_discard_abandoned)
    raise StepTimeoutError(step_name, timeout_ms)


def _discard_abandoned(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned step attempt finished with error: {exc!r}")


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000
