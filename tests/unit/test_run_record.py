"""Run record state machine tests."""

import pytest

from flux_engine import InvalidStateError, RunRecord, RunStatus
from flux_engine.persistence.models import StepFailure


def _record() -> RunRecord:
    return RunRecord(id="run-1", workflow_name="wf")


def test_new_record_is_running():
    record = _record()
    assert record.status is RunStatus.RUNNING
    assert record.data == {}
    assert record.completed_steps == []
    assert record.error is None
    assert not record.is_terminal


def test_running_to_succeeded_is_terminal():
    record = _record()
    record.transition(RunStatus.SUCCEEDED)

    assert record.is_terminal
    for status in RunStatus:
        with pytest.raises(InvalidStateError):
            record.transition(status)


def test_failed_can_be_reopened():
    record = _record()
    record.transition(RunStatus.FAILED)
    record.transition(RunStatus.RUNNING)
    record.transition(RunStatus.FAILED)

    assert record.status is RunStatus.FAILED


def test_failed_cannot_succeed_directly():
    record = _record()
    record.transition(RunStatus.FAILED)

    with pytest.raises(InvalidStateError):
        record.transition(RunStatus.SUCCEEDED)


def test_error_exposes_failure_message():
    record = _record()
    record.failure = StepFailure(step_name="charge", error="card declined", attempts=3)

    assert record.error == "card declined"
