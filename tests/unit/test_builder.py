"""Workflow builder tests."""

import pytest

from flux_engine import (
    DuplicateStepNameError,
    EmptyWorkflowError,
    InvalidCommitPlacementError,
    StepDefinition,
    StepOptions,
    WorkflowDefinition,
    create_workflow,
)


async def noop(ctx):
    return None


def test_builder_collects_steps_in_order():
    builder = (
        create_workflow("order-process")
        .input(dict)
        .step("validate", noop)
        .step("charge", noop, retries=2, timeout_ms=500)
        .commit("notify", noop)
    )

    assert builder.name == "order-process"
    assert builder.step_count == 3

    definition = builder.build()
    assert definition.name == "order-process"
    assert definition.step_names == ["validate", "charge", "notify"]
    assert definition.steps[1].options.retries == 2
    assert definition.steps[1].options.timeout_ms == 500
    assert definition.commit_step is definition.steps[-1]
    assert [s.is_commit for s in definition.steps] == [False, False, True]


def test_step_defaults_inherit_engine_settings():
    definition = create_workflow("wf").step("only", noop).build()

    options = definition.steps[0].options
    assert options.retries is None
    assert options.timeout_ms is None
    assert options.when is None
    assert definition.commit_step is None


def test_keyword_options_override_options_object():
    definition = (
        create_workflow("wf")
        .step("a", noop, StepOptions(retries=1, timeout_ms=100), timeout_ms=250)
        .build()
    )

    assert definition.steps[0].options.retries == 1
    assert definition.steps[0].options.timeout_ms == 250


def test_duplicate_step_name_rejected():
    builder = create_workflow("wf").step("a", noop)

    with pytest.raises(DuplicateStepNameError) as exc_info:
        builder.step("a", noop)
    assert exc_info.value.step_name == "a"

    with pytest.raises(DuplicateStepNameError):
        builder.commit("a", noop)


def test_commit_may_only_be_added_once():
    builder = create_workflow("wf").step("a", noop).commit("done", noop)

    with pytest.raises(InvalidCommitPlacementError):
        builder.commit("again", noop)


def test_steps_cannot_follow_commit():
    builder = create_workflow("wf").commit("done", noop)

    with pytest.raises(InvalidCommitPlacementError):
        builder.step("late", noop)


def test_empty_workflow_cannot_be_built():
    with pytest.raises(EmptyWorkflowError):
        create_workflow("empty").build()


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        create_workflow("wf").step("a", noop, retries=-1)


def test_definition_is_immutable_snapshot():
    builder = create_workflow("wf").step("a", noop)
    definition = builder.build()
    builder.step("b", noop)

    assert definition.step_names == ["a"]
    with pytest.raises(ValueError):
        definition.name = "renamed"


def test_direct_definition_enforces_invariants():
    a = StepDefinition(name="a", handler=noop)
    commit = StepDefinition(name="done", handler=noop, is_commit=True)

    with pytest.raises(DuplicateStepNameError):
        WorkflowDefinition(name="wf", steps=(a, a))
    with pytest.raises(InvalidCommitPlacementError):
        WorkflowDefinition(name="wf", steps=(commit, a))

    definition = WorkflowDefinition(name="wf", steps=(a, commit))
    assert definition.index_of("done") == 1
    assert definition.index_of("missing") is None
