"""Command line interface for inspecting and driving flux_engine runs."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer

from flux_engine import Engine, get_storage, load_config
from flux_engine.cli_utils.workflow import load_workflow
from flux_engine.errors import FluxError
from flux_engine.logger import configure_logging
from flux_engine.persistence.models import RunRecord, RunStatus

app = typer.Typer(help="CLI for flux_engine workflows")

# Command groups
runs_app = typer.Typer(help="Commands for inspecting persisted runs")
workflow_app = typer.Typer(help="Commands for executing workflows")

app.add_typer(runs_app, name="runs")
app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Logging level override"),
) -> None:
    """flux_engine CLI entry point."""
    configure_logging(log_level or load_config().log_level)


def _echo_record(record: RunRecord) -> None:
    typer.echo(f"Run {record.id}: {record.status.value}")
    typer.echo(f"Workflow: {record.workflow_name}")
    if record.data:
        typer.echo(f"Data: {json.dumps(record.data, default=str)}")
    for step in record.completed_steps:
        typer.echo(
            f"- {step.name}: {step.status} "
            f"({step.attempts} attempt(s), {step.completed_at.isoformat()})"
        )
    if record.failure is not None:
        typer.secho(
            f"- {record.failure.step_name}: failed after "
            f"{record.failure.attempts} attempt(s): {record.failure.error}",
            fg=typer.colors.RED,
        )


@runs_app.command("list")
def runs_list(
    workflow: Optional[str] = typer.Option(None, help="Only runs of this workflow"),
    status: Optional[RunStatus] = typer.Option(None, help="Only runs in this status"),
    limit: Optional[int] = typer.Option(None, help="Maximum number of runs"),
) -> None:
    """
    List persisted runs with their current status, newest first.

    Example:
        flux runs list
        flux runs list --workflow order-process --status failed
        # Output: 0b6c...    order-process    failed
    """
    storage = get_storage()
    records = asyncio.run(
        storage.list_runs(workflow_name=workflow, status=status, limit=limit)
    )
    if not records:
        typer.echo("No runs found")
        return
    for record in records:
        typer.echo(f"{record.id}\t{record.workflow_name}\t{record.status.value}")


@runs_app.command("show")
def runs_show(run_id: str) -> None:
    """
    Show status, accumulated data and step history for a run.

    Example:
        flux runs show 0b6c0f1e-...
    """
    storage = get_storage()
    record = asyncio.run(storage.load(run_id))
    if record is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    _echo_record(record)


@workflow_app.command("execute")
def workflow_execute(
    target: str = typer.Argument(..., help="module:attribute of the workflow"),
    input: Optional[str] = typer.Option(None, "--input", help="JSON input"),
) -> None:
    """
    Execute a workflow end-to-end and print the resulting run.

    Example:
        flux workflow execute myapp.workflows:order_flow --input '{"order_id": "42"}'
    """
    definition = _load_or_exit(target)
    payload = json.loads(input) if input else None
    engine = Engine(storage=get_storage())
    try:
        record = asyncio.run(engine.execute(definition, payload))
    except FluxError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2)
    _echo_record(record)
    if record.status is RunStatus.FAILED:
        raise typer.Exit(code=1)


@workflow_app.command("retry")
def workflow_retry(
    target: str = typer.Argument(..., help="module:attribute of the workflow"),
    run_id: str = typer.Argument(...),
    step: str = typer.Argument(..., help="Name of the failed step"),
) -> None:
    """
    Resume a failed run from the step that failed.

    Example:
        flux workflow retry myapp.workflows:order_flow 0b6c0f1e-... charge
    """
    definition = _load_or_exit(target)
    engine = Engine(storage=get_storage())
    try:
        record = asyncio.run(engine.retry_step(definition, run_id, step))
    except FluxError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2)
    if record is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    _echo_record(record)
    if record.status is RunStatus.FAILED:
        raise typer.Exit(code=1)


def _load_or_exit(target: str):
    try:
        return load_workflow(target)
    except (FluxError, ValueError, ImportError, FileNotFoundError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
