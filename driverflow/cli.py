"""Command line interface for running driver onboarding workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, NoReturn, Optional

import typer
from pydantic import ValidationError

from driverflow.config import load_config
from driverflow.constants import ONBOARDING_WORKFLOW
from driverflow.contracts import Subject, WorkflowRun
from driverflow.exceptions import DriverflowError
from driverflow.health import integration_health
from driverflow.orchestrator import build_orchestrator
from driverflow.persistence import get_repository
from driverflow.subjects import get_subject_source

app = typer.Typer(help="CLI for driver onboarding workflows")

# Command groups
onboarding_app = typer.Typer(help="Start, inspect and retry onboarding runs")
runs_app = typer.Typer(help="Commands for inspecting persisted runs")
drivers_app = typer.Typer(help="Commands for managing driver records")

app.add_typer(onboarding_app, name="onboarding")
app.add_typer(runs_app, name="runs")
app.add_typer(drivers_app, name="drivers")

WorkflowOption = typer.Option(
    ONBOARDING_WORKFLOW,
    "--workflow",
    "-w",
    help="Workflow to use: onboarding, background_check or insurance",
)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for workflow output"),
) -> None:
    """Driverflow CLI entry point."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _run(awaitable: Awaitable[Any]) -> Any:
    """Run one command's work and release the driver source before the loop closes."""

    async def _main() -> Any:
        try:
            return await awaitable
        finally:
            await get_subject_source().close()

    return asyncio.run(_main())


def _print_run(run: WorkflowRun, as_json: bool = False) -> None:
    if as_json:
        typer.echo(run.model_dump_json(indent=2))
        return
    typer.echo(f"Run {run.run_id} ({run.workflow}) for driver {run.subject_id}: {run.overall_status}")
    typer.echo(f"Started: {run.started_at}  Completed: {run.completed_at or '-'}")
    for name, outcome in run.steps.items():
        line = f"- {name}: {outcome.status}"
        if outcome.error:
            line += f" ({outcome.error})"
        typer.echo(line)
    if run.summary is not None:
        if run.summary.risk_level:
            typer.echo(f"Risk level: {run.summary.risk_level}")
        if run.summary.coverage_status:
            typer.echo(f"Coverage: {run.summary.coverage_status}")
        if run.summary.estimated_completion:
            typer.echo(f"Estimated completion: {run.summary.estimated_completion}")
        for flag in run.summary.flags:
            typer.echo(f"! {flag}")
    for recommendation in run.recommendations:
        typer.echo(f"* {recommendation}")


@onboarding_app.command("start")
def onboarding_start(
    subject_id: str,
    workflow: str = WorkflowOption,
    as_json: bool = typer.Option(False, "--json", help="Print the run as JSON"),
) -> None:
    """
    Run a workflow for a driver and print the resulting run.

    Every applicable step runs concurrently; step failures are reported in the
    run rather than aborting it.

    Example:
        driverflow onboarding start driver-42
        driverflow onboarding start driver-42 --workflow insurance --json
    """
    orchestrator = build_orchestrator()
    try:
        run = _run(orchestrator.start(subject_id, workflow))
    except (DriverflowError, ValueError) as exc:
        _fail(str(exc))
    _print_run(run, as_json)


@onboarding_app.command("status")
def onboarding_status(
    subject_id: str,
    workflow: str = WorkflowOption,
    as_json: bool = typer.Option(False, "--json", help="Print the run as JSON"),
) -> None:
    """Show the latest run of a workflow for a driver."""
    orchestrator = build_orchestrator()
    try:
        run = _run(orchestrator.status(subject_id, workflow))
    except (DriverflowError, ValueError) as exc:
        _fail(str(exc))
    _print_run(run, as_json)


@onboarding_app.command("retry")
def onboarding_retry(
    subject_id: str,
    step_name: str,
    workflow: str = WorkflowOption,
) -> None:
    """
    Retry one step of the driver's latest run using fresh driver data.

    Example:
        driverflow onboarding retry driver-42 payment
        driverflow onboarding retry driver-42 vehicle --workflow insurance
    """
    orchestrator = build_orchestrator()
    try:
        outcome = _run(orchestrator.retry_step(subject_id, step_name, workflow))
    except (DriverflowError, ValueError) as exc:
        _fail(str(exc))
    typer.echo(f"{step_name}: {outcome.status}")
    if outcome.error:
        typer.echo(f"Error: {outcome.error}")


@runs_app.command("list")
def runs_list(subject: Optional[str] = typer.Option(None, help="Only runs for this driver")) -> None:
    """List persisted runs with their overall status."""
    repo = get_repository()
    runs = asyncio.run(repo.list_runs(subject))
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.run_id}\t{run.workflow}\t{run.subject_id}\t{run.overall_status}")


@runs_app.command("show")
def runs_show(
    run_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the run as JSON"),
) -> None:
    """Show one run with its step outcomes and summary."""
    repo = get_repository()
    try:
        run = asyncio.run(repo.get_run(run_id))
    except DriverflowError:
        _fail("Run not found")
    _print_run(run, as_json)


@drivers_app.command("load")
def drivers_load(path: Path) -> None:
    """Load driver records from a JSON file (one object or a list)."""
    if not path.exists():
        _fail("Specified path does not exist")
    try:
        data = json.loads(path.read_text())
    except ValueError as exc:
        _fail(f"Invalid JSON in {path}: {exc}")

    records = data if isinstance(data, list) else [data]
    try:
        subjects = [Subject.model_validate(record) for record in records]
    except ValidationError as exc:
        _fail(f"Invalid driver record in {path}: {exc}")
    source = get_subject_source()

    async def _load() -> None:
        for subject in subjects:
            await source.add_subject(subject)

    _run(_load())
    typer.echo(f"Loaded {len(subjects)} driver(s)")


@drivers_app.command("show")
def drivers_show(subject_id: str) -> None:
    """Print the stored record for a driver."""
    source = get_subject_source()
    try:
        subject = _run(source.get_subject(subject_id))
    except DriverflowError:
        _fail("Driver not found")
    typer.echo(subject.model_dump_json(indent=2))


@app.command("health")
def health() -> None:
    """Report which provider integrations are configured."""
    report = integration_health(load_config())
    typer.echo(f"Overall: {report['overall']}")
    for name, service in report["services"].items():
        typer.echo(f"- {name}: {service['status']} ({service['message']})")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
