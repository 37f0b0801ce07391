"""Command line interface for inspecting workflow runs."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from antechamber.config import load_config
from antechamber.logging import configure_logging
from antechamber.persistence import get_repository

app = typer.Typer(help="CLI for Antechamber workflow runs")

run_app = typer.Typer(help="Commands for inspecting workflow runs")
app.add_typer(run_app, name="run")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Log level, defaults to the configured one"
    ),
) -> None:
    """Antechamber CLI entry point."""
    configure_logging(log_level or load_config().log_level)


@run_app.command("list")
def run_list() -> None:
    """
    List all workflow runs with their current status.

    Example:
        antechamber run list
        # Output: run-123    sub-1    generate_onboarding_draft    completed
    """
    repo = get_repository()
    runs = asyncio.run(repo.list_runs())
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.id}\t{run.submission_id}\t{run.workflow_name}\t{run.status}")


@run_app.command("show")
def run_show(run_id: str) -> None:
    """
    Show a run's status and the step-by-step execution history.

    Args:
        run_id: Run ID to inspect (get from 'run list')

    Example:
        antechamber run show run-123
        # Output: Run run-123 (generate_onboarding_draft): failed
        #         Error: Step "crawl" timed out after 180000ms
        #         - validate: completed, 1 attempt(s) (...)
        #         - crawl: failed, 3 attempt(s) (...)
    """
    repo = get_repository()
    run = asyncio.run(repo.load_run(run_id))
    if run is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    typer.echo(f"Run {run.id} ({run.workflow_name}): {run.status}")
    typer.echo(f"Submission: {run.submission_id}")
    if run.error:
        typer.echo(f"Error: {run.error}")
    for step in run.steps:
        line = f"- {step.name}: {step.status}, {step.attempts} attempt(s)"
        if step.started_at or step.completed_at:
            line += f" ({step.started_at} -> {step.completed_at})"
        if step.error:
            line += f" [{step.error}]"
        typer.echo(line)


if __name__ == "__main__":
    app()
