"""Command line interface for hookflow."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from hookflow.config import ConfigurationError, HookflowConfig, load_config
from hookflow.discovery import discover_workflows
from hookflow.engine import WorkflowEngine
from hookflow.jobs import build_job_manifest
from hookflow.queues import InMemoryQueue
from hookflow.requirements import evaluate
from hookflow.stages import iter_stages

app = typer.Typer(help="CLI for hookflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
job_app = typer.Typer(help="Commands for managing job handlers")
worker_app = typer.Typer(help="Commands for running queue workers")

app.add_typer(workflow_app, name="workflow")
app.add_typer(job_app, name="job")
app.add_typer(worker_app, name="worker")


@app.callback()
def main(
    log_level: str = typer.Option("INFO", help="Logging level for hookflow output"),
) -> None:
    """hookflow CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_data(data: Optional[str]) -> Any:
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid JSON for --data: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _load_config(config_path: Optional[Path]) -> HookflowConfig:
    return load_config(str(config_path) if config_path else None)


def _workflows_root(path: Optional[Path], config_path: Optional[Path]) -> Path:
    if path is not None:
        return path.expanduser().resolve()
    config = _load_config(config_path)
    return (config.workflows_directory or Path.cwd()).expanduser().resolve()


@workflow_app.command("discover")
def workflow_discover(
    path: Optional[Path] = typer.Argument(None, help="Workflows root directory"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """
    List workflow definitions found below a directory.

    Example:
        hookflow workflow discover ./workflows
        # Output: deploy - Deploy application
        #           build (build/run)
        #             notify (mail/send)
    """
    search_path = _workflows_root(path, config_path)
    typer.echo(f"Discovering workflows in: {search_path}")

    if not search_path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    workflows = asyncio.run(discover_workflows(search_path))
    if not workflows:
        typer.echo("No workflows discovered.")
        return

    for workflow in workflows:
        typer.echo(f"{workflow.id} - {workflow.name or 'No name'}")
        for depth, stage in iter_stages(workflow.stages):
            typer.echo(f"{'  ' * (depth + 1)}{stage.name} ({stage.job})")


@workflow_app.command("check")
def workflow_check(
    workflow_id: str,
    data: Optional[str] = typer.Option(None, help="Trigger data as JSON"),
    path: Optional[Path] = typer.Option(None, help="Workflows root directory"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """
    Evaluate requirements of matching workflows without dispatching anything.

    Example:
        hookflow workflow check deploy --data '{"env": "prod"}'
    """
    payload = _parse_data(data)
    workflows = asyncio.run(discover_workflows(_workflows_root(path, config_path)))
    matches = [workflow for workflow in workflows if workflow.id == workflow_id]
    if not matches:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    for workflow in matches:
        result = evaluate(workflow, payload)
        label = workflow.name or workflow.id
        if result.ok:
            typer.echo(f"{label}: requirements satisfied")
        else:
            typer.echo(f"{label}: {result.reason}")


@workflow_app.command("trigger")
def workflow_trigger(
    workflow_id: str,
    data: Optional[str] = typer.Option(None, help="Trigger data as JSON"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
    drain: bool = typer.Option(
        False, help="Run queued jobs in-process (in-memory queue only)"
    ),
    wait: Optional[float] = typer.Option(
        None, help="Seconds to keep dispatching continuations from worker outcomes"
    ),
) -> None:
    """
    Trigger a workflow with the given data.

    Example:
        hookflow workflow trigger deploy --data '{"env": "prod"}'
        hookflow workflow trigger deploy --data '{"env": "prod"}' --drain
        hookflow workflow trigger deploy --data '{"env": "prod"}' --wait 60
    """
    payload = _parse_data(data)
    engine = WorkflowEngine(_load_config(config_path))

    async def _run() -> tuple[int, int]:
        await engine.init()
        try:
            dispatched = await engine.register(workflow_id, payload)
            executed = 0
            if drain and isinstance(engine.queue, InMemoryQueue):
                executed = await engine.queue.run_pending()
            if wait:
                await asyncio.sleep(wait)
            return dispatched, executed
        finally:
            await engine.close()

    try:
        dispatched, executed = asyncio.run(_run())
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"Dispatched {dispatched} workflow definition(s) for {workflow_id}")
    if drain:
        typer.echo(f"Executed {executed} job(s)")


@job_app.command("discover")
def job_discover(
    path: Optional[Path] = typer.Argument(None, help="Jobs root directory"),
    namespace: Optional[str] = typer.Option(None, help="Dependency package prefix"),
) -> None:
    """
    List job types derived from the modules below a directory.

    Example:
        hookflow job discover ./jobs
        # Output: mail/send - ./jobs/mail/send.py
    """
    search_path = (path or Path.cwd()).expanduser().resolve()
    typer.echo(f"Discovering jobs in: {search_path}")

    try:
        manifest = build_job_manifest(search_path, namespace=namespace)
    except FileNotFoundError:
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if not manifest:
        typer.echo("No jobs discovered.")
        return

    for job_type, module_path in manifest.items():
        typer.echo(f"{job_type} - {module_path}")


@worker_app.command("run")
def worker_run(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
    lifespan: Optional[float] = typer.Option(
        None, help="Worker timeout in seconds (default: run indefinitely)"
    ),
) -> None:
    """
    Run a worker executing queued jobs.

    Outcomes are published back to the queue; the process that triggered the
    workflow dispatches the onSuccess/onFail children.

    Example:
        hookflow worker run --lifespan 300
    """
    engine = WorkflowEngine(_load_config(config_path))

    async def _run() -> None:
        await engine.init(consume_outcomes=False)
        try:
            await engine.queue.process(lifespan=lifespan)
        finally:
            await engine.close()

    try:
        typer.echo(f"Starting worker on queue: {engine.config.queue.name}")
        asyncio.run(_run())
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
