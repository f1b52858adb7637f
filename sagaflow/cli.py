"""Command line interface for sagaflow."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from sagaflow.errors import BrokerUnavailableError, NotFoundError
from sagaflow.persistence import InMemoryRunRepository, RunStatus
from sagaflow.service import OrchestratorService, build_coordinator

app = typer.Typer(help="CLI for sagaflow workflows and sagas")

# Command groups
workflow_app = typer.Typer(help="Commands for workflow definitions and runs")
execution_app = typer.Typer(help="Commands for inspecting run history")
coordinator_app = typer.Typer(help="Commands for the queue-driven saga coordinator")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")
app.add_typer(coordinator_app, name="coordinator")


@app.callback()
def main(
    log_level: str = typer.Option("INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """sagaflow CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _service() -> OrchestratorService:
    return OrchestratorService.from_config()


def _echo_history_hint(service: OrchestratorService) -> None:
    if isinstance(service.repository, InMemoryRunRepository):
        typer.echo(
            "Run history is kept in memory for a single process; set "
            "SAGAFLOW_DATABASE_URL (e.g. sqlite://sagaflow.db) to inspect runs across invocations"
        )


@workflow_app.command("list")
def workflow_list() -> None:
    """List the registered workflow definitions."""
    for name in _service().list_workflows():
        typer.echo(name)


@workflow_app.command("show")
def workflow_show(name: str) -> None:
    """
    Print a workflow definition as JSON.

    Example:
        sagaflow workflow show PlaceOrder
    """
    try:
        definition = _service().get_workflow_definition(name)
    except NotFoundError as e:
        typer.echo(str(e))
        raise typer.Exit(code=1)
    typer.echo(json.dumps(definition.to_document(), indent=2))


@workflow_app.command("run")
def workflow_run(
    name: str,
    input: Optional[str] = typer.Option(None, "--input", help="JSON input payload"),
    file: Optional[Path] = typer.Option(None, "--file", help="Path to a JSON input payload"),
) -> None:
    """
    Execute a workflow synchronously and print its result.

    Exits with code 1 when the run fails.

    Example:
        sagaflow workflow run PlaceOrder --file order.json
        sagaflow workflow run PlaceOrder --input '{"id": "ORDER-001", "item": "Laptop", "quantity": 2}'
    """
    if file is not None:
        payload = json.loads(file.read_text())
    elif input is not None:
        payload = json.loads(input)
    else:
        payload = {}

    try:
        result = asyncio.run(_service().execute(name, payload))
    except NotFoundError as e:
        typer.echo(str(e))
        raise typer.Exit(code=1)

    typer.echo(result.model_dump_json(indent=2))
    if result.status is not RunStatus.COMPLETED:
        raise typer.Exit(code=1)


@execution_app.command("list")
def execution_list() -> None:
    """
    List retained workflow runs with their status.

    Example:
        sagaflow execution list
        # Output: exec_3f2a...    PlaceOrder    completed    12.4ms
    """
    service = _service()
    runs = asyncio.run(service.list_runs())
    if not runs:
        typer.echo("No executions found")
        _echo_history_hint(service)
        return
    for run in runs:
        duration = f"{run.duration_ms:.1f}ms" if run.duration_ms is not None else "-"
        typer.echo(f"{run.id}\t{run.workflow_name}\t{run.status.value}\t{duration}")


@execution_app.command("show")
def execution_show(run_id: str) -> None:
    """Show status, error and activity history of one run."""
    service = _service()
    try:
        run = asyncio.run(service.get_run(run_id))
    except NotFoundError:
        typer.echo("Execution not found")
        _echo_history_hint(service)
        raise typer.Exit(code=1)
    typer.echo(f"Execution {run.id} ({run.workflow_name}): {run.status.value}")
    if run.error_message:
        typer.echo(f"Error: {run.error_message}")
    if run.output_payload is not None:
        typer.echo(f"Output: {json.dumps(run.output_payload)}")
    for record in run.history:
        typer.echo(
            f"- {record.name} ({record.type}): {record.status}"
            + (f" [{record.detail}]" if record.detail else "")
        )


@coordinator_app.command("start")
def coordinator_start(
    lifespan: Optional[float] = typer.Option(
        None, help="Stop consuming after this many seconds (default: run indefinitely)"
    ),
) -> None:
    """
    Run the saga coordinator against the configured broker.

    Exits with code 1 if the broker cannot be reached within the retry budget.
    """
    coordinator = build_coordinator()

    async def _run() -> None:
        if not await coordinator.connect():
            raise BrokerUnavailableError(
                f"Broker unreachable after {coordinator.connect_retries} attempts"
            )
        try:
            await coordinator.start(lifespan=lifespan)
        finally:
            await coordinator.close()

    try:
        asyncio.run(_run())
    except BrokerUnavailableError as e:
        typer.echo(str(e))
        raise typer.Exit(code=1)


@app.command("serve")
def serve(host: str = "0.0.0.0", port: int = 3003) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from sagaflow.api import create_app
    from sagaflow.transports import get_transport

    service = OrchestratorService.from_config(transport=get_transport())
    uvicorn.run(create_app(service), host=host, port=port)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
