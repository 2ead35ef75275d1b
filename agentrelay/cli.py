"""Command line interface for running agentrelay jobs."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import typer
from pydantic import ValidationError

from agentrelay import Orchestrator, RemoteAgentClient, load_config
from agentrelay.contracts import AsyncTask
from agentrelay.exceptions import PipelineDefinitionError, UnknownAgentError

app = typer.Typer(help="CLI for agentrelay orchestration")

# Command groups
agent_app = typer.Typer(help="Commands for inspecting remote agents")
config_app = typer.Typer(help="Commands for inspecting configuration")

app.add_typer(agent_app, name="agent")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """agentrelay CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@agent_app.command("list")
def agent_list() -> None:
    """List the agents known to the configuration."""
    config = load_config()
    for name, endpoint in config.agents.items():
        typer.echo(f"{name}\t{endpoint.agent_id}\t{endpoint.base_url}")


@agent_app.command("card")
def agent_card(agent_name: str) -> None:
    """
    Fetch the discovery card of a remote agent.

    Tries the A2A card route first and the plain HTTP route second.

    Example:
        agentrelay agent card web-search
    """

    async def _fetch():
        async with RemoteAgentClient(load_config()) as client:
            return await client.get_agent_card(agent_name)

    try:
        card = asyncio.run(_fetch())
    except UnknownAgentError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if card is None:
        typer.echo("Agent card unavailable")
        raise typer.Exit(code=1)
    typer.echo(card.model_dump_json(indent=2, exclude_none=True))


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""
    typer.echo(load_config().model_dump_json(indent=2))


def _print_task(task: AsyncTask) -> None:
    typer.echo(f"Task {task.id}: {task.status}")
    if task.error:
        typer.secho(f"Error: {task.error}", fg=typer.colors.RED)
    if task.result is not None:
        typer.echo(json.dumps(task.result, indent=2, default=str))


async def _run_job(request: dict, interval: float, timeout: Optional[float]) -> int:
    config = load_config()
    async with RemoteAgentClient(config) as client:
        orchestrator = Orchestrator(client, config=config)
        task = await orchestrator.submit(request, initiated_by="cli")
        typer.echo(f"Task {task.id} submitted ({', '.join(task.phases)})")

        last = None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None
        while not task.is_terminal:
            if deadline is not None and loop.time() > deadline:
                await orchestrator.cancel(task.id)
                typer.secho("Timed out; cancelling", fg=typer.colors.RED)
                await orchestrator.wait(task.id)
                break
            await asyncio.sleep(interval)
            task = orchestrator.get_task(task.id)
            snapshot = (task.current_phase, task.progress)
            if snapshot != last:
                typer.echo(f"  [{task.progress:3d}%] {task.current_phase}")
                last = snapshot

        task = orchestrator.get_task(task.id)
        _print_task(task)
        execution = orchestrator.get_execution(task.workflow_execution_id)
        for step in execution.steps:
            duration = f" {step.duration}ms" if step.duration is not None else ""
            typer.echo(
                f"- #{step.step_number} {step.agent_name} {step.operation}: "
                f"{step.status}{duration}"
            )
        return 0 if task.status == "completed" else 1


@app.command("run")
def run(
    job_type: str = typer.Argument(..., help="Job type, e.g. deep-research or analyze"),
    data: Optional[str] = typer.Option(None, help="JSON payload for the job"),
    topic: Optional[str] = typer.Option(None, help="Research topic"),
    query: Optional[str] = typer.Option(None, help="Search query"),
    depth: Optional[str] = typer.Option(None, help="basic, comprehensive or expert"),
    source: Optional[List[str]] = typer.Option(None, help="Research source (repeatable)"),
    parallel: bool = typer.Option(False, help="Fan out search across sources"),
    audience: Optional[str] = typer.Option(None, help="Audience type for summaries"),
    interval: float = typer.Option(0.5, help="Progress polling interval in seconds"),
    timeout: Optional[float] = typer.Option(None, help="Cancel the job after this many seconds"),
) -> None:
    """
    Run a job and follow its progress until it finishes.

    Example:
        agentrelay run deep-research --topic "solid state batteries" --depth expert
        agentrelay run analyze --data '{"sales": [1, 2, 3]}'
    """
    request = {
        "type": job_type,
        "topic": topic,
        "query": query,
        "audience_type": audience,
        "options": {"depth": depth, "sources": source or None, "parallel_tasks": parallel},
    }
    if data is not None:
        try:
            request["data"] = json.loads(data)
        except ValueError:
            request["data"] = data

    try:
        code = asyncio.run(_run_job(request, interval, timeout))
    except (ValidationError, PipelineDefinitionError) as exc:
        typer.secho(f"Invalid request: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    raise typer.Exit(code=code)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
