"""Command line interface for inspecting specsync sessions and components."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from specsync import ComponentAnalyzer, default_workflows, get_repository, load_config
from specsync.documents import FileSystemDocumentSource, InMemoryDocumentSource
from specsync.errors import UnknownWorkflow
from specsync.snapshot import load_snapshot

app = typer.Typer(help="CLI for specsync sessions and component analysis")

# Command groups
session_app = typer.Typer(help="Commands for inspecting sessions")
workflow_app = typer.Typer(help="Commands for inspecting workflows")
component_app = typer.Typer(help="Commands for analyzing components")

app.add_typer(session_app, name="session")
app.add_typer(workflow_app, name="workflow")
app.add_typer(component_app, name="component")


@app.callback()
def main() -> None:
    """specsync CLI entry point."""
    config = load_config()
    logging.basicConfig(level=config.log_level.upper())


@session_app.command("list")
def session_list() -> None:
    """
    List all sessions with their workflow type and status.

    Example:
        specsync session list
        # Output: 0b6f...    component_spec    running
    """
    repo = get_repository()
    sessions = asyncio.run(repo.list_sessions())
    if not sessions:
        typer.echo("No sessions found")
        return
    for session in sessions:
        typer.echo(f"{session.id}\t{session.type}\t{session.status.value}")


@session_app.command("show")
def session_show(session_id: str) -> None:
    """
    Show a session's state and interaction history.

    Args:
        session_id: Session ID to inspect (get from 'session list')

    Example:
        specsync session show 0b6f...
        # Output: Session 0b6f... (component_spec): running
        #         - initialize: ok
        #         - generate_spec: pending
    """
    repo = get_repository()
    session = asyncio.run(repo.get_session(session_id))
    if session is None:
        typer.echo("Session not found")
        raise typer.Exit(code=1)
    typer.echo(f"Session {session.id} ({session.type}): {session.status.value}")
    if session.component_id:
        typer.echo(f"Component: {session.component_id}")
    if session.parent_session_id:
        typer.echo(f"Parent: {session.parent_session_id}")
    if session.child_session_ids:
        typer.echo(f"Children: {', '.join(session.child_session_ids)}")
    if session.state:
        typer.echo(f"State: {session.state}")
    for interaction in session.interactions:
        status = interaction.result.status.value if interaction.result else "pending"
        line = f"- {interaction.step}: {status}"
        if interaction.result and interaction.result.error_message:
            line += f" ({interaction.result.error_message.splitlines()[0]})"
        typer.echo(line)


@workflow_app.command("list")
def workflow_list() -> None:
    """List registered workflow types."""
    for definition in default_workflows().list():
        typer.echo(f"{definition.type}\t{definition.description}")


@workflow_app.command("steps")
def workflow_steps(workflow_type: str) -> None:
    """
    Show the steps and transitions of a workflow type.

    Example:
        specsync workflow steps component_spec
        # Output: initialize
        #           ok -> generate_spec
        #           error -> initialize
    """
    try:
        definition = default_workflows().get(workflow_type)
    except UnknownWorkflow as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    orchestrator = definition.orchestrator
    transitions = orchestrator.transitions
    for step in orchestrator.steps():
        marker = " (terminal)" if step == orchestrator.terminal_step else ""
        typer.echo(f"{step}{marker}")
        for (source, status), target in transitions.items():
            if source == step:
                typer.echo(f"  {status.value} -> {target}")


@component_app.command("analyze")
def component_analyze(
    snapshot_path: Path,
    root: Optional[Path] = typer.Option(
        None, help="Project root for reading design documents from disk"
    ),
) -> None:
    """
    Analyze the components described by a YAML snapshot.

    Prints each component's next action followed by its requirements,
    ``[x]`` for satisfied and ``[ ]`` for unsatisfied ones.

    Example:
        specsync component analyze snapshot.yaml
        # Output: Users (repository) - next: create_design
        #           [ ] design_file: File does not exist
    """
    if not snapshot_path.exists():
        typer.secho("Snapshot file does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        snapshot = load_snapshot(snapshot_path)
    except (yaml.YAMLError, ValidationError) as exc:
        typer.secho(f"Invalid snapshot: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    project = snapshot.project or load_config().project
    documents = FileSystemDocumentSource(root) if root else InMemoryDocumentSource(snapshot.documents)
    analyzer = ComponentAnalyzer(
        project_module_name=project.module_name,
        layout=project.layout,
        documents=documents,
    )
    components = analyzer.analyze(
        snapshot.to_components(), snapshot.files, snapshot.failures, edges=snapshot.edges()
    )

    if not components:
        typer.echo("No components found")
        return
    for component in components:
        next_action = component.component_status.next_action().value
        typer.echo(f"{component.name} ({component.type}) - next: {next_action}")
        for requirement in component.requirements:
            mark = "x" if requirement.satisfied else " "
            reason = requirement.details.get("reason") or requirement.details.get("status", "")
            typer.echo(f"  [{mark}] {requirement.name}: {reason}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
