"""Command line interface for inspecting stepwise workflows."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from stepwise.definitions import WorkflowDefinition, load_definition
from stepwise.forms import ModelFormBinding
from stepwise.gate import ValidationGate
from stepwise.persistence import get_adapter

app = typer.Typer(help="CLI for stepwise workflows")

# Command groups
session_app = typer.Typer(help="Commands for managing persisted sessions")
flow_app = typer.Typer(help="Commands for workflow definitions")

app.add_typer(session_app, name="session")
app.add_typer(flow_app, name="flow")


@app.callback()
def main() -> None:
    """Stepwise CLI entry point."""
    pass


@session_app.command("list")
def session_list() -> None:
    """
    List storage keys holding persisted form data.

    Reads the storage configured through STEPWISE_STORAGE_URL or the config
    file.

    Example:
        stepwise session list
        # Output: seller-onboarding    3 field(s)
    """
    adapter = get_adapter()

    async def _collect() -> list[tuple[str, int]]:
        rows = []
        for key in await adapter.keys():
            data = await adapter.load(key) or {}
            rows.append((key, len(data)))
        return rows

    rows = asyncio.run(_collect())
    if not rows:
        typer.echo("No sessions found")
        return
    for key, count in rows:
        typer.echo(f"{key}\t{count} field(s)")


@session_app.command("show")
def session_show(key: str) -> None:
    """
    Show the form data persisted under KEY as JSON.

    Example:
        stepwise session show wizard-form-data
    """
    adapter = get_adapter()
    data = asyncio.run(adapter.load(key))
    if data is None:
        typer.echo("Session not found")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(data, indent=2, sort_keys=True))


@session_app.command("clear")
def session_clear(key: str) -> None:
    """Delete the form data persisted under KEY."""
    adapter = get_adapter()
    asyncio.run(adapter.delete(key))
    typer.echo(f"Cleared session {key}")


def _load_or_exit(path: Path) -> WorkflowDefinition:
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        return load_definition(path)
    except (ValidationError, yaml.YAMLError) as exc:
        typer.secho(f"Invalid workflow definition: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@flow_app.command("inspect")
def flow_inspect(path: Path) -> None:
    """
    Print the steps of a YAML workflow definition.

    Example:
        stepwise flow inspect ./onboarding.yaml
        # Output: onboarding - Buyer onboarding
        #         1. profile: Your profile [fields: name, email]
        #         2. interests: Interests (optional)
    """
    definition = _load_or_exit(path)
    typer.echo(f"{definition.name} - {definition.description or 'No description'}")
    for index, step in enumerate(definition.steps, start=1):
        line = f"{index}. {step.id}: {step.title or step.id}"
        if step.optional:
            line += " (optional)"
        if step.fields:
            line += f" [fields: {', '.join(step.fields)}]"
        typer.echo(line)


@flow_app.command("check")
def flow_check(
    path: Path,
    data: Optional[str] = typer.Option(None, help="JSON object with form data"),
) -> None:
    """
    Run every step's validation gate against DATA.

    Exits with code 1 when any step fails.

    Example:
        stepwise flow check ./onboarding.yaml --data '{"name": "Ada"}'
        # Output: profile: FAIL (email: Field required)
        #         interests: PASS
    """
    definition = _load_or_exit(path)
    try:
        form_data = json.loads(data) if data else {}
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid JSON data: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(form_data, dict):
        typer.secho("Form data must be a JSON object", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        steps = definition.to_steps()
        model = definition.resolve_form_model()
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    binding = ModelFormBinding(model, form_data) if model is not None else None
    gate = ValidationGate(binding)

    async def _run() -> list[tuple[str, bool, dict[str, str]]]:
        results = []
        for step in steps:
            passed = await gate.check(step)
            errors = {}
            if binding is not None:
                errors = {f: binding.errors[f] for f in step.fields if f in binding.errors}
            results.append((step.id, passed, errors))
        return results

    failed = False
    for step_id, passed, errors in asyncio.run(_run()):
        if passed:
            typer.echo(f"{step_id}: PASS")
            continue
        failed = True
        detail = "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        typer.echo(f"{step_id}: FAIL" + (f" ({detail})" if detail else ""))

    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
