"""CLI — Configuration inspection commands."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.syntax import Syntax

app = typer.Typer(help="Inspect the effective configuration.")
console = Console()


@app.command("show")
def show_config() -> None:
    """Print the effective settings (files + environment) as JSON."""
    from contact_store.config import get_settings

    json_str = json.dumps(get_settings().model_dump(mode="json"), indent=2)
    console.print(Syntax(json_str, "json"))


@app.command("path")
def storage_path() -> None:
    """Print where the contact collection is stored."""
    from contact_store.config import get_settings

    storage = get_settings().storage
    if storage.backend == "memory":
        typer.echo("memory (not persisted)")
    elif storage.backend == "file":
        typer.echo(str(storage.file_path))
    else:
        typer.echo(str(storage.db_path))
    typer.echo(f"key: {storage.key}")
