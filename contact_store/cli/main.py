"""Contact Store CLI — Entry point.

Usage:
    contact-store list [--favorites] [--json]
    contact-store show <contact_id>
    contact-store add -f name=Ada -f phone=123
    contact-store update <contact_id> -f phone=456
    contact-store remove <contact_id>
    contact-store favorite <contact_id>
    contact-store reset [--yes]
    contact-store config show
    contact-store config path
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from contact_store.cli.commands import config
from contact_store.config import LoggingConfig, Settings, get_settings, override_settings
from contact_store.exceptions import ContactStoreError
from contact_store.logging import configure_logging
from contact_store.models import Contact, HydrationSource, MutationResult
from contact_store.store import ContactStore

app = typer.Typer(
    name="contact-store",
    help="Contact Store — inspect and edit the durable contact collection.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()
err_console = Console(stderr=True)

app.add_typer(config.app, name="config")

T = TypeVar("T")


@app.callback()
def main_callback(
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="YAML configuration file.", exists=True, dir_okay=False
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override logging.level."),
) -> None:
    settings = Settings.load(config_file=config_file)
    if log_level:
        try:
            settings.logging = LoggingConfig.model_validate(
                {**settings.logging.model_dump(), "level": log_level.lower()}
            )
        except ValidationError:
            raise typer.BadParameter(
                f"{log_level!r} is not one of debug, info, warning, error, critical.",
                param_hint="--log-level",
            ) from None
    override_settings(settings)
    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )


def _run(operation: Callable[[ContactStore], Awaitable[T]], *, writable: bool = False) -> T:
    """Open the configured store, hydrate it, run *operation*, close it."""

    async def runner() -> T:
        store = ContactStore.from_settings(get_settings())
        try:
            hydration = await store.initialize()
            if hydration.source is HydrationSource.FALLBACK:
                err_console.print(
                    f"[yellow]Stored contacts unreadable, showing seed data: {hydration.error}[/yellow]"
                )
                if writable:
                    err_console.print(
                        "[red]Refusing to overwrite unreadable data. "
                        "Run 'contact-store reset' to start over.[/red]"
                    )
                    raise typer.Exit(1)
            return await operation(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except ContactStoreError as exc:
        err_console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)
    except ValidationError as exc:
        err_console.print(f"[red]Invalid contact data: {exc}[/red]")
        raise typer.Exit(1)


def _parse_fields(fields: list[str], data: str | None) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    if data:
        try:
            loaded = json.loads(data)
        except json.JSONDecodeError as exc:
            err_console.print(f"[red]Invalid JSON in --data: {exc}[/red]")
            raise typer.Exit(1)
        if not isinstance(loaded, dict):
            err_console.print("[red]--data must be a JSON object.[/red]")
            raise typer.Exit(1)
        parsed.update(loaded)
    for item in fields:
        name, sep, value = item.partition("=")
        if not sep or not name:
            err_console.print(f"[red]Expected key=value, got '{item}'.[/red]")
            raise typer.Exit(1)
        parsed[name] = value
    return parsed


def _report(result: MutationResult, contact_id: str | None = None) -> None:
    if not result.changed:
        err_console.print(f"[red]Contact not found: {contact_id}[/red]")
        raise typer.Exit(1)
    if result.error is not None:
        err_console.print(f"[red]Change not saved: {result.error.message}[/red]")
        raise typer.Exit(1)


def _print_table(contacts: tuple[Contact, ...], title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Favorite")
    table.add_column("Created")
    table.add_column("Other fields")

    for contact in contacts:
        extra = contact.extra_fields
        name = extra.pop("name", "")
        table.add_row(
            contact.id,
            str(name),
            "[yellow]★[/yellow]" if contact.favorite else "",
            contact.created_at,
            ", ".join(f"{k}={v}" for k, v in extra.items()),
        )
    console.print(table)


@app.command("list")
def list_contacts(
    favorites: bool = typer.Option(False, "--favorites", help="Only favorite contacts."),
    json_output: bool = typer.Option(False, "--json"),
) -> None:
    """List contacts in collection order."""

    async def operation(store: ContactStore) -> tuple[Contact, ...]:
        return store.favorites() if favorites else store.contacts

    contacts = _run(operation)
    if json_output:
        typer.echo(json.dumps([c.to_dict() for c in contacts], indent=2))
        return
    _print_table(contacts, "Favorites" if favorites else "Contacts")


@app.command("show")
def show_contact(contact_id: str = typer.Argument()) -> None:
    """Show one contact as JSON."""

    async def operation(store: ContactStore) -> Contact | None:
        return store.get(contact_id)

    contact = _run(operation)
    if contact is None:
        err_console.print(f"[red]Contact not found: {contact_id}[/red]")
        raise typer.Exit(1)
    console.print(Syntax(json.dumps(contact.to_dict(), indent=2), "json"))


@app.command("add")
def add_contact(
    field: list[str] = typer.Option([], "--field", "-f", help="Field as key=value. Repeatable."),
    data: str | None = typer.Option(None, "--data", help="Fields as a JSON object."),
) -> None:
    """Add a contact."""
    fields = _parse_fields(field, data)

    async def operation(store: ContactStore) -> MutationResult:
        return await store.add(fields)

    result = _run(operation, writable=True)
    _report(result)
    assert result.contact is not None
    console.print(f"[green]Contact added:[/green] {result.contact.id}")


@app.command("update")
def update_contact(
    contact_id: str = typer.Argument(),
    field: list[str] = typer.Option([], "--field", "-f", help="Field as key=value. Repeatable."),
    data: str | None = typer.Option(None, "--data", help="Fields as a JSON object."),
) -> None:
    """Merge fields into an existing contact."""
    fields = _parse_fields(field, data)
    if not fields:
        err_console.print("[red]Nothing to update: pass --field or --data.[/red]")
        raise typer.Exit(1)

    async def operation(store: ContactStore) -> MutationResult:
        return await store.update(contact_id, fields)

    _report(_run(operation, writable=True), contact_id)
    console.print(f"[green]Contact updated:[/green] {contact_id}")


@app.command("remove")
def remove_contact(contact_id: str = typer.Argument()) -> None:
    """Delete a contact."""

    async def operation(store: ContactStore) -> MutationResult:
        return await store.remove(contact_id)

    _report(_run(operation, writable=True), contact_id)
    console.print(f"[green]Contact removed:[/green] {contact_id}")


@app.command("favorite")
def toggle_favorite(contact_id: str = typer.Argument()) -> None:
    """Flip a contact's favorite flag."""

    async def operation(store: ContactStore) -> MutationResult:
        return await store.toggle_favorite(contact_id)

    result = _run(operation, writable=True)
    _report(result, contact_id)
    assert result.contact is not None
    state = "on" if result.contact.favorite else "off"
    console.print(f"[green]Favorite {state}:[/green] {contact_id}")


@app.command("reset")
def reset_contacts(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Replace the stored collection with the seed set."""
    if not yes:
        typer.confirm("Discard all stored contacts and restore the seed set?", abort=True)

    async def operation(store: ContactStore) -> int:
        await store.storage.delete(store.key)
        result = await store.refresh()
        if result.error is not None:
            err_console.print(f"[red]Reset failed: {result.error.message}[/red]")
            raise typer.Exit(1)
        return result.count

    count = _run(operation)
    console.print(f"[green]Restored {count} seed contacts.[/green]")


if __name__ == "__main__":
    app()
