"""``repotagger list|add|remove|enable|disable`` — manage the JSON registry.

These commands stand in for a host's repository manager so the tagger
can be driven from a shell.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from repotagger.cli.commands._shared import (
    console,
    open_registry,
    parse_location,
    registry_option,
)
from repotagger.core.registry import RegistrySubset


def list_cmd(
    subset: RegistrySubset = typer.Option(
        RegistrySubset.ALL,
        "--subset",
        "-s",
        help="Which registry subset to show.",
    ),
    registry_path: Path = registry_option(),
) -> None:
    """List known repositories."""
    registry = open_registry(registry_path)
    locations = registry.list_locations(subset)
    if not locations:
        console.print("[dim]No repositories registered.[/dim]")
        return

    table = Table(title=f"Repositories ({subset.value})")
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Enabled", justify="center")
    table.add_column("Local", justify="center")
    for location in locations:
        enabled = "[green]Yes[/green]" if registry.is_enabled(location) else "[red]No[/red]"
        local = "Yes" if location.is_local else "No"
        table.add_row(str(location), enabled, local)
    console.print(table)


def add_cmd(
    uri: str = typer.Argument(..., help="Repository URI."),
    disabled: bool = typer.Option(False, "--disabled", help="Register as disabled."),
    registry_path: Path = registry_option(),
) -> None:
    """Register a repository."""
    location = parse_location(uri)
    registry = open_registry(registry_path)
    registry.add(location, enabled=not disabled)
    console.print(f"[green]Added[/green] {location}", soft_wrap=True)


def remove_cmd(
    uri: str = typer.Argument(..., help="Repository URI."),
    registry_path: Path = registry_option(),
) -> None:
    """Forget a repository."""
    location = parse_location(uri)
    registry = open_registry(registry_path)
    if not registry.remove(location):
        console.print(f"[yellow]Not registered:[/yellow] {location}", soft_wrap=True)
        raise typer.Exit(code=1)
    console.print(f"[green]Removed[/green] {location}", soft_wrap=True)


def _set_enabled(uri: str, registry_path: Path | None, enabled: bool) -> None:
    location = parse_location(uri)
    registry = open_registry(registry_path)
    try:
        registry.set_enabled(location, enabled)
    except KeyError:
        console.print(f"[yellow]Not registered:[/yellow] {location}", soft_wrap=True)
        raise typer.Exit(code=1)
    state = "Enabled" if enabled else "Disabled"
    console.print(f"[green]{state}[/green] {location}", soft_wrap=True)


def enable_cmd(
    uri: str = typer.Argument(..., help="Repository URI."),
    registry_path: Path = registry_option(),
) -> None:
    """Enable a registered repository."""
    _set_enabled(uri, registry_path, True)


def disable_cmd(
    uri: str = typer.Argument(..., help="Repository URI."),
    registry_path: Path = registry_option(),
) -> None:
    """Disable a registered repository."""
    _set_enabled(uri, registry_path, False)
