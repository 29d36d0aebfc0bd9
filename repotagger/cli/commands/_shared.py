"""Shared helpers for repotagger CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from repotagger.config import settings
from repotagger.core.registry import JsonFileRegistry, RegistryUnavailableError
from repotagger.models.locations import MalformedLocationError, RepositoryLocation

console = Console()


def registry_option() -> Path:
    return typer.Option(
        None,
        "--registry",
        "-r",
        help="Path to the registry JSON file (default: REPOTAGGER_REGISTRY_PATH).",
    )


def open_registry(path: Path | None) -> JsonFileRegistry:
    """Open the JSON registry, exiting with code 1 if it is unreadable."""
    registry = JsonFileRegistry(path or settings.registry_path)
    try:
        len(registry)
    except RegistryUnavailableError as exc:
        console.print(f"[bold red]Registry unavailable:[/bold red] {exc}")
        raise typer.Exit(code=1)
    return registry


def parse_location(uri: str) -> RepositoryLocation:
    """Parse *uri*, exiting with code 2 if it is not a valid URI."""
    try:
        return RepositoryLocation.parse(uri)
    except MalformedLocationError as exc:
        console.print(f"[bold red]Malformed location:[/bold red] {exc}", soft_wrap=True)
        raise typer.Exit(code=2)
