"""``repotagger tag-all|remove-metadata|check|instance-id`` — tagging commands."""

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
from repotagger.config import settings
from repotagger.core.instance_id import (
    FileInstanceTagProvider,
    InstanceTagProvider,
    InstanceTagUnavailableError,
    StaticTagProvider,
)
from repotagger.core.matchers import TagMatcher, TrustedHostMatcher
from repotagger.core.registry import JsonFileRegistry
from repotagger.core.tagger import RepositoryIdentityTagger
from repotagger.models.events import EventKind, RepositoryEvent, RepositoryType
from repotagger.models.locations import InvalidInstanceTagError


def _tag_option() -> str:
    return typer.Option(
        None,
        "--tag",
        "-t",
        help="Instance tag to use instead of the persisted instance id.",
    )


def _instance_id_option() -> Path:
    return typer.Option(
        None,
        "--instance-id-file",
        help="Path to the instance id file (default: REPOTAGGER_INSTANCE_ID_PATH).",
    )


def _provider(tag: str | None, instance_id_path: Path | None) -> InstanceTagProvider:
    try:
        if tag:
            return StaticTagProvider(tag, settings.tag_value_pattern)
        provider = FileInstanceTagProvider(
            instance_id_path or settings.instance_id_path, settings.tag_value_pattern
        )
        provider.current_tag()
        return provider
    except InvalidInstanceTagError as exc:
        console.print(f"[bold red]Invalid instance tag:[/bold red] {exc}")
        raise typer.Exit(code=2)
    except InstanceTagUnavailableError as exc:
        console.print(f"[bold red]Instance id unavailable:[/bold red] {exc}", soft_wrap=True)
        raise typer.Exit(code=1)


def _tagger(registry: JsonFileRegistry, provider: InstanceTagProvider) -> RepositoryIdentityTagger:
    return RepositoryIdentityTagger(registry, provider, settings=settings)


def tag_all_cmd(
    tag: str = _tag_option(),
    instance_id_path: Path = _instance_id_option(),
    registry_path: Path = registry_option(),
) -> None:
    """Tag every trusted, non-local or disabled repository."""
    registry = open_registry(registry_path)
    provider = _provider(tag, instance_id_path)
    report = _tagger(registry, provider).tag_all()

    if not report.registry_available:
        console.print("[bold red]Registry became unavailable; pass abandoned.[/bold red]")
        raise typer.Exit(code=1)
    if not report.instance_tag_available:
        console.print("[bold red]Instance id became unavailable; pass abandoned.[/bold red]")
        raise typer.Exit(code=1)

    if report.tagged:
        table = Table(title="Tagged repositories")
        table.add_column("Original", style="dim", no_wrap=True)
        table.add_column("Tagged", style="cyan", no_wrap=True)
        table.add_column("Enabled", justify="center")
        for item in report.tagged:
            table.add_row(item.original, item.tagged, "Yes" if item.enabled else "No")
        console.print(table)
    for item in report.failed:
        console.print(f"[yellow]Failed:[/yellow] {item.location}: {item.reason}", soft_wrap=True)

    console.print(
        f"Tagged: [bold]{len(report.tagged)}[/bold]  "
        f"Skipped: {report.skipped}  Failed: {len(report.failed)}"
    )


def remove_metadata_cmd(
    uri: str = typer.Argument(..., help="URI of the removed metadata repository."),
    registry_path: Path = registry_option(),
) -> None:
    """Remove tagged artifact repositories derived from a metadata repository."""
    location = parse_location(uri)
    registry = open_registry(registry_path)
    # Cleanup never reads the tag, so the file provider stays untouched.
    provider = FileInstanceTagProvider(settings.instance_id_path, settings.tag_value_pattern)
    tagger = _tagger(registry, provider)
    event = RepositoryEvent(
        kind=EventKind.REMOVED,
        repository_type=RepositoryType.METADATA,
        location=location,
    )
    removed = tagger.on_repository_removed(event)
    for item in removed:
        console.print(f"[green]Removed[/green] {item}", soft_wrap=True)
    console.print(f"Removed: [bold]{len(removed)}[/bold]")


def check_cmd(
    uri: str = typer.Argument(..., help="Repository URI to inspect."),
    tag: str = _tag_option(),
) -> None:
    """Show how the tagger would treat a location, without touching a registry."""
    location = parse_location(uri)
    hosts = TrustedHostMatcher.from_settings(settings)
    tags = TagMatcher.from_settings(settings)
    scheme_ok = location.scheme.lower() in settings.tagged_schemes
    trusted = hosts.matches(location.host)
    tagged = tags.contains_tag(location.path)

    console.print(f"[bold]Location:[/bold] {location}", soft_wrap=True)
    console.print(f"[bold]Scheme:[/bold]   {'taggable' if scheme_ok else 'ignored'}")
    console.print(f"[bold]Trusted:[/bold]  {'yes' if trusted else 'no'}")
    console.print(f"[bold]Tagged:[/bold]   {'yes' if tagged else 'no'}")
    if scheme_ok and trusted and not tagged and tag:
        provider = _provider(tag, None)
        new_path = tags.tagged_path(location.path, provider.current_tag())
        console.print(f"[bold]Would be:[/bold] {location.with_path(new_path)}", soft_wrap=True)


def instance_id_cmd(
    instance_id_path: Path = _instance_id_option(),
) -> None:
    """Print the instance id, generating it on first use."""
    provider = _provider(None, instance_id_path)
    console.print(provider.current_tag())
