"""Main Typer application — imports and registers all CLI commands.

Entry point: ``repotagger`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from repotagger.cli.commands.repos import (
    add_cmd,
    disable_cmd,
    enable_cmd,
    list_cmd,
    remove_cmd,
)
from repotagger.cli.commands.tag import (
    check_cmd,
    instance_id_cmd,
    remove_metadata_cmd,
    tag_all_cmd,
)
from repotagger.config import settings

app = typer.Typer(
    name="repotagger",
    help="repotagger: tag trusted update-site repositories with the instance id.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Override REPOTAGGER_LOG_LEVEL."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Registry management
app.command(name="list", help="List known repositories.")(list_cmd)
app.command(name="add", help="Register a repository.")(add_cmd)
app.command(name="remove", help="Forget a repository.")(remove_cmd)
app.command(name="enable", help="Enable a repository.")(enable_cmd)
app.command(name="disable", help="Disable a repository.")(disable_cmd)

# Tagging
app.command(name="tag-all", help="Tag all trusted repositories with the instance id.")(tag_all_cmd)
app.command(
    name="remove-metadata",
    help="Drop tagged artifact repositories under a removed metadata repository.",
)(remove_metadata_cmd)
app.command(name="check", help="Show how a location would be treated.")(check_cmd)
app.command(name="instance-id", help="Print the instance id.")(instance_id_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
