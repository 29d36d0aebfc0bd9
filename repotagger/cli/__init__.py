"""repotagger CLI — Typer-based command-line interface.

Provides the ``repotagger`` command with subcommands for managing a local
repository registry, tagging it with the instance id, and cleaning up
after removed metadata repositories.

All output uses Rich for formatted terminal display.
"""
