"""
Command-line entry point for the Supabase project migration tool.

Importing the command modules registers their subcommands on the shared
click group.
"""

from __future__ import annotations

from supabase_migrator.cli import (  # noqa: F401
    backup_cmd,
    config_cmd,
    migrate_cmd,
    restore_cmd,
    storage_cmd,
)
from supabase_migrator.cli.common import cli, handle_exception

__all__ = ["cli", "handle_exception", "main"]


def main() -> None:
    """Run the CLI."""
    cli()


if __name__ == "__main__":
    main()
