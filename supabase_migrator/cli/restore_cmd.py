"""CLI command handler for restoring a backup onto a project."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from supabase_migrator.cli.common import (
    build_migrator,
    cli,
    common_options,
    confirm,
    handle_exception,
    load_settings,
    run_operation,
)
from supabase_migrator.core.context import RestoreOptions
from supabase_migrator.exceptions import MigratorError
from supabase_migrator.utils.logging import log_with_context, setup_logger


@cli.command()
@common_options
@click.option(
    "--from",
    "backup_dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Backup directory to restore from",
)
@click.option("--to", "target", required=True, help="Target project alias or reference")
@click.option("--include-storage", is_flag=True, default=False, help="Restore storage objects")
@click.option("--include-functions", is_flag=True, default=False, help="Restore edge functions")
@click.option(
    "--parallel",
    type=click.IntRange(min=1),
    default=None,
    help="Number of concurrent object uploads",
)
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt")
def restore(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    backup_dir: str,
    target: str,
    include_storage: bool,
    include_functions: bool,
    parallel: int | None,
    yes: bool,
) -> None:
    """Restore a backup directory onto a project."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)

    try:
        endpoint = settings.endpoint(target)
        options = RestoreOptions(
            include_storage=include_storage,
            include_functions=include_functions,
            concurrency=parallel or settings.defaults.parallel_transfers,
        )
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)

    log_with_context(logging.INFO, "Restore Plan")
    log_with_context(logging.INFO, f"  From: {backup_dir}")
    log_with_context(logging.INFO, f"  Target: {target} ({endpoint.project_ref})")
    log_with_context(logging.INFO, f"  Include storage: {include_storage}")
    log_with_context(logging.INFO, f"  Include functions: {include_functions}")

    if not confirm("This will overwrite data in the target project. Proceed?", yes):
        log_with_context(logging.INFO, "Restore cancelled.")
        return

    migrator = build_migrator(settings)
    run_operation("restore", lambda: migrator.restore(Path(backup_dir), endpoint, options))
