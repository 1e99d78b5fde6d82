"""CLI command handler for writing project backups."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from supabase_migrator.cli.common import (
    build_migrator,
    cli,
    common_options,
    handle_exception,
    load_settings,
    run_operation,
)
from supabase_migrator.core.context import BackupOptions
from supabase_migrator.core.state import RunReport
from supabase_migrator.database.snapshot import DumpOptions
from supabase_migrator.exceptions import MigratorError
from supabase_migrator.utils.logging import log_with_context, setup_logger


@cli.command()
@common_options
@click.option("--project", required=True, help="Project alias or reference to back up")
@click.option(
    "--output",
    "-o",
    default="./backup",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory the timestamped backup is created in",
)
@click.option("--include-storage", is_flag=True, default=False, help="Include storage objects")
@click.option(
    "--no-functions",
    is_flag=True,
    default=False,
    help="Exclude edge functions (included by default)",
)
@click.option("--schema-only", is_flag=True, default=False, help="Schema only (no data)")
@click.option(
    "--compress/--no-compress",
    default=None,
    help="Gzip the database dump (default: defaults.compress_backups)",
)
@click.option(
    "--parallel",
    type=click.IntRange(min=1),
    default=None,
    help="Number of concurrent object downloads",
)
def backup(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    project: str,
    output: str,
    include_storage: bool,
    no_functions: bool,
    schema_only: bool,
    compress: bool | None,
    parallel: int | None,
) -> None:
    """Back up a project into a timestamped directory."""
    output_dir = Path(output)
    setup_logger(verbose, debug_api, str(output_dir))
    settings = load_settings(config_path)

    try:
        endpoint = settings.endpoint(project)
        options = BackupOptions(
            dump=DumpOptions(
                excluded_schemas=settings.defaults.excluded_schemas,
                schema_only=schema_only,
            ),
            include_storage=include_storage,
            include_functions=not no_functions,
            compress=settings.defaults.compress_backups if compress is None else compress,
            concurrency=parallel or settings.defaults.parallel_transfers,
        )
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)

    log_with_context(logging.INFO, "Backup Plan")
    log_with_context(logging.INFO, f"  Project: {project} ({endpoint.project_ref})")
    log_with_context(logging.INFO, f"  Output: {output_dir}")
    log_with_context(logging.INFO, f"  Schema only: {schema_only}")
    log_with_context(logging.INFO, f"  Include storage: {include_storage}")
    log_with_context(logging.INFO, f"  Include functions: {options.include_functions}")
    log_with_context(logging.INFO, f"  Compress: {options.compress}")

    migrator = build_migrator(settings)

    def _run() -> RunReport:
        report, _ = migrator.backup(endpoint, output_dir, options)
        return report

    run_operation("backup", _run)
