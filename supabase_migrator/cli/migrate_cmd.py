"""CLI command handler for project-to-project migration."""

from __future__ import annotations

import logging
import sys

import click

from supabase_migrator.cli.common import (
    build_migrator,
    cli,
    common_options,
    confirm,
    handle_exception,
    load_settings,
    run_operation,
    split_list,
)
from supabase_migrator.core.context import MigrateOptions
from supabase_migrator.database.snapshot import DumpOptions
from supabase_migrator.exceptions import MigratorError
from supabase_migrator.utils.logging import log_with_context, setup_logger

# ---------------------------------------------------------------------------
# migrate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.option("--from", "source", required=True, help="Source project alias or reference")
@click.option("--to", "target", required=True, help="Target project alias or reference")
@click.option("--include-storage", is_flag=True, default=False, help="Include storage objects")
@click.option("--include-functions", is_flag=True, default=False, help="Include edge functions")
@click.option("--schema-only", is_flag=True, default=False, help="Schema only (no data)")
@click.option("--data-only", is_flag=True, default=False, help="Data only (no schema)")
@click.option("--exclude-tables", default=None, help="Comma-separated tables to exclude")
@click.option(
    "--exclude-schemas",
    default=None,
    help="Comma-separated schemas to exclude (replaces defaults.excluded_schemas)",
)
@click.option(
    "--parallel",
    type=click.IntRange(min=1),
    default=None,
    help="Number of concurrent object transfers (default: defaults.parallel_transfers)",
)
@click.option("--dry-run", is_flag=True, default=False, help="Show the plan without making changes")
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt")
def migrate(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    source: str,
    target: str,
    include_storage: bool,
    include_functions: bool,
    schema_only: bool,
    data_only: bool,
    exclude_tables: str | None,
    exclude_schemas: str | None,
    parallel: int | None,
    dry_run: bool,
    yes: bool,
) -> None:
    """Migrate the database, and optionally storage and functions, between projects.

    Args:
        config_path: Path to config YAML.
        verbose: Enable verbose console logging.
        debug_api: Enable API request/response logging.
        source: Source project alias or reference.
        target: Target project alias or reference.
        include_storage: Also copy storage buckets and objects.
        include_functions: Also copy edge functions.
        schema_only: Copy the schema without row data.
        data_only: Copy row data without the schema.
        exclude_tables: Comma-separated tables to skip.
        exclude_schemas: Comma-separated schemas to skip.
        parallel: Concurrent object transfers.
        dry_run: Only print the plan.
        yes: Do not ask for confirmation.
    """
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)

    try:
        source_endpoint = settings.endpoint(source)
        target_endpoint = settings.endpoint(target)
        schemas = (
            split_list(exclude_schemas)
            if exclude_schemas is not None
            else settings.defaults.excluded_schemas
        )
        options = MigrateOptions(
            dump=DumpOptions(
                excluded_schemas=schemas,
                excluded_tables=split_list(exclude_tables),
                schema_only=schema_only,
                data_only=data_only,
            ),
            include_storage=include_storage,
            include_functions=include_functions,
            concurrency=parallel or settings.defaults.parallel_transfers,
        )
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)

    log_with_context(logging.INFO, "Migration Plan")
    log_with_context(logging.INFO, f"  Source: {source} ({source_endpoint.project_ref})")
    log_with_context(logging.INFO, f"  Target: {target} ({target_endpoint.project_ref})")
    log_with_context(logging.INFO, f"  Schema only: {schema_only}")
    log_with_context(logging.INFO, f"  Data only: {data_only}")
    log_with_context(logging.INFO, f"  Include storage: {include_storage}")
    log_with_context(logging.INFO, f"  Include functions: {include_functions}")

    if dry_run:
        log_with_context(logging.INFO, "Dry run - no changes will be made")
        return

    if not confirm("Proceed with migration?", yes):
        log_with_context(logging.INFO, "Migration cancelled.")
        return

    migrator = build_migrator(settings)
    run_operation(
        "migrate", lambda: migrator.migrate(source_endpoint, target_endpoint, options)
    )
