"""CLI command handlers for storage-only operations."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from supabase_migrator.cli.common import (
    cli,
    common_options,
    handle_exception,
    load_settings,
    run_operation,
)
from supabase_migrator.core.config import MigrationConfig
from supabase_migrator.core.state import RunReport, Stage
from supabase_migrator.exceptions import MigratorError
from supabase_migrator.services.local_store import LocalDirectoryStore
from supabase_migrator.services.storage_client import StorageClient
from supabase_migrator.services.transfer import ObjectStore, transfer_storage
from supabase_migrator.utils.logging import log_with_context, setup_logger


def _client(settings: MigrationConfig, project: str) -> StorageClient:
    """Build a storage client for ``project`` or exit with status 1."""
    try:
        return StorageClient.for_endpoint(settings.endpoint(project))
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)


def _run_transfer(
    operation: str,
    source: ObjectStore,
    destination: ObjectStore,
    bucket: str | None,
    concurrency: int,
    source_name: str,
    target_name: str,
) -> None:
    def _run() -> RunReport:
        report = RunReport(operation, source=source_name, target=target_name)
        stats = transfer_storage(source, destination, bucket=bucket, concurrency=concurrency)
        report.add(Stage.STORAGE, str(stats), stats)
        return report

    run_operation(operation, _run)


@cli.group()
def storage() -> None:
    """Storage-only operations."""


# ---------------------------------------------------------------------------
# storage list
# ---------------------------------------------------------------------------


@storage.command("list")
@common_options
@click.option("--project", required=True, help="Project alias or reference")
def list_buckets(config_path: str | None, verbose: bool, debug_api: bool, project: str) -> None:
    """List buckets in a project."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)
    client = _client(settings, project)

    try:
        buckets = client.list_buckets()
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)

    click.echo(f"Buckets in {project}")
    click.echo("-" * 50)
    if not buckets:
        click.echo("  No buckets found")
    for bucket in buckets:
        click.echo(f"  {bucket.name} ({bucket.visibility})")


# ---------------------------------------------------------------------------
# storage sync
# ---------------------------------------------------------------------------


@storage.command()
@common_options
@click.option("--from", "source", required=True, help="Source project")
@click.option("--to", "target", required=True, help="Target project")
@click.option("--bucket", default=None, help="Specific bucket to sync (all if not specified)")
@click.option("--parallel", type=click.IntRange(min=1), default=None, help="Number of parallel transfers")
def sync(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    source: str,
    target: str,
    bucket: str | None,
    parallel: int | None,
) -> None:
    """Copy storage objects from one project to another."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)
    source_client = _client(settings, source)
    target_client = _client(settings, target)

    log_with_context(logging.INFO, f"Syncing storage from {source} to {target}")
    _run_transfer(
        "storage sync",
        source_client,
        target_client,
        bucket,
        parallel or settings.defaults.parallel_transfers,
        source,
        target,
    )


# ---------------------------------------------------------------------------
# storage download / upload
# ---------------------------------------------------------------------------


@storage.command()
@common_options
@click.option("--project", required=True, help="Project alias or reference")
@click.option(
    "--output",
    "-o",
    default="./storage-backup",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Output directory",
)
@click.option("--bucket", default=None, help="Specific bucket (all if not specified)")
@click.option("--parallel", type=click.IntRange(min=1), default=None, help="Number of parallel downloads")
def download(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    project: str,
    output: str,
    bucket: str | None,
    parallel: int | None,
) -> None:
    """Download storage into ``<output>/<bucket>/<path>``."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)
    client = _client(settings, project)

    log_with_context(logging.INFO, f"Downloading storage from {project} to {output}")
    _run_transfer(
        "storage download",
        client,
        LocalDirectoryStore(Path(output)),
        bucket,
        parallel or settings.defaults.parallel_transfers,
        project,
        output,
    )


@storage.command()
@common_options
@click.option(
    "--from",
    "source_dir",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="Local directory to upload",
)
@click.option("--to", "target", required=True, help="Target project")
@click.option("--bucket", required=True, help="Target bucket")
@click.option("--public", is_flag=True, default=False, help="Create the bucket as public")
@click.option("--parallel", type=click.IntRange(min=1), default=None, help="Number of parallel uploads")
def upload(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    source_dir: str,
    target: str,
    bucket: str,
    public: bool,
    parallel: int | None,
) -> None:
    """Upload every file under a local directory into one bucket."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)
    client = _client(settings, target)

    log_with_context(logging.INFO, f"Uploading {source_dir} to {target}/{bucket}")
    _run_transfer(
        "storage upload",
        LocalDirectoryStore.single_bucket(Path(source_dir), bucket, public),
        client,
        bucket,
        parallel or settings.defaults.parallel_transfers,
        source_dir,
        target,
    )
