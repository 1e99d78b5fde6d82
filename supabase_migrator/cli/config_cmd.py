"""CLI command handlers for managing the configuration file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from supabase_migrator.cli.common import cli, common_options, handle_exception, load_settings
from supabase_migrator.core.config import (
    DEFAULT_CONFIG_PATHS,
    ProjectConfig,
    create_default_config,
    save_config,
)
from supabase_migrator.utils.logging import log_with_context, setup_logger


@cli.group("config")
def config_group() -> None:
    """Manage configuration."""


@config_group.command()
@click.option(
    "--output",
    "-o",
    default=DEFAULT_CONFIG_PATHS[0],
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Where to write the sample config",
)
def init(output: str) -> None:
    """Create a sample configuration file."""
    setup_logger()
    path = Path(output)
    if not create_default_config(path):
        sys.exit(1)
    log_with_context(logging.INFO, f"Created config file: {path}")
    log_with_context(logging.INFO, "Edit the file to add your Supabase project credentials.")


@config_group.command()
@common_options
@click.option("--alias", required=True, help="Project alias")
@click.option("--project-ref", required=True, help="Project reference (e.g. abcdefghijklmnop)")
@click.option("--db-password", required=True, help="Database password")
@click.option("--service-key", default=None, help="Service role key (for storage operations)")
@click.option("--access-token", default=None, help="Management API token (for edge functions)")
def add(
    config_path: str | None,
    verbose: bool,
    debug_api: bool,
    alias: str,
    project_ref: str,
    db_password: str,
    service_key: str | None,
    access_token: str | None,
) -> None:
    """Add or replace a project in the config file."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)
    target = settings.source_path or Path(config_path or DEFAULT_CONFIG_PATHS[0])

    settings.add_project(
        alias,
        ProjectConfig(
            project_ref=project_ref,
            db_password=db_password,
            service_key=service_key,
            access_token=access_token,
        ),
    )
    try:
        save_config(settings, target)
    except OSError as e:
        handle_exception(e)
        sys.exit(1)
    log_with_context(logging.INFO, f"Added project '{alias}' ({project_ref})")


@config_group.command("list")
@common_options
def list_projects(config_path: str | None, verbose: bool, debug_api: bool) -> None:
    """List configured projects."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)

    click.echo("Configured Projects")
    click.echo("-" * 50)
    if not settings.projects:
        click.echo("  No projects configured")
        click.echo("\n  Run 'supabase-migrator config init' to create a config file")
        return
    for alias, project in settings.projects.items():
        storage = "yes" if project.service_key else "no"
        functions = "yes" if (project.access_token or project.service_key) else "no"
        click.echo(
            f"  {alias} -> {project.project_ref} (storage: {storage}, functions: {functions})"
        )


@config_group.command()
@common_options
def show(config_path: str | None, verbose: bool, debug_api: bool) -> None:
    """Show the current configuration with secrets masked."""
    setup_logger(verbose, debug_api)
    settings = load_settings(config_path)

    defaults = settings.defaults
    click.echo(f"Config file: {settings.source_path or '(none found)'}")
    click.echo("\nDefaults:")
    click.echo(f"  Parallel transfers: {defaults.parallel_transfers}")
    click.echo(f"  Compress backups: {defaults.compress_backups}")
    click.echo(f"  pg_dump: {defaults.pg_dump_path}")
    click.echo(f"  psql: {defaults.psql_path}")
    click.echo("  Excluded schemas:")
    for schema in defaults.excluded_schemas:
        click.echo(f"    - {schema}")

    click.echo("\nProjects:")
    for alias, project in settings.projects.items():
        click.echo(f"  [{alias}]")
        click.echo(f"    project_ref: {project.project_ref}")
        click.echo("    db_password: ****")
        click.echo(f"    service_key: {'****' if project.service_key else '(not set)'}")
        click.echo(f"    access_token: {'****' if project.access_token else '(not set)'}")
        click.echo(f"    api_url: {project.resolved_api_url()}")
