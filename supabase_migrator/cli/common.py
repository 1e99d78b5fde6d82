"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
import sys
import time
from typing import Callable

import click

import supabase_migrator
from supabase_migrator.constants import (
    HTTP_FORBIDDEN,
    HTTP_RATE_LIMIT,
    HTTP_SERVER_ERROR_MIN,
    HTTP_UNAUTHORIZED,
)
from supabase_migrator.core.config import MigrationConfig, load_config
from supabase_migrator.core.migrator import ProjectMigrator
from supabase_migrator.core.run_logging import log_run_failure, log_run_summary
from supabase_migrator.core.state import RunReport
from supabase_migrator.database.tools import PostgresCliTools
from supabase_migrator.exceptions import (
    APIError,
    ConfigError,
    MigratorError,
    ToolExecutionError,
    ToolUnavailableError,
)
from supabase_migrator.utils.formatting import truncate
from supabase_migrator.utils.logging import log_with_context

# Create logger instance
logger = logging.getLogger("supabase_migrator")


# ---------------------------------------------------------------------------
# Shared option decorator
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--config",
        "-c",
        "config_path",
        default=None,
        envvar="SUPABASE_MIGRATOR_CONFIG",
        type=click.Path(dir_okay=False),
        help="Path to config YAML (default: search standard locations)",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging (shows DEBUG level messages)",
    )(f)
    f = click.option(
        "--debug-api",
        is_flag=True,
        default=False,
        help="Log HTTP requests and responses with credentials redacted",
    )(f)
    return f


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated option value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=supabase_migrator.__version__, prog_name="supabase-migrator")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Migrate database, storage, and edge functions between Supabase projects.

    Args:
        ctx: The Click context (injected by ``@click.pass_context``).
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Run helpers
# ---------------------------------------------------------------------------


def load_settings(config_path: str | None) -> MigrationConfig:
    """Load configuration or exit with status 1."""
    try:
        return load_config(config_path)
    except MigratorError as e:
        handle_exception(e)
        sys.exit(1)


def build_migrator(settings: MigrationConfig) -> ProjectMigrator:
    tools = PostgresCliTools(settings.defaults.pg_dump_path, settings.defaults.psql_path)
    return ProjectMigrator(tools)


def confirm(prompt: str, assume_yes: bool) -> bool:
    """Ask before a destructive operation unless ``-y`` was given."""
    if assume_yes:
        return True
    return click.confirm(prompt, default=False)


def run_operation(operation: str, action: Callable[[], RunReport]) -> RunReport:
    """Run ``action``, log its summary, and exit with status 1 on a fatal error.

    Args:
        operation: Name used in the summary header.
        action: Callable performing the run.

    Returns:
        The run report.
    """
    start = time.time()
    try:
        report = action()
    except KeyboardInterrupt as e:
        log_run_failure(operation, e, time.time() - start)
        sys.exit(1)
    except Exception as e:
        log_run_failure(operation, e, time.time() - start)
        handle_exception(e)
        sys.exit(1)
    log_run_summary(report, time.time() - start)
    return report


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_api_error(e: APIError) -> None:
    """Handle Supabase API errors with specific messages.

    Args:
        e: The API error to handle.
    """
    status = e.status_code
    if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        log_with_context(logging.ERROR, f"Access denied by Supabase API: {e}")
        log_with_context(
            logging.INFO,
            "Check that service_key is the service_role key and that access_token "
            "is a Management API token for the organization owning the project.",
        )
    elif status == HTTP_RATE_LIMIT:
        log_with_context(logging.ERROR, f"Rate limit exceeded: {e}")
        log_with_context(
            logging.INFO,
            "Lower defaults.parallel_transfers or --parallel and run the command again.",
        )
    elif status is not None and status >= HTTP_SERVER_ERROR_MIN:
        log_with_context(logging.ERROR, f"Server error from Supabase API: {e}")
        log_with_context(
            logging.INFO, "This is likely a temporary issue. Please try again later."
        )
    else:
        log_with_context(logging.ERROR, f"API error: {e}")


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, APIError):
        handle_api_error(e)
    elif isinstance(e, ToolUnavailableError):
        log_with_context(logging.ERROR, str(e))
        log_with_context(
            logging.INFO,
            "Install the PostgreSQL client tools or set defaults.pg_dump_path / "
            "defaults.psql_path in the config file.",
        )
    elif isinstance(e, ToolExecutionError):
        log_with_context(logging.ERROR, str(e).splitlines()[0] if str(e) else type(e).__name__)
        if e.diagnostic:
            log_with_context(logging.DEBUG, f"Diagnostic output: {truncate(e.diagnostic)}")
    elif isinstance(e, ConfigError):
        log_with_context(logging.ERROR, f"Configuration error: {e}")
    elif isinstance(e, MigratorError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, FileNotFoundError):
        log_with_context(logging.ERROR, f"File not found: {e}")
        log_with_context(
            logging.INFO,
            "Please check that all required files exist and paths are correct.",
        )
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Interrupted by user.")
        log_with_context(
            logging.INFO,
            "Re-run the same command to retry; completed objects are overwritten in place.",
        )
    else:
        log_with_context(logging.ERROR, f"Operation failed: {e}", exc_info=True)
