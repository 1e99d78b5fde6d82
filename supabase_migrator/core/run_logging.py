"""
Run outcome logging for the Supabase project migration tool.

Kept apart from ``migrator.py`` so the orchestrator stays focused on control
flow. Every record carries its key figures as context kwargs so they show up
as extra fields for structured log consumers.
"""

from __future__ import annotations

import logging
import traceback

from supabase_migrator.core.state import RunReport
from supabase_migrator.types import FailedDeploy, FailedTransfer
from supabase_migrator.utils.formatting import format_duration
from supabase_migrator.utils.logging import log_with_context

# Individual failures listed in the summary before collapsing the rest
MAX_LISTED_FAILURES = 20


def _describe_failure(failure: FailedTransfer | FailedDeploy) -> str:
    if isinstance(failure, FailedTransfer):
        return f"{failure.bucket}/{failure.name}: {failure.error}"
    return f"{failure.slug}: {failure.error}"


def log_run_summary(report: RunReport, duration: float) -> None:
    """Log the outcome of a finished run.

    Args:
        report: The report returned by the migrator.
        duration: Run duration in seconds.
    """
    operation = report.operation.upper()
    if report.has_failures:
        log_with_context(
            logging.WARNING,
            f"{operation} COMPLETED WITH ERRORS",
            outcome="partial",
            failed_items=report.failed_items,
        )
    else:
        log_with_context(logging.INFO, f"{operation} COMPLETED SUCCESSFULLY", outcome="success")

    log_with_context(
        logging.INFO, f"Duration: {format_duration(duration)}", duration_seconds=duration
    )
    if report.source:
        log_with_context(logging.INFO, f"Source: {report.source}")
    if report.target:
        log_with_context(logging.INFO, f"Target: {report.target}")
    if report.backup_path:
        log_with_context(logging.INFO, f"Location: {report.backup_path}")

    for result in report.stages:
        log_with_context(
            logging.INFO,
            f"{result.stage.value.capitalize()}: {result.detail}",
            stage=result.stage.value,
            failed=result.failed,
        )

    # --- Failed items ------------------------------------------------------
    listed = 0
    for result in report.stages:
        failures = getattr(result.stats, "failures", None) or []
        for failure in failures:
            if listed >= MAX_LISTED_FAILURES:
                break
            log_with_context(
                logging.WARNING,
                f"  [{result.stage.value}] {_describe_failure(failure)}",
                stage=result.stage.value,
            )
            listed += 1

    remaining = report.failed_items - listed
    if remaining > 0:
        log_with_context(
            logging.WARNING, f"  ... and {remaining} more (see migration.log)"
        )

    if report.has_failures:
        log_with_context(
            logging.WARNING,
            "Re-running the same command retries everything; existing objects are overwritten.",
        )


def log_run_failure(operation: str, exception: BaseException, duration: float) -> None:
    """Log a run that stopped on a fatal error or a keyboard interrupt."""
    if isinstance(exception, KeyboardInterrupt):
        log_with_context(
            logging.WARNING,
            f"{operation.upper()} INTERRUPTED BY USER after {format_duration(duration)}",
            outcome="interrupted",
            duration_seconds=duration,
        )
        return

    log_with_context(
        logging.ERROR,
        f"{operation.upper()} FAILED after {format_duration(duration)}",
        outcome="failed",
        exception_type=type(exception).__name__,
        exception_message=str(exception),
        duration_seconds=duration,
    )
    tb = traceback.format_exc()
    if tb and tb.strip() != "NoneType: None":
        log_with_context(logging.DEBUG, f"Traceback:\n{tb}")
