"""Applying a snapshot to a target database with ``psql``."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from supabase_migrator.constants import DEFAULT_PSQL, IMPORT_ERROR_MARKER
from supabase_migrator.database.process import run_tool, tool_version
from supabase_migrator.exceptions import ImportFailedError, ImportToolUnavailableError
from supabase_migrator.utils.formatting import truncate
from supabase_migrator.utils.logging import log_with_context


def is_fatal_diagnostic(stderr: str) -> bool:
    """True when psql's diagnostic output reports an actual error.

    psql prints notices and warnings for the managed schemas it is told to
    skip; only the ``ERROR`` marker means a statement failed.
    """
    return IMPORT_ERROR_MARKER in stderr


class Psql:
    """Runs ``psql`` against a connection URL."""

    def __init__(self, executable: str = DEFAULT_PSQL) -> None:
        self.executable = executable

    def check_available(self) -> None:
        if tool_version(self.executable) is None:
            raise ImportToolUnavailableError(
                f"{self.executable} not found. Please install PostgreSQL client tools."
            )

    def load_file(self, db_url: str, input_path: Path) -> None:
        """Apply the SQL in ``input_path``."""
        self.check_available()
        log_with_context(logging.INFO, f"Starting database restore from {input_path}...")
        result = run_tool([self.executable, db_url, "--file", str(input_path)])
        self._check_result(result.returncode, result.stderr)

    def load_text(self, db_url: str, sql: str) -> None:
        """Stream ``sql`` to psql over stdin."""
        self.check_available()
        log_with_context(logging.INFO, "Starting database restore...")
        result = run_tool([self.executable, db_url], input_text=sql)
        self._check_result(result.returncode, result.stderr)

    def load_via_tempfile(self, db_url: str, sql: str) -> None:
        """Write ``sql`` to a temporary file and apply it; the file is always removed."""
        fd, name = tempfile.mkstemp(prefix="supabase-migrator-", suffix=".sql")
        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(sql)
            self.load_file(db_url, path)
        finally:
            path.unlink(missing_ok=True)

    def _check_result(self, returncode: int, stderr: str) -> None:
        if is_fatal_diagnostic(stderr):
            raise ImportFailedError(f"psql failed: {truncate(stderr)}", diagnostic=stderr)
        if stderr.strip():
            log_with_context(
                logging.DEBUG, f"psql diagnostics (non-fatal): {truncate(stderr)}"
            )
        if returncode != 0:
            log_with_context(
                logging.WARNING,
                f"psql exited with code {returncode} without reporting an ERROR",
                returncode=returncode,
            )
        log_with_context(logging.INFO, "Database restore completed")
