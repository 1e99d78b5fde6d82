"""Relational snapshot capture with ``pg_dump``."""

from __future__ import annotations

import logging
from pathlib import Path

from supabase_migrator.constants import DEFAULT_PG_DUMP, MANAGED_OBJECTS_TABLE
from supabase_migrator.database.process import run_tool, tool_version
from supabase_migrator.database.snapshot import DumpOptions, Snapshot
from supabase_migrator.exceptions import ExportFailedError, ExportToolUnavailableError
from supabase_migrator.utils.logging import log_with_context


def build_dump_command(
    db_url: str,
    options: DumpOptions,
    executable: str = DEFAULT_PG_DUMP,
    output_path: Path | None = None,
) -> list[str]:
    """Build the pg_dump argument list for ``options``.

    The row data of ``storage.objects`` is always excluded so object
    metadata is only ever moved by the storage transfer.
    """
    command = [executable, db_url]

    # pg_dump refuses --clean together with --data-only
    if not options.data_only:
        command += ["--clean", "--if-exists"]
    command.append("--quote-all-identifiers")

    if options.schema_only:
        command.append("--schema-only")
    if options.data_only:
        command.append("--data-only")

    command.append(f"--exclude-table-data={MANAGED_OBJECTS_TABLE}")

    if options.schema_pattern:
        command.append(f"--exclude-schema={options.schema_pattern}")

    for table in options.excluded_tables:
        command.append(f"--exclude-table={table}")

    command.append("--schema=*")

    if output_path is not None:
        command += ["-f", str(output_path)]

    return command


class PgDump:
    """Runs ``pg_dump`` against a connection URL."""

    def __init__(self, executable: str = DEFAULT_PG_DUMP) -> None:
        self.executable = executable

    def check_available(self) -> None:
        if tool_version(self.executable) is None:
            raise ExportToolUnavailableError(
                f"{self.executable} not found. Please install PostgreSQL client tools."
            )

    def dump(
        self, db_url: str, options: DumpOptions, output_path: Path | None = None
    ) -> Snapshot:
        """Capture a snapshot.

        Args:
            db_url: Source connection URL.
            options: Exclusions and mode flags.
            output_path: If given, pg_dump writes there and the file is read back.

        Returns:
            The captured Snapshot.

        Raises:
            ExportToolUnavailableError: If pg_dump cannot be run.
            ExportFailedError: If pg_dump exits non-zero.
        """
        self.check_available()

        log_with_context(logging.INFO, "Starting database dump...")
        result = run_tool(build_dump_command(db_url, options, self.executable, output_path))

        if result.returncode != 0:
            raise ExportFailedError(
                f"pg_dump failed with exit code {result.returncode}: {result.stderr.strip()}",
                diagnostic=result.stderr,
            )

        if output_path is not None:
            sql = output_path.read_text(encoding="utf-8", errors="replace")
            log_with_context(logging.INFO, f"Database dump completed: {output_path}")
        else:
            sql = result.stdout
            log_with_context(logging.INFO, "Database dump completed")

        return Snapshot(sql=sql, options=options)
