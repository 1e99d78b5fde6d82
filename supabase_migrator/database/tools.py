"""Capability interface for capturing and applying relational snapshots.

The migrator only talks to :class:`DatabaseTools`; how the export and import
are actually performed is an implementation detail. :class:`PostgresCliTools`
drives the ``pg_dump``/``psql`` binaries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from supabase_migrator.constants import DEFAULT_PG_DUMP, DEFAULT_PSQL
from supabase_migrator.core.context import EndpointDescriptor
from supabase_migrator.database.dump import PgDump
from supabase_migrator.database.load import Psql
from supabase_migrator.database.snapshot import DumpOptions, Snapshot


class LoadMode(str, Enum):
    """How snapshot text reaches the import tool."""

    FILE = "file"
    STREAM = "stream"


class DatabaseTools(ABC):
    """Export/import capability used by the migration stages."""

    @abstractmethod
    def check_export_available(self) -> None:
        """Raise ExportToolUnavailableError if dumps cannot be taken."""

    @abstractmethod
    def check_import_available(self) -> None:
        """Raise ImportToolUnavailableError if snapshots cannot be applied."""

    @abstractmethod
    def dump(
        self,
        endpoint: EndpointDescriptor,
        options: DumpOptions,
        output_path: Path | None = None,
    ) -> Snapshot:
        """Capture a snapshot of ``endpoint``."""

    @abstractmethod
    def load(
        self,
        endpoint: EndpointDescriptor,
        snapshot: Snapshot,
        mode: LoadMode = LoadMode.FILE,
    ) -> None:
        """Apply ``snapshot`` to ``endpoint``."""


class PostgresCliTools(DatabaseTools):
    """DatabaseTools backed by the PostgreSQL client binaries."""

    def __init__(
        self, pg_dump_path: str = DEFAULT_PG_DUMP, psql_path: str = DEFAULT_PSQL
    ) -> None:
        self.pg_dump = PgDump(pg_dump_path)
        self.psql = Psql(psql_path)

    def check_export_available(self) -> None:
        self.pg_dump.check_available()

    def check_import_available(self) -> None:
        self.psql.check_available()

    def dump(
        self,
        endpoint: EndpointDescriptor,
        options: DumpOptions,
        output_path: Path | None = None,
    ) -> Snapshot:
        return self.pg_dump.dump(endpoint.db_url, options, output_path)

    def load(
        self,
        endpoint: EndpointDescriptor,
        snapshot: Snapshot,
        mode: LoadMode = LoadMode.FILE,
    ) -> None:
        if mode is LoadMode.FILE:
            self.psql.load_via_tempfile(endpoint.db_url, snapshot.sql)
        else:
            self.psql.load_text(endpoint.db_url, snapshot.sql)
