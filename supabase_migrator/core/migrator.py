"""
Project migrator for the Supabase project migration tool.

Sequences the database, storage, and function stages for a migrate, backup,
or restore run and collects their outcomes into a RunReport. The stages run
strictly one after another; only the storage stage is internally concurrent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from supabase_migrator.constants import FUNCTIONS_DIR, STORAGE_DIR
from supabase_migrator.core.backup_record import (
    BackupMetadata,
    create_backup_dir,
    load_backup,
    write_function_artifacts,
    write_metadata,
    write_snapshot,
)
from supabase_migrator.core.context import (
    BackupOptions,
    EndpointDescriptor,
    MigrateOptions,
    RestoreOptions,
)
from supabase_migrator.core.state import RunReport, Stage
from supabase_migrator.database.rewrite import rewrite_snapshot
from supabase_migrator.database.snapshot import Snapshot
from supabase_migrator.database.tools import DatabaseTools, LoadMode
from supabase_migrator.services.function_sync import backup_functions, restore_functions
from supabase_migrator.services.functions_client import FunctionsClient
from supabase_migrator.services.local_store import LocalDirectoryStore
from supabase_migrator.services.storage_client import StorageClient
from supabase_migrator.services.transfer import transfer_storage
from supabase_migrator.types import FunctionArtifact
from supabase_migrator.utils.logging import log_with_context

StorageFactory = Callable[[EndpointDescriptor], StorageClient]
FunctionsFactory = Callable[[EndpointDescriptor], FunctionsClient]


class ProjectMigrator:
    """Runs migrate, backup, and restore against resolved endpoints.

    Every credential and tool a run needs is checked before its first stage
    starts, so a configuration problem never leaves a partially applied run.

    Args:
        tools: Export/import capability for the database stage.
        storage_factory: Builds a storage client for an endpoint. Must raise
            ConfigError when the endpoint lacks a service key.
        functions_factory: Builds a Management API client for an endpoint.
            Must raise ConfigError when the endpoint lacks an access token.
        show_progress: Whether storage transfers render progress bars.
    """

    def __init__(
        self,
        tools: DatabaseTools,
        storage_factory: StorageFactory = StorageClient.for_endpoint,
        functions_factory: FunctionsFactory = FunctionsClient.for_endpoint,
        show_progress: bool = True,
    ) -> None:
        self.tools = tools
        self.storage_factory = storage_factory
        self.functions_factory = functions_factory
        self.show_progress = show_progress

    # -------------------------------------------------------------------
    # Migrate
    # -------------------------------------------------------------------

    def migrate(
        self,
        source: EndpointDescriptor,
        target: EndpointDescriptor,
        options: MigrateOptions,
    ) -> RunReport:
        """Copy the database, and optionally storage and functions, between projects."""
        self.tools.check_export_available()
        self.tools.check_import_available()

        storage_pair = None
        if options.include_storage:
            storage_pair = (self.storage_factory(source), self.storage_factory(target))
        functions_pair = None
        if options.include_functions:
            functions_pair = (
                self.functions_factory(source),
                self.functions_factory(target),
            )

        report = RunReport("migrate", source=source.name, target=target.name)

        log_with_context(logging.INFO, "Migrating database...", stage=Stage.DATABASE.value)
        snapshot = rewrite_snapshot(self.tools.dump(source, options.dump))
        self.tools.load(target, snapshot, LoadMode.FILE)
        report.add(Stage.DATABASE, self._snapshot_detail(snapshot, "migrated"))

        if storage_pair is not None:
            log_with_context(logging.INFO, "Migrating storage...", stage=Stage.STORAGE.value)
            stats = transfer_storage(
                *storage_pair,
                concurrency=options.concurrency,
                show_progress=self.show_progress,
            )
            report.add(Stage.STORAGE, str(stats), stats)

        if functions_pair is not None:
            source_functions, target_functions = functions_pair
            log_with_context(
                logging.INFO, "Migrating edge functions...", stage=Stage.FUNCTIONS.value
            )
            fetched = backup_functions(source_functions)
            stats = restore_functions(target_functions, fetched.artifacts)
            for failure in fetched.failures:
                stats.record_failure(failure.slug, failure.error)
            report.add(Stage.FUNCTIONS, str(stats), stats)

        return report

    # -------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------

    def backup(
        self,
        source: EndpointDescriptor,
        output_dir: Path,
        options: BackupOptions,
    ) -> tuple[RunReport, Path]:
        """Write a backup record of ``source`` under ``output_dir``.

        Returns:
            The run report and the created backup directory.
        """
        self.tools.check_export_available()
        storage = self.storage_factory(source) if options.include_storage else None
        functions = (
            self.functions_factory(source) if options.include_functions else None
        )

        started = datetime.now(timezone.utc)
        backup_dir = create_backup_dir(output_dir, source.name, started)
        report = RunReport("backup", source=source.name, backup_path=backup_dir)
        metadata = BackupMetadata(
            project_ref=source.project_ref,
            timestamp=started.isoformat(),
            schema_only=options.dump.schema_only,
            include_storage=options.include_storage,
            include_functions=options.include_functions,
            compressed=options.compress,
        )
        log_with_context(logging.INFO, f"Backing up {source.name} to {backup_dir}")

        log_with_context(logging.INFO, "Backing up database...", stage=Stage.DATABASE.value)
        snapshot = self.tools.dump(source, options.dump)
        dump_path = write_snapshot(backup_dir, snapshot, options.compress)
        report.add(Stage.DATABASE, f"saved to {dump_path.name}")

        if storage is not None:
            log_with_context(logging.INFO, "Backing up storage...", stage=Stage.STORAGE.value)
            mirror = LocalDirectoryStore(backup_dir / STORAGE_DIR)
            mirror.root.mkdir(parents=True, exist_ok=True)
            stats = transfer_storage(
                storage,
                mirror,
                concurrency=options.concurrency,
                show_progress=self.show_progress,
            )
            metadata.buckets = dict(mirror.visibility)
            report.add(Stage.STORAGE, str(stats), stats)

        if functions is not None:
            log_with_context(
                logging.INFO, "Backing up edge functions...", stage=Stage.FUNCTIONS.value
            )
            fetched = backup_functions(functions)
            functions_dir = backup_dir / FUNCTIONS_DIR
            functions_dir.mkdir(parents=True, exist_ok=True)
            write_function_artifacts(functions_dir, fetched.artifacts)
            report.add(Stage.FUNCTIONS, str(fetched), fetched)

        write_metadata(backup_dir, metadata)
        log_with_context(logging.INFO, f"Backup written to {backup_dir}")
        return report, backup_dir

    # -------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------

    def restore(
        self,
        backup_dir: Path,
        target: EndpointDescriptor,
        options: RestoreOptions,
    ) -> RunReport:
        """Replay a backup record onto ``target``.

        Storage and functions are restored only when both requested and
        present in the record.
        """
        record = load_backup(backup_dir)
        metadata = record.metadata

        restore_storage = options.include_storage and record.has_storage
        restore_functions_stage = options.include_functions and record.has_functions
        if options.include_storage and not restore_storage:
            log_with_context(logging.WARNING, "No storage backup found, skipping")
        if options.include_functions and not restore_functions_stage:
            log_with_context(logging.WARNING, "No functions backup found, skipping")

        artifacts: list[FunctionArtifact] = []
        if restore_functions_stage:
            artifacts = self._deployable(record.read_function_artifacts())

        if metadata.include_database:
            self.tools.check_import_available()
        storage = self.storage_factory(target) if restore_storage else None
        functions = self.functions_factory(target) if restore_functions_stage else None

        report = RunReport("restore", source=str(record.path), target=target.name)

        if metadata.include_database:
            log_with_context(logging.INFO, "Restoring database...", stage=Stage.DATABASE.value)
            snapshot = rewrite_snapshot(record.read_snapshot())
            self.tools.load(target, snapshot, LoadMode.STREAM)
            report.add(Stage.DATABASE, self._snapshot_detail(snapshot, "restored"))

        if storage is not None:
            log_with_context(logging.INFO, "Restoring storage...", stage=Stage.STORAGE.value)
            stats = transfer_storage(
                record.storage_store(),
                storage,
                concurrency=options.concurrency,
                show_progress=self.show_progress,
            )
            report.add(Stage.STORAGE, str(stats), stats)

        if functions is not None:
            log_with_context(
                logging.INFO, "Restoring edge functions...", stage=Stage.FUNCTIONS.value
            )
            stats = restore_functions(functions, artifacts)
            report.add(Stage.FUNCTIONS, str(stats), stats)

        return report

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _deployable(artifacts: list[FunctionArtifact]) -> list[FunctionArtifact]:
        deployable = []
        for artifact in artifacts:
            if not artifact.files:
                log_with_context(
                    logging.WARNING,
                    f"Function {artifact.slug} has no source files, skipping",
                    slug=artifact.slug,
                )
                continue
            deployable.append(artifact)
        return deployable

    @staticmethod
    def _snapshot_detail(snapshot: Snapshot, verb: str) -> str:
        return f"{snapshot.line_count} lines {verb}"
