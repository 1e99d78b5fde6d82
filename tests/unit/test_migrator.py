"""Unit tests for the migrator module."""

import json
from unittest.mock import MagicMock

import pytest

from supabase_migrator.core.context import BackupOptions, MigrateOptions, RestoreOptions
from supabase_migrator.core.migrator import ProjectMigrator
from supabase_migrator.core.state import Stage
from supabase_migrator.database.snapshot import DumpOptions, Snapshot
from supabase_migrator.database.tools import DatabaseTools, LoadMode
from supabase_migrator.exceptions import (
    ConfigError,
    ExportToolUnavailableError,
    InvalidBackupError,
)
from supabase_migrator.services.functions_client import FunctionsClient
from supabase_migrator.types import DeployAction, FunctionArtifact, FunctionFile, FunctionInfo

DUMP_SQL = 'DROP SCHEMA IF EXISTS "auth";\nCREATE TABLE public.todos (id int);\n'


@pytest.fixture()
def tools():
    mock_tools = MagicMock(spec=DatabaseTools)
    mock_tools.dump.return_value = Snapshot(sql=DUMP_SQL)
    return mock_tools


@pytest.fixture()
def endpoints(endpoint_factory):
    source = endpoint_factory()
    target = endpoint_factory(name="staging", project_ref="stagingref")
    return source, target


def _functions_client(functions=(), existing=()):
    client = MagicMock(spec=FunctionsClient)
    client.list_functions.return_value = [FunctionInfo(slug=s, name=s) for s in functions]
    client.fetch_artifact.side_effect = lambda info: FunctionArtifact(
        slug=info.slug, name=info.name, files=[FunctionFile("index.ts", f"// {info.slug}")]
    )
    client.deploy_function.side_effect = lambda artifact: (
        DeployAction.UPDATED if artifact.slug in existing else DeployAction.CREATED
    )
    return client


def _factory(by_name):
    """Return a factory picking a prepared client by endpoint name."""
    return lambda endpoint: by_name[endpoint.name]


class TestMigrate:
    """Tests for ProjectMigrator.migrate()."""

    def test_database_only(self, tools, endpoints):
        source, target = endpoints
        storage_factory = MagicMock()
        migrator = ProjectMigrator(tools, storage_factory=storage_factory, show_progress=False)

        report = migrator.migrate(source, target, MigrateOptions())

        tools.dump.assert_called_once_with(source, DumpOptions())
        loaded = tools.load.call_args[0]
        assert loaded[0] is target
        assert loaded[1].sql.startswith('-- DROP SCHEMA IF EXISTS "auth";')
        assert loaded[2] is LoadMode.FILE
        assert [r.stage for r in report.stages] == [Stage.DATABASE]
        assert report.get(Stage.DATABASE).detail == "3 lines migrated"
        storage_factory.assert_not_called()

    def test_all_stages_in_order(self, tools, endpoints, fake_store):
        source, target = endpoints
        source_store = fake_store().add_bucket("avatars", True, {"a.png": b"12345"})
        target_store = fake_store()
        migrator = ProjectMigrator(
            tools,
            storage_factory=_factory({"production": source_store, "staging": target_store}),
            functions_factory=_factory(
                {
                    "production": _functions_client(["hello", "world"]),
                    "staging": _functions_client(existing=["hello"]),
                }
            ),
            show_progress=False,
        )

        report = migrator.migrate(
            source,
            target,
            MigrateOptions(include_storage=True, include_functions=True, concurrency=2),
        )

        assert [r.stage for r in report.stages] == [
            Stage.DATABASE,
            Stage.STORAGE,
            Stage.FUNCTIONS,
        ]
        assert target_store.objects == {"avatars": {"a.png": b"12345"}}
        assert target_store.buckets == {"avatars": True}
        functions = report.get(Stage.FUNCTIONS).stats
        assert (functions.created, functions.updated, functions.failed) == (1, 1, 0)
        assert not report.has_failures

    def test_missing_service_key_fails_before_any_stage(self, tools, endpoints):
        source, target = endpoints

        def storage_factory(endpoint):
            if endpoint.name == "staging":
                raise ConfigError("Project 'staging' requires service_key for storage")
            return MagicMock()

        migrator = ProjectMigrator(tools, storage_factory=storage_factory)

        with pytest.raises(ConfigError, match="service_key"):
            migrator.migrate(source, target, MigrateOptions(include_storage=True))

        tools.dump.assert_not_called()
        tools.load.assert_not_called()

    def test_missing_export_tool_fails_first(self, tools, endpoints):
        tools.check_export_available.side_effect = ExportToolUnavailableError("pg_dump not found")
        migrator = ProjectMigrator(tools)

        with pytest.raises(ExportToolUnavailableError):
            migrator.migrate(*endpoints, MigrateOptions())

        tools.dump.assert_not_called()

    def test_function_fetch_failures_are_counted(self, tools, endpoints):
        source, target = endpoints
        source_functions = _functions_client(["good", "bad"])
        original = source_functions.fetch_artifact.side_effect

        def fetch(info):
            if info.slug == "bad":
                raise ValueError("not valid UTF-8")
            return original(info)

        source_functions.fetch_artifact.side_effect = fetch
        migrator = ProjectMigrator(
            tools,
            functions_factory=_factory(
                {"production": source_functions, "staging": _functions_client()}
            ),
        )

        report = migrator.migrate(source, target, MigrateOptions(include_functions=True))

        stats = report.get(Stage.FUNCTIONS).stats
        assert (stats.attempted, stats.created, stats.failed) == (2, 1, 1)
        assert report.has_failures


class TestBackup:
    """Tests for ProjectMigrator.backup()."""

    def test_writes_complete_record(self, tools, endpoints, fake_store, tmp_path):
        source, _ = endpoints
        store = fake_store().add_bucket("avatars", True, {"u/1.png": b"png"})
        store.add_bucket("docs", False, {"a.txt": b"text"})
        migrator = ProjectMigrator(
            tools,
            storage_factory=lambda endpoint: store,
            functions_factory=lambda endpoint: _functions_client(["hello"]),
            show_progress=False,
        )

        report, backup_dir = migrator.backup(
            source,
            tmp_path,
            BackupOptions(include_storage=True, include_functions=True, compress=False),
        )

        assert backup_dir.parent == tmp_path
        assert backup_dir.name.startswith("production_")
        assert (backup_dir / "database.sql").read_text() == DUMP_SQL
        assert (backup_dir / "storage" / "avatars" / "u" / "1.png").read_bytes() == b"png"
        assert (backup_dir / "functions" / "hello" / "index.ts").read_text() == "// hello"
        metadata = json.loads((backup_dir / "metadata.json").read_text())
        assert metadata["project_ref"] == "prodref"
        assert metadata["include_storage"] is True
        assert metadata["compressed"] is False
        assert metadata["buckets"] == {"avatars": True, "docs": False}
        assert report.backup_path == backup_dir

    def test_backup_does_not_rewrite_dump(self, tools, endpoints, tmp_path):
        migrator = ProjectMigrator(tools)

        _, backup_dir = migrator.backup(
            endpoints[0], tmp_path, BackupOptions(include_functions=False, compress=False)
        )

        assert (backup_dir / "database.sql").read_text().startswith("DROP SCHEMA")

    def test_missing_access_token_creates_nothing(self, tools, endpoints, tmp_path):
        def functions_factory(endpoint):
            raise ConfigError("requires access_token")

        migrator = ProjectMigrator(tools, functions_factory=functions_factory)

        with pytest.raises(ConfigError):
            migrator.backup(endpoints[0], tmp_path / "out", BackupOptions())

        assert not (tmp_path / "out").exists()


class TestRestore:
    """Tests for ProjectMigrator.restore()."""

    def _backup(self, tools, endpoints, fake_store, tmp_path):
        store = fake_store().add_bucket("avatars", True, {"a.png": b"png"})
        client = _functions_client(["hello"])
        migrator = ProjectMigrator(
            tools,
            storage_factory=lambda endpoint: store,
            functions_factory=lambda endpoint: client,
            show_progress=False,
        )
        _, backup_dir = migrator.backup(
            endpoints[0],
            tmp_path,
            BackupOptions(include_storage=True, include_functions=True),
        )
        return backup_dir

    def test_replays_all_stages(self, tools, endpoints, fake_store, tmp_path):
        backup_dir = self._backup(tools, endpoints, fake_store, tmp_path)
        target_store = fake_store()
        target_functions = _functions_client()
        migrator = ProjectMigrator(
            tools,
            storage_factory=lambda endpoint: target_store,
            functions_factory=lambda endpoint: target_functions,
            show_progress=False,
        )

        report = migrator.restore(
            backup_dir,
            endpoints[1],
            RestoreOptions(include_storage=True, include_functions=True),
        )

        endpoint, snapshot, mode = tools.load.call_args[0]
        assert endpoint is endpoints[1]
        assert mode is LoadMode.STREAM
        assert snapshot.sql.startswith('-- DROP SCHEMA IF EXISTS "auth";')
        assert target_store.buckets == {"avatars": True}
        assert target_store.objects["avatars"] == {"a.png": b"png"}
        deployed = target_functions.deploy_function.call_args[0][0]
        assert deployed.slug == "hello"
        assert [r.stage for r in report.stages] == [
            Stage.DATABASE,
            Stage.STORAGE,
            Stage.FUNCTIONS,
        ]

    def test_missing_subtrees_are_skipped(self, tools, endpoints, tmp_path):
        migrator = ProjectMigrator(tools)
        _, backup_dir = migrator.backup(
            endpoints[0], tmp_path, BackupOptions(include_functions=False)
        )
        storage_factory = MagicMock()
        migrator = ProjectMigrator(tools, storage_factory=storage_factory)

        report = migrator.restore(
            backup_dir, endpoints[1], RestoreOptions(include_storage=True)
        )

        storage_factory.assert_not_called()
        assert [r.stage for r in report.stages] == [Stage.DATABASE]

    def test_incomplete_backup_touches_nothing(self, tools, endpoints, tmp_path):
        (tmp_path / "database.sql").write_text("SELECT 1;")
        migrator = ProjectMigrator(tools)

        with pytest.raises(InvalidBackupError):
            migrator.restore(tmp_path, endpoints[1], RestoreOptions())

        tools.load.assert_not_called()

    def test_functions_without_files_are_skipped(self, tools, endpoints, tmp_path):
        migrator = ProjectMigrator(tools)
        _, backup_dir = migrator.backup(
            endpoints[0], tmp_path, BackupOptions(include_functions=False)
        )
        metadata_path = backup_dir / "metadata.json"
        metadata = json.loads(metadata_path.read_text())
        metadata["include_functions"] = True
        metadata_path.write_text(json.dumps(metadata))
        empty = backup_dir / "functions" / "empty"
        empty.mkdir(parents=True)
        (empty / "metadata.json").write_text(json.dumps({"slug": "empty", "name": "empty"}))
        target_functions = _functions_client()
        migrator = ProjectMigrator(tools, functions_factory=lambda endpoint: target_functions)

        report = migrator.restore(
            backup_dir, endpoints[1], RestoreOptions(include_functions=True)
        )

        target_functions.deploy_function.assert_not_called()
        assert report.get(Stage.FUNCTIONS).stats.attempted == 0
