"""
On-disk backup records.

A backup run writes one directory::

    <output>/<project>_<YYYYmmdd_HHMMSS>/
        metadata.json
        database.sql | database.sql.gz
        storage/<bucket>/<object path>
        functions/<slug>/metadata.json
        functions/<slug>/<source files>

``metadata.json`` at the top is written last, so a directory without it is
an interrupted backup. A restore loads and validates the whole record before
touching the target.
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

from supabase_migrator.constants import (
    BACKUP_METADATA_FILE,
    BACKUP_TIMESTAMP_FORMAT,
    COMPRESSED_DUMP_FILE,
    DUMP_FILE,
    FUNCTIONS_DIR,
    STORAGE_DIR,
)
from supabase_migrator.database.snapshot import Snapshot
from supabase_migrator.exceptions import (
    BackupError,
    BackupNotFoundError,
    InvalidBackupError,
)
from supabase_migrator.services.local_store import LocalDirectoryStore
from supabase_migrator.types import FunctionArtifact, FunctionFile
from supabase_migrator.utils.logging import log_with_context


@dataclass
class BackupMetadata:
    """Descriptor persisted as ``metadata.json``.

    ``buckets`` maps each backed-up bucket to its public flag so a restore
    recreates buckets with their original visibility.
    """

    project_ref: str
    timestamp: str
    schema_only: bool = False
    include_database: bool = True
    include_storage: bool = False
    include_functions: bool = False
    compressed: bool = False
    buckets: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupMetadata:
        """Parse a metadata mapping.

        Raises:
            InvalidBackupError: If required fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise InvalidBackupError("metadata.json must contain an object")
        missing = [key for key in ("project_ref", "timestamp") if key not in data]
        if missing:
            raise InvalidBackupError(
                f"metadata.json is missing required field(s): {', '.join(missing)}"
            )
        buckets = data.get("buckets") or {}
        if not isinstance(buckets, dict):
            raise InvalidBackupError("metadata.json 'buckets' must be an object")
        return cls(
            project_ref=str(data["project_ref"]),
            timestamp=str(data["timestamp"]),
            schema_only=bool(data.get("schema_only", False)),
            include_database=bool(data.get("include_database", True)),
            include_storage=bool(data.get("include_storage", False)),
            include_functions=bool(data.get("include_functions", False)),
            compressed=bool(data.get("compressed", False)),
            buckets={str(name): bool(public) for name, public in buckets.items()},
        )


@dataclass
class BackupRecord:
    """A validated backup directory plus its parsed metadata."""

    path: Path
    metadata: BackupMetadata

    @property
    def dump_path(self) -> Path:
        name = COMPRESSED_DUMP_FILE if self.metadata.compressed else DUMP_FILE
        return self.path / name

    @property
    def storage_path(self) -> Path:
        return self.path / STORAGE_DIR

    @property
    def functions_path(self) -> Path:
        return self.path / FUNCTIONS_DIR

    @property
    def has_storage(self) -> bool:
        return self.metadata.include_storage and self.storage_path.is_dir()

    @property
    def has_functions(self) -> bool:
        return self.metadata.include_functions and self.functions_path.is_dir()

    def read_snapshot(self) -> Snapshot:
        return read_snapshot(self.dump_path, self.metadata.compressed)

    def read_function_artifacts(self) -> list[FunctionArtifact]:
        if not self.has_functions:
            return []
        return read_function_artifacts(self.functions_path)

    def storage_store(self) -> LocalDirectoryStore:
        """Return the storage subtree as a source store for a restore."""
        return LocalDirectoryStore(self.storage_path, self.metadata.buckets)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def backup_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime(BACKUP_TIMESTAMP_FORMAT)


def create_backup_dir(
    output_dir: Path, name: str, now: datetime | None = None
) -> Path:
    """Create ``<output_dir>/<name>_<timestamp>`` and return it."""
    backup_dir = Path(output_dir) / f"{name}_{backup_timestamp(now)}"
    backup_dir.mkdir(parents=True, exist_ok=True)
    return backup_dir


def write_snapshot(backup_dir: Path, snapshot: Snapshot, compress: bool) -> Path:
    """Write the dump as ``database.sql`` or gzip-compressed ``database.sql.gz``."""
    if compress:
        path = backup_dir / COMPRESSED_DUMP_FILE
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(snapshot.sql)
    else:
        path = backup_dir / DUMP_FILE
        path.write_text(snapshot.sql, encoding="utf-8")
    log_with_context(logging.INFO, f"Database backup saved to: {path}")
    return path


def read_snapshot(path: Path, compressed: bool) -> Snapshot:
    if compressed:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            sql = f.read()
    else:
        sql = path.read_text(encoding="utf-8")
    return Snapshot(sql=sql, compressed=compressed)


def _contained_path(parent: Path, name: str) -> Path:
    """Join a relative POSIX name onto ``parent``, refusing anything that leaves it.

    Names must already be normalised so they read back unchanged.
    """
    relative = PurePosixPath(name)
    if (
        relative.is_absolute()
        or ".." in relative.parts
        or not relative.parts
        or relative.as_posix() != name
    ):
        raise BackupError(f"Refusing unsafe backup path: {name!r}")
    target = parent.joinpath(*relative.parts)
    if not target.resolve().is_relative_to(parent.resolve()):
        raise BackupError(f"Refusing backup path outside {parent}: {name!r}")
    return target


def write_function_artifacts(
    functions_dir: Path, artifacts: list[FunctionArtifact]
) -> None:
    """Write each artifact as ``<slug>/metadata.json`` plus its source files."""
    for artifact in artifacts:
        function_dir = _contained_path(functions_dir, artifact.slug)
        function_dir.mkdir(parents=True, exist_ok=True)
        (function_dir / BACKUP_METADATA_FILE).write_text(
            json.dumps(artifact.metadata(), indent=2), encoding="utf-8"
        )
        for source in artifact.files:
            target = _contained_path(function_dir, source.name)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source.content, encoding="utf-8")
        log_with_context(logging.DEBUG, f"Backed up function: {artifact.slug}")


def read_function_artifacts(functions_dir: Path) -> list[FunctionArtifact]:
    """Read every ``<slug>/`` directory under ``functions_dir``.

    Directories without ``metadata.json`` are ignored.

    Raises:
        InvalidBackupError: If a function's metadata cannot be parsed.
    """
    artifacts: list[FunctionArtifact] = []
    for function_dir in sorted(p for p in functions_dir.iterdir() if p.is_dir()):
        metadata_path = function_dir / BACKUP_METADATA_FILE
        if not metadata_path.is_file():
            continue
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidBackupError(
                f"Unreadable function metadata {metadata_path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise InvalidBackupError(f"Function metadata {metadata_path} must be an object")
        data.setdefault("slug", function_dir.name)

        files = [
            FunctionFile(
                path.relative_to(function_dir).as_posix(),
                path.read_text(encoding="utf-8", errors="replace"),
            )
            for path in sorted(function_dir.rglob("*"))
            if path.is_file() and path != metadata_path
        ]
        artifacts.append(FunctionArtifact.from_metadata(data, files))
    return artifacts


def write_metadata(backup_dir: Path, metadata: BackupMetadata) -> Path:
    path = backup_dir / BACKUP_METADATA_FILE
    path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_backup(path: Path) -> BackupRecord:
    """Load and validate a backup directory as a whole.

    Raises:
        BackupNotFoundError: If ``path`` does not exist.
        InvalidBackupError: If the metadata is missing or malformed, or the
            database dump it describes is absent.
    """
    path = Path(path)
    if not path.is_dir():
        raise BackupNotFoundError(f"Backup not found: {path}")

    metadata_path = path / BACKUP_METADATA_FILE
    if not metadata_path.is_file():
        raise InvalidBackupError(f"{BACKUP_METADATA_FILE} not found in {path}")

    try:
        raw = json.loads(metadata_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidBackupError(f"Unreadable {metadata_path}: {e}") from e

    record = BackupRecord(path=path, metadata=BackupMetadata.from_dict(raw))

    if record.metadata.include_database and not record.dump_path.is_file():
        raise InvalidBackupError(f"Database dump not found: {record.dump_path}")

    log_with_context(
        logging.DEBUG,
        f"Loaded backup of {record.metadata.project_ref} taken {record.metadata.timestamp}",
    )
    return record
