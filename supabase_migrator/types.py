"""Shared type definitions for the Supabase project migration tool.

Provides TypedDicts for the JSON shapes returned by the Storage and
Management APIs, plus the dataclasses that flow through the transfer
engine and the function sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict

from supabase_migrator.utils.formatting import human_bytes

# ---------------------------------------------------------------------------
# API payload types
# ---------------------------------------------------------------------------


class BucketPayload(TypedDict, total=False):
    """A bucket record from ``GET /storage/v1/bucket``."""

    id: str
    name: str
    public: bool
    created_at: str
    updated_at: str


class ObjectPayload(TypedDict, total=False):
    """An entry from ``POST /storage/v1/object/list/<bucket>``.

    Folder placeholders come back with ``id`` set to ``None``.
    """

    name: str
    id: str | None
    metadata: dict[str, Any] | None
    created_at: str | None
    updated_at: str | None


class FunctionPayload(TypedDict, total=False):
    """A function record from ``GET /v1/projects/<ref>/functions``."""

    id: str
    slug: str
    name: str
    status: str
    version: int
    verify_jwt: bool
    import_map: bool
    entrypoint_path: str | None
    import_map_path: str | None


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Bucket:
    """A storage bucket and its visibility."""

    name: str
    public: bool = False
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, data: BucketPayload) -> Bucket:
        return cls(
            name=data["name"],
            public=bool(data.get("public", False)),
            id=data.get("id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    @property
    def visibility(self) -> str:
        return "public" if self.public else "private"


@dataclass(frozen=True)
class StorageObject:
    """An object inside a bucket. ``name`` is the full path within the bucket."""

    name: str
    id: str | None = None
    size: int | None = None
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_api(cls, data: ObjectPayload, prefix: str = "") -> StorageObject:
        """Build from a list entry; ``prefix`` is the folder the listing was taken in."""
        metadata = data.get("metadata")
        size = metadata.get("size") if isinstance(metadata, dict) else None
        name = f"{prefix}/{data['name']}" if prefix else data["name"]
        return cls(
            name=name,
            id=data.get("id"),
            size=size,
            metadata=metadata,
        )

    @property
    def is_folder(self) -> bool:
        """True for the placeholder entries the list API returns for folders."""
        return self.id is None and not self.metadata


class TaskState(str, Enum):
    """Lifecycle of a single object transfer."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TransferTask:
    """One object's move from a source store to a destination.

    Transitions are ``PENDING -> IN_FLIGHT -> SUCCEEDED | FAILED``; terminal
    states cannot be left.
    """

    bucket: str
    name: str
    state: TaskState = TaskState.PENDING
    size: int = 0
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (TaskState.SUCCEEDED, TaskState.FAILED)

    def start(self) -> None:
        if self.state is not TaskState.PENDING:
            raise ValueError(
                f"Cannot start transfer of {self.bucket}/{self.name} from state {self.state.value}"
            )
        self.state = TaskState.IN_FLIGHT

    def succeed(self, size: int) -> None:
        self._finish(TaskState.SUCCEEDED)
        self.size = size

    def fail(self, error: str) -> None:
        self._finish(TaskState.FAILED)
        self.error = error

    def _finish(self, state: TaskState) -> None:
        if self.is_terminal:
            raise ValueError(
                f"Transfer of {self.bucket}/{self.name} already finished as {self.state.value}"
            )
        self.state = state


@dataclass(frozen=True)
class FailedTransfer:
    """An object that could not be transferred."""

    bucket: str
    name: str
    error: str


@dataclass
class TransferStats:
    """Aggregate transfer counters.

    Counters only ever grow, and ``succeeded + failed == attempted`` holds
    after every :meth:`record` and :meth:`merge`.
    """

    buckets: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    bytes: int = 0
    failures: list[FailedTransfer] = field(default_factory=list)

    @property
    def objects(self) -> int:
        """Number of objects transferred successfully."""
        return self.succeeded

    def record(self, task: TransferTask) -> None:
        """Count a finished task."""
        if not task.is_terminal:
            raise ValueError(f"Cannot record unfinished transfer {task.name}")
        self.attempted += 1
        if task.state is TaskState.SUCCEEDED:
            self.succeeded += 1
            self.bytes += task.size
        else:
            self.failed += 1
            self.failures.append(
                FailedTransfer(task.bucket, task.name, task.error or "unknown error")
            )

    def merge(self, other: TransferStats) -> None:
        """Add another set of counters into this one."""
        self.buckets += other.buckets
        self.attempted += other.attempted
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.bytes += other.bytes
        self.failures.extend(other.failures)

    def __str__(self) -> str:
        text = (
            f"{self.buckets} buckets, {self.objects} objects, "
            f"{human_bytes(self.bytes)} transferred"
        )
        if self.failed:
            text += f" ({self.failed} errors)"
        return text


# ---------------------------------------------------------------------------
# Edge functions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionInfo:
    """A function as listed by the Management API."""

    slug: str
    name: str
    verify_jwt: bool = True
    entrypoint_path: str | None = None
    import_map_path: str | None = None
    status: str | None = None
    version: int | None = None

    @classmethod
    def from_api(cls, data: FunctionPayload) -> FunctionInfo:
        return cls(
            slug=data["slug"],
            name=data.get("name") or data["slug"],
            verify_jwt=bool(data.get("verify_jwt", True)),
            entrypoint_path=data.get("entrypoint_path"),
            import_map_path=data.get("import_map_path"),
            status=data.get("status"),
            version=data.get("version"),
        )


@dataclass(frozen=True)
class FunctionFile:
    """One source file of a function, addressed by its relative path."""

    name: str
    content: str


@dataclass
class FunctionArtifact:
    """A function's metadata and source, portable between projects."""

    slug: str
    name: str
    verify_jwt: bool = True
    entrypoint_path: str | None = None
    import_map_path: str | None = None
    files: list[FunctionFile] = field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        """Return the descriptor used for deploys and ``metadata.json``."""
        return {
            "name": self.name,
            "slug": self.slug,
            "verify_jwt": self.verify_jwt,
            "entrypoint_path": self.entrypoint_path,
            "import_map_path": self.import_map_path,
        }

    @classmethod
    def from_metadata(
        cls, data: dict[str, Any], files: list[FunctionFile]
    ) -> FunctionArtifact:
        slug = data.get("slug") or ""
        return cls(
            slug=slug,
            name=data.get("name") or slug,
            verify_jwt=bool(data.get("verify_jwt", True)),
            entrypoint_path=data.get("entrypoint_path"),
            import_map_path=data.get("import_map_path"),
            files=files,
        )


class DeployAction(str, Enum):
    """Whether a deploy created a new function or updated an existing one."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class FailedDeploy:
    """A function whose backup or deploy failed."""

    slug: str
    error: str


@dataclass
class FunctionSyncStats:
    """Counters for a batch of function backups or deploys."""

    attempted: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    failures: list[FailedDeploy] = field(default_factory=list)

    @property
    def deployed(self) -> int:
        return self.created + self.updated

    def record_deploy(self, action: DeployAction) -> None:
        self.attempted += 1
        if action is DeployAction.CREATED:
            self.created += 1
        else:
            self.updated += 1

    def record_failure(self, slug: str, error: str) -> None:
        self.attempted += 1
        self.failed += 1
        self.failures.append(FailedDeploy(slug, error))

    def __str__(self) -> str:
        text = (
            f"{self.deployed} functions deployed "
            f"({self.created} created, {self.updated} updated)"
        )
        if self.failed:
            text += f", {self.failed} failed"
        return text
