"""Custom exception hierarchy for the Supabase project migration tool."""

from __future__ import annotations


class MigratorError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigratorError):
    """Raised when configuration is invalid, incomplete, or contradictory."""


class ProjectNotFoundError(ConfigError):
    """Raised when a project alias or reference is not in the configuration."""


class ToolUnavailableError(MigratorError):
    """Raised when an external database tool cannot be located."""


class ExportToolUnavailableError(ToolUnavailableError):
    """Raised when pg_dump is not installed or not runnable."""


class ImportToolUnavailableError(ToolUnavailableError):
    """Raised when psql is not installed or not runnable."""


class ToolExecutionError(MigratorError):
    """Raised when an external database tool reports a failure.

    The tool's diagnostic output is kept on ``diagnostic``.
    """

    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic


class ExportFailedError(ToolExecutionError):
    """Raised when pg_dump exits with a non-zero status."""


class ImportFailedError(ToolExecutionError):
    """Raised when psql reports an ERROR while applying a snapshot."""


class APIError(MigratorError):
    """Raised when a Supabase HTTP API call fails.

    ``status_code`` and ``body`` carry the remote diagnostic when available.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoteListingError(APIError):
    """Raised when buckets, objects, or functions cannot be enumerated."""


class StorageError(APIError):
    """Raised when a single storage operation (download, upload, create) fails."""


class FunctionDeployError(APIError):
    """Raised when the function registry rejects a create or update."""


class BucketNotFoundError(MigratorError):
    """Raised when a requested bucket does not exist on the source."""


class BackupError(MigratorError):
    """Base class for problems with a persisted backup."""


class BackupNotFoundError(BackupError):
    """Raised when the backup directory does not exist."""


class InvalidBackupError(BackupError):
    """Raised when a backup directory is incomplete or malformed."""
