"""Immutable run inputs.

EndpointDescriptor holds the resolved connection data for one project and
the ``*Options`` dataclasses hold everything a single migrate, backup, or
restore run needs. Each is built once, before the pipeline starts, and
passed explicitly into every stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from supabase_migrator.constants import DEFAULT_CONCURRENCY
from supabase_migrator.database.snapshot import DumpOptions
from supabase_migrator.exceptions import ConfigError


@dataclass(frozen=True)
class EndpointDescriptor:
    """Resolved connection and credential data for one project."""

    name: str
    project_ref: str
    db_url: str
    api_url: str
    service_key: str | None = None
    access_token: str | None = None
    management_api_url: str = "https://api.supabase.com"

    def require_service_key(self, feature: str) -> str:
        """Return the service key or fail with a ConfigError naming the feature."""
        if not self.service_key:
            raise ConfigError(
                f"Project '{self.name}' requires service_key for {feature}"
            )
        return self.service_key

    def require_access_token(self, feature: str) -> str:
        """Return the Management API token or fail with a ConfigError."""
        if not self.access_token:
            raise ConfigError(
                f"Project '{self.name}' requires access_token (or service_key) for {feature}"
            )
        return self.access_token

    def __repr__(self) -> str:
        # Never echo credentials into logs or tracebacks
        return f"EndpointDescriptor(name={self.name!r}, project_ref={self.project_ref!r})"


def _check_concurrency(concurrency: int) -> None:
    if concurrency < 1:
        raise ConfigError(f"concurrency must be at least 1, got {concurrency}")


@dataclass(frozen=True)
class MigrateOptions:
    """Everything a project-to-project migration needs besides the endpoints."""

    dump: DumpOptions = field(default_factory=DumpOptions)
    include_storage: bool = False
    include_functions: bool = False
    concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self) -> None:
        _check_concurrency(self.concurrency)


@dataclass(frozen=True)
class BackupOptions:
    """Settings for writing a BackupRecord."""

    dump: DumpOptions = field(default_factory=DumpOptions)
    include_storage: bool = False
    include_functions: bool = True
    compress: bool = True
    concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self) -> None:
        _check_concurrency(self.concurrency)


@dataclass(frozen=True)
class RestoreOptions:
    """Which stages of a BackupRecord to replay onto the target."""

    include_storage: bool = False
    include_functions: bool = False
    concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self) -> None:
        _check_concurrency(self.concurrency)
