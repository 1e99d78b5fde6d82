"""
Configuration module for the Supabase project migration tool.

This module provides functions for loading project definitions and default
settings from YAML files, persisting them back, creating a sample
configuration, and resolving a project alias into an endpoint descriptor.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml

from supabase_migrator.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DB_NAME,
    DEFAULT_DB_PORT,
    DEFAULT_DB_USER,
    DEFAULT_PG_DUMP,
    DEFAULT_PSQL,
    MANAGEMENT_API_URL,
)
from supabase_migrator.core.context import EndpointDescriptor
from supabase_migrator.exceptions import ConfigError, ProjectNotFoundError
from supabase_migrator.utils.logging import log_with_context

DEFAULT_CONFIG_PATHS = (
    "./supabase-migrator.yaml",
    "~/.config/supabase-migrator/config.yaml",
    "~/.supabase-migrator.yaml",
)

DEFAULT_EXCLUDED_SCHEMAS = [
    "extensions",
    "graphql",
    "graphql_public",
    "net",
    "pgbouncer",
    "pgsodium",
    "pgsodium_masks",
    "realtime",
    "supabase_functions",
    "storage",
    "pg_*",
    "information_schema",
]


@dataclass
class ProjectConfig:
    """Connection settings for one Supabase project."""

    project_ref: str
    db_password: str
    service_key: str | None = None
    access_token: str | None = None
    db_host: str | None = None
    db_port: int | None = None
    db_user: str | None = None
    api_url: str | None = None

    @classmethod
    def from_dict(cls, alias: str, data: dict[str, Any]) -> ProjectConfig:
        if not isinstance(data, dict):
            raise ConfigError(f"Project '{alias}' must be a mapping")
        missing = [key for key in ("project_ref", "db_password") if not data.get(key)]
        if missing:
            raise ConfigError(
                f"Project '{alias}' is missing required field(s): {', '.join(missing)}"
            )
        return cls(
            project_ref=str(data["project_ref"]),
            db_password=str(data["db_password"]),
            service_key=data.get("service_key"),
            access_token=data.get("access_token"),
            db_host=data.get("db_host"),
            db_port=data.get("db_port"),
            db_user=data.get("db_user"),
            api_url=data.get("api_url"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    def db_url(self) -> str:
        """Build the Postgres connection URL for this project."""
        host = self.db_host or f"db.{self.project_ref}.supabase.co"
        port = self.db_port or DEFAULT_DB_PORT
        user = self.db_user or DEFAULT_DB_USER
        password = quote(self.db_password, safe="")
        return f"postgres://{user}:{password}@{host}:{port}/{DEFAULT_DB_NAME}"

    def resolved_api_url(self) -> str:
        """Return the project API URL, defaulting to the hosted domain."""
        return (self.api_url or f"https://{self.project_ref}.supabase.co").rstrip("/")

    def endpoint(self, name: str, management_api_url: str) -> EndpointDescriptor:
        return EndpointDescriptor(
            name=name,
            project_ref=self.project_ref,
            db_url=self.db_url(),
            api_url=self.resolved_api_url(),
            service_key=self.service_key,
            access_token=self.access_token or self.service_key,
            management_api_url=management_api_url,
        )


@dataclass
class DefaultsConfig:
    """Settings shared by every operation unless overridden on the command line."""

    parallel_transfers: int = DEFAULT_CONCURRENCY
    compress_backups: bool = True
    excluded_schemas: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_SCHEMAS)
    )
    pg_dump_path: str = DEFAULT_PG_DUMP
    psql_path: str = DEFAULT_PSQL
    management_api_url: str = MANAGEMENT_API_URL

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DefaultsConfig:
        if not data:
            return cls()
        parallel = data.get("parallel_transfers", DEFAULT_CONCURRENCY)
        if not isinstance(parallel, int) or parallel < 1:
            raise ConfigError(
                f"defaults.parallel_transfers must be a positive integer, got {parallel!r}"
            )
        excluded = data.get("excluded_schemas")
        return cls(
            parallel_transfers=parallel,
            compress_backups=data.get("compress_backups", True),
            excluded_schemas=list(excluded)
            if excluded is not None
            else list(DEFAULT_EXCLUDED_SCHEMAS),
            pg_dump_path=data.get("pg_dump_path", DEFAULT_PG_DUMP),
            psql_path=data.get("psql_path", DEFAULT_PSQL),
            management_api_url=data.get("management_api_url", MANAGEMENT_API_URL),
        )


@dataclass
class MigrationConfig:
    """Typed configuration for the migration tool."""

    projects: dict[str, ProjectConfig] = field(default_factory=dict)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    # Where the config was read from, if anywhere (not persisted)
    source_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """Create a MigrationConfig from a raw config dictionary."""
        raw_projects = data.get("projects") or {}
        if not isinstance(raw_projects, dict):
            raise ConfigError("'projects' must be a mapping of alias to project")
        return cls(
            projects={
                alias: ProjectConfig.from_dict(alias, project)
                for alias, project in raw_projects.items()
            },
            defaults=DefaultsConfig.from_dict(data.get("defaults")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "projects": {
                alias: project.to_dict() for alias, project in self.projects.items()
            },
            "defaults": asdict(self.defaults),
        }

    def get_project(self, name: str) -> ProjectConfig:
        """Look up a project by alias, then by project reference.

        Raises:
            ProjectNotFoundError: If neither matches.
        """
        if name in self.projects:
            return self.projects[name]
        for project in self.projects.values():
            if project.project_ref == name:
                return project
        raise ProjectNotFoundError(
            f"Project not found: {name}. Add it with 'supabase-migrator config add'."
        )

    def endpoint(self, name: str) -> EndpointDescriptor:
        """Resolve a project alias or reference into an EndpointDescriptor."""
        return self.get_project(name).endpoint(name, self.defaults.management_api_url)

    def add_project(self, alias: str, project: ProjectConfig) -> None:
        self.projects[alias] = project


def find_config_path(explicit: str | Path | None = None) -> Path | None:
    """Return the config file to use, or None when no file exists.

    An explicitly requested path is returned even if it does not exist so
    callers can report it.
    """
    if explicit:
        return Path(explicit).expanduser()
    for candidate in DEFAULT_CONFIG_PATHS:
        path = Path(candidate).expanduser()
        if path.exists():
            return path
    return None


def load_config(config_path: str | Path | None = None) -> MigrationConfig:
    """
    Load configuration from a YAML file.

    When no path is given the default locations are searched in order. A
    missing file yields an empty configuration with default settings; an
    unreadable or malformed file is a configuration error.

    Args:
        config_path: Optional explicit path to the config YAML file

    Returns:
        MigrationConfig with all necessary defaults applied

    Raises:
        ConfigError: If the file cannot be parsed or has invalid values
    """
    path = find_config_path(config_path)
    if path is None or not path.exists():
        log_with_context(
            logging.DEBUG,
            f"Config file {path or 'supabase-migrator.yaml'} not found, using default settings",
        )
        config = MigrationConfig()
        config.source_path = path
        return config

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load config file {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    config = MigrationConfig.from_dict(raw)
    config.source_path = path
    log_with_context(logging.DEBUG, f"Loaded configuration from {path}")
    return config


def save_config(config: MigrationConfig, output_path: Path) -> None:
    """Write the configuration to ``output_path`` as YAML."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    log_with_context(logging.INFO, f"Saved configuration to {output_path}")


def create_default_config(output_path: Path) -> bool:
    """
    Create a sample configuration file with recommended settings.

    The function will not overwrite an existing configuration file.

    Args:
        output_path: Path where the default config should be saved

    Returns:
        True if the config file was created successfully, False otherwise
    """
    if output_path.exists():
        log_with_context(
            logging.WARNING,
            f"Config file {output_path} already exists, not overwriting",
        )
        return False

    sample = MigrationConfig(
        projects={
            "production": ProjectConfig(
                project_ref="your-prod-project-ref",
                db_password="your-db-password",
                service_key="your-service-role-key",
                access_token="your-management-api-token",
            ),
            "staging": ProjectConfig(
                project_ref="your-staging-project-ref",
                db_password="your-db-password",
                service_key="your-service-role-key",
            ),
        }
    )

    try:
        save_config(sample, output_path)
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to create default config file: {e}")
        return False
    return True
