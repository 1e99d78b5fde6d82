"""Core migration logic including configuration and orchestration."""

__all__ = [
    "backup_record",
    "config",
    "context",
    "migrator",
    "run_logging",
    "state",
]
