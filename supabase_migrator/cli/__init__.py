"""Command-line interface for the Supabase project migration tool."""

__all__ = [
    "backup_cmd",
    "commands",
    "common",
    "config_cmd",
    "migrate_cmd",
    "restore_cmd",
    "storage_cmd",
]
