"""Relational snapshot capture, compatibility rewriting, and reload."""

__all__ = [
    "dump",
    "load",
    "process",
    "rewrite",
    "snapshot",
    "tools",
]
