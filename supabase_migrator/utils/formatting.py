"""Human-readable formatting helpers for summaries and progress output."""

from __future__ import annotations

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024


def human_bytes(num_bytes: int) -> str:
    """Format a byte count using binary units.

    Args:
        num_bytes: Number of bytes.

    Returns:
        A string such as ``"512 B"``, ``"1.50 KB"`` or ``"2.00 GB"``.
    """
    if num_bytes >= _GB:
        return f"{num_bytes / _GB:.2f} GB"
    if num_bytes >= _MB:
        return f"{num_bytes / _MB:.2f} MB"
    if num_bytes >= _KB:
        return f"{num_bytes / _KB:.2f} KB"
    return f"{num_bytes} B"


def format_duration(seconds: float) -> str:
    """Format a duration as minutes and seconds."""
    return f"{seconds / 60:.1f} minutes ({seconds:.1f} seconds)"


def truncate(text: str, limit: int = 500) -> str:
    """Shorten long diagnostic text for single-line log messages."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "... [truncated]"
