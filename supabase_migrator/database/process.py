"""Helpers for running the Postgres client tools as subprocesses."""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Sequence

from supabase_migrator.utils.logging import log_with_context

_URL_PASSWORD = re.compile(r"(postgres(?:ql)?://[^:/@\s]+:)[^@\s]+(@)")


def redact_command(command: Sequence[str]) -> str:
    """Render a command line for logs with connection passwords masked."""
    return " ".join(_URL_PASSWORD.sub(r"\1****\2", part) for part in command)


def tool_version(executable: str) -> str | None:
    """Return ``<tool> --version`` output, or None if the tool cannot run."""
    try:
        result = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        log_with_context(logging.DEBUG, f"Could not run {executable}: {e}")
        return None
    if result.returncode != 0:
        return None
    version = result.stdout.strip()
    log_with_context(logging.DEBUG, f"Found {executable}: {version}")
    return version


def run_tool(
    command: Sequence[str], input_text: str | None = None
) -> subprocess.CompletedProcess[str]:
    """Run a tool to completion, capturing stdout and stderr as text."""
    log_with_context(logging.DEBUG, f"Running: {redact_command(command)}")
    return subprocess.run(
        list(command),
        input=input_text,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
