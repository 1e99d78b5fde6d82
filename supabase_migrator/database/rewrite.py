"""
SQL rewriting for Supabase-to-Supabase compatibility.

A dump taken from one hosted project tries to recreate the schemas the
platform manages itself (``auth``, ``storage``) and to alter the default
privileges of the platform owner role. Both fail or are harmful on the
target, so those statements are commented out line by line. Every other
line passes through untouched, so line count and order are preserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from supabase_migrator.database.snapshot import Snapshot
from supabase_migrator.utils.logging import log_with_context

MANAGED_SCHEMAS = ("auth", "storage")
PLATFORM_OWNER_ROLE = "supabase_admin"
DISABLED_PREFIX = "-- "


class MatchKind(str, Enum):
    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True)
class RewriteRule:
    """A line matcher whose hits are disabled (commented out)."""

    pattern: str
    kind: MatchKind = MatchKind.EXACT

    def matches(self, line: str) -> bool:
        stripped = line.strip()
        if self.kind is MatchKind.EXACT:
            return stripped == self.pattern
        return stripped.startswith(self.pattern)


def _build_rules() -> tuple[RewriteRule, ...]:
    rules: list[RewriteRule] = []
    for schema in MANAGED_SCHEMAS:
        rules.append(RewriteRule(f'DROP SCHEMA IF EXISTS "{schema}";'))
        rules.append(RewriteRule(f'CREATE SCHEMA "{schema}";'))
    rules.append(
        RewriteRule(
            f'ALTER DEFAULT PRIVILEGES FOR ROLE "{PLATFORM_OWNER_ROLE}"',
            MatchKind.PREFIX,
        )
    )
    return tuple(rules)


REWRITE_RULES = _build_rules()


def rewrite_line(line: str, rules: tuple[RewriteRule, ...] = REWRITE_RULES) -> str:
    """Return the disabled form of ``line`` if any rule matches, else ``line``."""
    for rule in rules:
        if rule.matches(line):
            return f"{DISABLED_PREFIX}{line}"
    return line


def rewrite_sql(sql: str, rules: tuple[RewriteRule, ...] = REWRITE_RULES) -> str:
    """Disable managed-schema statements in a SQL dump.

    Applying this twice gives the same result as applying it once: a
    disabled line starts with ``--`` and no longer matches any rule.

    Args:
        sql: The dump text.
        rules: Rules to apply; defaults to the Supabase rule set.

    Returns:
        The rewritten text with the same number of lines.
    """
    lines = sql.split("\n")
    rewritten = [rewrite_line(line, rules) for line in lines]
    disabled = sum(1 for before, after in zip(lines, rewritten) if before != after)
    log_with_context(
        logging.DEBUG,
        f"Applied SQL transformations for Supabase compatibility ({disabled} statements disabled)",
        disabled=disabled,
    )
    return "\n".join(rewritten)


def rewrite_snapshot(snapshot: Snapshot) -> Snapshot:
    """Return a new Snapshot whose SQL has been rewritten."""
    return replace(snapshot, sql=rewrite_sql(snapshot.sql))
