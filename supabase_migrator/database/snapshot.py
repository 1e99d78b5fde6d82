"""Value types for relational snapshots and the options used to capture them."""

from __future__ import annotations

from dataclasses import dataclass, field

from supabase_migrator.exceptions import ConfigError


@dataclass(frozen=True)
class DumpOptions:
    """Filters and mode flags for a relational export.

    ``schema_only`` and ``data_only`` are mutually exclusive; requesting both
    is rejected at construction time rather than handed to the export tool.
    """

    excluded_schemas: tuple[str, ...] = ()
    excluded_tables: tuple[str, ...] = ()
    schema_only: bool = False
    data_only: bool = False

    def __post_init__(self) -> None:
        if self.schema_only and self.data_only:
            raise ConfigError(
                "schema-only and data-only are mutually exclusive; choose one"
            )
        # Accept lists from callers while keeping the value hashable
        object.__setattr__(self, "excluded_schemas", tuple(self.excluded_schemas))
        object.__setattr__(self, "excluded_tables", tuple(self.excluded_tables))

    @property
    def schema_pattern(self) -> str | None:
        """All excluded schemas joined into a single alternation pattern."""
        if not self.excluded_schemas:
            return None
        return "|".join(self.excluded_schemas)


@dataclass(frozen=True)
class Snapshot:
    """A captured SQL export, tagged with how it was produced."""

    sql: str
    compressed: bool = False
    options: DumpOptions = field(default_factory=DumpOptions)

    @property
    def line_count(self) -> int:
        return len(self.sql.split("\n"))
