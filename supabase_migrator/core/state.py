"""
Run report for a migrate, backup, or restore.

The orchestrator appends one StageResult per stage, in the order the stages
ran. Counters inside each stage's stats only ever grow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from supabase_migrator.services.function_sync import FunctionBackupResult
from supabase_migrator.types import FunctionSyncStats, TransferStats

StageStats = Union[TransferStats, FunctionSyncStats, FunctionBackupResult]


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    DATABASE = "database"
    STORAGE = "storage"
    FUNCTIONS = "functions"


@dataclass
class StageResult:
    """Outcome of one completed stage."""

    stage: Stage
    detail: str
    stats: StageStats | None = None

    @property
    def failed(self) -> int:
        """Number of per-item failures recorded by the stage."""
        if self.stats is None:
            return 0
        return self.stats.failed


@dataclass
class RunReport:
    """Aggregate result of a whole run."""

    operation: str
    source: str | None = None
    target: str | None = None
    stages: list[StageResult] = field(default_factory=list)
    backup_path: Path | None = None

    def add(
        self, stage: Stage, detail: str, stats: StageStats | None = None
    ) -> StageResult:
        result = StageResult(stage, detail, stats)
        self.stages.append(result)
        return result

    def get(self, stage: Stage) -> StageResult | None:
        for result in self.stages:
            if result.stage is stage:
                return result
        return None

    @property
    def failed_items(self) -> int:
        return sum(result.failed for result in self.stages)

    @property
    def has_failures(self) -> bool:
        return self.failed_items > 0
