"""Run execution entities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from batch_snapshot_tester.configuration.runtime_settings import Configuration
from batch_snapshot_tester.execution_engine import RunStats
from batch_snapshot_tester.snapshots import UploadReportEntry


@dataclass(frozen=True)
class RunRequest:
    """Input contract for executing one run."""

    config_path: str
    batch_keys: tuple[str, ...] = ()
    update_snapshots: bool | None = None
    pre_selected_only: bool | None = None
    output_dir: str | None = None


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    stats: RunStats
    batch_keys: tuple[str, ...]
    report: Mapping[str, Any]
    workbook_path: Path | None = None
    upload_report: tuple[UploadReportEntry, ...] = field(default_factory=tuple)

    @property
    def failed(self) -> bool:
        return self.stats.failures > 0


@dataclass(frozen=True)
class RunArtifacts:
    """Loaded collaborators required during run execution."""

    configuration: Configuration
    batch_keys: tuple[str, ...]
    update_snapshots: bool
