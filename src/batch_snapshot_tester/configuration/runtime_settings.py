"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class HostSettings:
    """Facts about the host application the batches belong to."""

    installed_packages: tuple[str, ...]


@dataclass(frozen=True)
class BatchSourceSettings:
    """Where batches are discovered from."""

    modules: tuple[str, ...]
    example_batches: bool


@dataclass(frozen=True)
class StorageSettings:
    """Remote store backing snapshots and reports."""

    backend: str
    root: Path | None
    base_url: str | None
    timeout_seconds: int


@dataclass(frozen=True)
class SnapshotSettings:
    """Snapshot update defaults."""

    update: bool


@dataclass(frozen=True)
class ReportingSettings:
    """Console and file reporting options."""

    log_test_details: bool
    json_report: str | None
    results_dir: Path | None


@dataclass(frozen=True)
class RunSettings:
    """Defaults applied to every run."""

    pre_selected_only: bool
    timeout_ms: int


@dataclass(frozen=True)
class Configuration:  # pylint: disable=too-many-instance-attributes
    """Top-level configuration aggregate."""

    path: Path
    host: HostSettings
    batches: BatchSourceSettings
    storage: StorageSettings
    snapshots: SnapshotSettings
    reporting: ReportingSettings
    run: RunSettings
