"""Run execution use-case service."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from batch_snapshot_tester import example_batches
from batch_snapshot_tester.batch_registration import (
    BatchDiscoveryError,
    BatchRegistry,
    discover_batches,
)
from batch_snapshot_tester.configuration import ConfigurationError, load_configuration
from batch_snapshot_tester.configuration.runtime_settings import Configuration, StorageSettings
from batch_snapshot_tester.notifications import LoggingNotifier, Notifier
from batch_snapshot_tester.remote_storage import (
    HttpFileStore,
    LocalDirectoryStore,
    RemoteStore,
    StorageError,
)
from batch_snapshot_tester.results_writing import RunMetadata, write_results_workbook
from batch_snapshot_tester.snapshots import SnapshotStore, UploadReportEntry

from .run_contracts import RunArtifacts, RunOutcome, RunRequest
from .run_listener import NullRunListener, RunListener
from .run_orchestrator import RunOrchestrator

LOGGER = logging.getLogger(__name__)


class RunExecutionError(Exception):
    """Raised when a run use case cannot be completed."""


def build_registry(
    configuration: Configuration,
    *,
    notifier: Notifier | None = None,
    listener: RunListener | None = None,
) -> BatchRegistry:
    """Create a registry populated from the configured batch modules."""
    known_owners = list(configuration.host.installed_packages)
    if known_owners and configuration.batches.example_batches:
        known_owners.append(example_batches.OWNER)
    registry = BatchRegistry(
        known_owners=known_owners or None,
        notifier=notifier,
        results_view=listener,
    )
    if configuration.batches.example_batches:
        example_batches.register_batches(registry)
    try:
        discover_batches(registry, configuration.batches.modules)
    except BatchDiscoveryError as exc:
        raise RunExecutionError(str(exc)) from exc
    return registry


def build_store(storage: StorageSettings, *, notifier: Notifier | None = None) -> RemoteStore:
    """Create the remote store selected by the storage settings."""
    if storage.backend == "http":
        assert storage.base_url is not None
        return HttpFileStore(
            storage.base_url, timeout_seconds=storage.timeout_seconds, notifier=notifier
        )
    assert storage.root is not None
    return LocalDirectoryStore(storage.root, notifier=notifier)


async def execute_batch_run(
    request: RunRequest,
    *,
    listener: RunListener | None = None,
    notifier: Notifier | None = None,
    store: RemoteStore | None = None,
) -> RunOutcome:
    """Execute one run of the requested batches and return the run outcome."""
    resolved_listener = listener or NullRunListener()
    resolved_notifier = notifier or LoggingNotifier()

    configuration = _load_configuration(request.config_path)
    registry = build_registry(
        configuration, notifier=resolved_notifier, listener=resolved_listener
    )
    artifacts = _resolve_artifacts(configuration, registry, request)
    owns_store = store is None
    resolved_store = store or build_store(configuration.storage, notifier=resolved_notifier)
    try:
        return await _execute(
            request,
            artifacts,
            registry,
            resolved_store,
            listener=resolved_listener,
            notifier=resolved_notifier,
        )
    finally:
        if owns_store and isinstance(resolved_store, HttpFileStore):
            await resolved_store.aclose()


async def _execute(  # pylint: disable=too-many-arguments
    request: RunRequest,
    artifacts: RunArtifacts,
    registry: BatchRegistry,
    store: RemoteStore,
    *,
    listener: RunListener,
    notifier: Notifier,
) -> RunOutcome:
    configuration = artifacts.configuration
    snapshots = SnapshotStore(store, registry.snapshot_directory, notifier=notifier)
    snapshots.enable_updates = artifacts.update_snapshots
    orchestrator = RunOrchestrator(
        registry,
        snapshots,
        listener=listener,
        notifier=notifier,
        report_store=store,
        report_filename=configuration.reporting.json_report,
        log_test_details=configuration.reporting.log_test_details,
        timeout_ms=configuration.run.timeout_ms,
    )

    run_start = datetime.now(UTC)
    try:
        runner = await orchestrator.run_selected(
            artifacts.batch_keys, update_snapshots=artifacts.update_snapshots
        )
        stats = await runner.wait()
        background_results = await orchestrator.wait_for_background_tasks()
    except StorageError as exc:
        raise RunExecutionError(f"Remote store unavailable: {exc}") from exc

    upload_report = tuple(
        entry
        for result in background_results
        if isinstance(result, list)
        for entry in result
        if isinstance(entry, UploadReportEntry)
    )
    report: dict[str, Any] = json.loads(orchestrator.reports.get("json", "{}"))

    workbook_path = None
    output_dir = _resolve_output_dir(request.output_dir, configuration)
    if output_dir is not None:
        run_metadata = RunMetadata(
            run_start=run_start,
            config_path=configuration.path.resolve(),
            batch_keys=artifacts.batch_keys,
            update_snapshots=artifacts.update_snapshots,
            aborted=runner.aborted,
        )
        try:
            workbook_path = write_results_workbook(
                report, _results_path(output_dir, run_start), run_metadata
            )
        except OSError as exc:
            raise RunExecutionError(f"Failed to write results workbook: {exc}") from exc

    return RunOutcome(
        stats=stats,
        batch_keys=artifacts.batch_keys,
        report=report,
        workbook_path=workbook_path,
        upload_report=upload_report,
    )


def _load_configuration(config_path: str) -> Configuration:
    try:
        return load_configuration(config_path)
    except (ConfigurationError, OSError) as exc:
        raise RunExecutionError(str(exc)) from exc


def _resolve_artifacts(
    configuration: Configuration, registry: BatchRegistry, request: RunRequest
) -> RunArtifacts:
    pre_selected_only = (
        request.pre_selected_only
        if request.pre_selected_only is not None
        else configuration.run.pre_selected_only
    )
    batch_keys = tuple(request.batch_keys) or tuple(
        registry.list_keys(pre_selected_only=pre_selected_only)
    )
    if not batch_keys:
        raise RunExecutionError("No batches selected; check batches.modules in the configuration.")
    update_snapshots = (
        request.update_snapshots
        if request.update_snapshots is not None
        else configuration.snapshots.update
    )
    LOGGER.debug("Selected batches: %s", ", ".join(batch_keys))
    return RunArtifacts(
        configuration=configuration,
        batch_keys=batch_keys,
        update_snapshots=update_snapshots,
    )


def _resolve_output_dir(output_dir: str | None, configuration: Configuration) -> Path | None:
    if output_dir:
        return Path(output_dir)
    return configuration.reporting.results_dir


def _results_path(output_dir: Path, run_start: datetime) -> Path:
    timestamp = run_start.strftime("%Y%m%d-%H%M%S")
    return output_dir / f"batch-results-{timestamp}.xlsx"
